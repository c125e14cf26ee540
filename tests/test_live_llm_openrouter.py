import os

import pytest

from webagent import llm_client
from webagent.models import Page
from webagent.pipeline import PromptPipeline


def _live_key() -> str:
    flag = os.getenv("RUN_LIVE_LLM_TESTS", "0").lower() in {"1", "true", "yes", "on"}
    key = (os.getenv("OPENROUTER_API_KEY") or "").strip()
    if not flag or key == "your_openrouter_api_key_here":
        return ""
    return key


@pytest.mark.skipif(not _live_key(), reason="Live LLM tests disabled or API key missing")
def test_live_contact_page(monkeypatch):
    """End-to-end run of both stages against OpenRouter."""
    monkeypatch.setattr(llm_client, "OPENROUTER_API_KEY", _live_key())
    home = Page(name="Home", path="/index.html", content="<h1>Bakery</h1>", isActive=True)
    result = PromptPipeline().run("add a contact page", [], [home])
    assert result.response_text.strip()
    assert any(c.action == "create" for c in result.changes)
