import json

import pytest

from webagent import reconciler
from webagent.config import StageConfig
from webagent.errors import ChatRequestFailed, ClassificationParseError, GenerationParseError
from webagent.models import ImageRef, Page, TranscriptEntry
from webagent.pipeline import PromptPipeline

CLASSIFIER = StageConfig(model="classifier", max_tokens=10, temperature=0.7)
GENERATOR = StageConfig(model="generator", max_tokens=10, temperature=1.0)

NO_IMAGES = json.dumps({"needsImages": False, "explanation": "text only"})


class ScriptedModel:
    """Answers each stage from a fixed script and records what it was sent."""

    def __init__(self, classify_reply, generate_reply=None):
        self.replies = {"classifier": classify_reply, "generator": generate_reply}
        self.calls = []

    def __call__(self, messages, stage):
        self.calls.append((stage.model, messages))
        reply = self.replies[stage.model]
        if isinstance(reply, Exception):
            raise reply
        if reply is None:
            raise AssertionError(f"unexpected call to {stage.model}")
        return reply


def _pipeline(model, **kwargs):
    return PromptPipeline(classifier=CLASSIFIER, generator=GENERATOR, complete=model, **kwargs)


def _home():
    return Page(name="Home", path="/index.html", content="<h1>home</h1>", isActive=True)


def test_contact_page_end_to_end():
    reply = json.dumps(
        {
            "response": "Added a contact page.",
            "changes": [{"name": "contact", "content": "<form></form>", "action": "create", "reason": "asked"}],
        }
    )
    model = ScriptedModel(NO_IMAGES, reply)
    result = _pipeline(model).run("add a contact page", [], [_home()])

    assert result.response_text == "Added a contact page."
    assert [m for m, _ in model.calls] == ["classifier", "generator"]
    pages, active = reconciler.apply([_home()], result.changes)
    assert len(pages) == 2
    assert active == "/contact.html"
    assert [p.path for p in pages if p.isActive] == ["/contact.html"]


def test_missing_needs_images_stops_before_generation():
    model = ScriptedModel(json.dumps({"explanation": "?"}))
    with pytest.raises(ClassificationParseError):
        _pipeline(model).run("hi", [], [_home()])
    assert [m for m, _ in model.calls] == ["classifier"]


def test_non_json_classification_raises():
    model = ScriptedModel("I think you need images")
    with pytest.raises(ClassificationParseError):
        _pipeline(model).run("hi", [], [_home()])


def test_non_json_generation_raises():
    model = ScriptedModel(NO_IMAGES, "Here is your page: <html></html>")
    with pytest.raises(GenerationParseError):
        _pipeline(model).run("hi", [], [_home()])


def test_generation_without_response_raises():
    model = ScriptedModel(NO_IMAGES, json.dumps({"changes": []}))
    with pytest.raises(GenerationParseError):
        _pipeline(model).run("hi", [], [_home()])


def test_transport_failure_propagates():
    model = ScriptedModel(ChatRequestFailed("timeout"))
    with pytest.raises(ChatRequestFailed):
        _pipeline(model).run("hi", [], [_home()])


def test_legacy_reply_shape_is_flattened():
    reply = json.dumps(
        {
            "response": "done",
            "updatedPages": [{"path": "/index.html", "html": "<h1>new</h1>"}],
            "newPages": [{"name": "about", "html": "<p>about</p>"}],
        }
    )
    result = _pipeline(ScriptedModel(NO_IMAGES, reply)).run("edit", [], [_home()])
    assert [(c.name, c.action) for c in result.changes] == [("about", "create"), ("/index.html", "update")]
    assert result.changes[1].content == "<h1>new</h1>"


def test_only_last_five_transcript_entries_are_sent():
    transcript = [TranscriptEntry(role="user", content=f"m{i}") for i in range(8)]
    model = ScriptedModel(NO_IMAGES, json.dumps({"response": "ok", "changes": []}))
    _pipeline(model).run("next", transcript, [_home()])
    _, classify_messages = model.calls[0]
    history = [m["content"] for m in classify_messages[1:-1]]
    assert history == ["m3", "m4", "m5", "m6", "m7"]
    assert classify_messages[-1] == {"role": "user", "content": "next"}
    _, gen_messages = model.calls[1]
    assert '"m2"' not in gen_messages[0]["content"]
    assert '"m7"' in gen_messages[0]["content"]


def test_image_lookup_results_reach_generation_prompt():
    decision = json.dumps({"needsImages": True, "imageQuery": "mountains", "imageCount": 9})
    model = ScriptedModel(decision, json.dumps({"response": "ok", "changes": []}))

    def lookup(d):
        assert d.imageCount == 5
        return [ImageRef(url="https://img.example/1.jpg", alt="peak")]

    result = _pipeline(model, image_lookup=lookup).run("hero", [], [_home()])
    assert result.image_decision.needsImages is True
    assert result.to_response()["imageUrls"] == [{"url": "https://img.example/1.jpg", "alt": "peak"}]
    assert "https://img.example/1.jpg" in model.calls[1][1][0]["content"]


def test_gamedev_uses_first_change_code():
    reply = json.dumps(
        {
            "response": "Made snake.",
            "changes": [
                {"name": "index.html", "code": "<canvas></canvas>", "action": "update"},
                {"name": "other.html", "code": "ignored", "action": "update"},
            ],
        }
    )
    pages = [Page(name="index.html", path="/index.html", content="", isActive=True)]
    result = _pipeline(ScriptedModel(NO_IMAGES, reply)).run("snake game", [], pages, agent_type="gamedev")
    assert result.change_set.agent_type == "gamedev"
    assert result.change_set.code == "<canvas></canvas>"


def test_solana_prompt_includes_program():
    reply = json.dumps({"response": "explained", "changes": []})
    model = ScriptedModel(NO_IMAGES, reply)
    pages = [Page(name="lib.rs", path="/lib.rs", content="fn main() {}", isActive=True)]
    result = _pipeline(model).run("explain", [], pages, agent_type="solana")
    assert result.change_set.code is None
    system = model.calls[1][1][0]["content"]
    assert "Solana" in system
    assert "fn main() {}" in system


def test_unknown_agent_type_rejected():
    with pytest.raises(ValueError):
        _pipeline(ScriptedModel(NO_IMAGES)).run("hi", [], [], agent_type="mobile")


def test_positive_decision_without_query_stops_before_generation():
    model = ScriptedModel(json.dumps({"needsImages": True, "imageCount": 2}))
    with pytest.raises(ClassificationParseError):
        _pipeline(model).run("add a gallery", [], [_home()])
    assert [m for m, _ in model.calls] == ["classifier"]
