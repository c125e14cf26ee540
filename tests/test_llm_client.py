import json as jsonlib
import types

import pytest
import requests

from webagent import llm_client
from webagent.config import StageConfig
from webagent.errors import ChatRequestFailed, ConfigError


STAGE = StageConfig(model="openai/gpt-4o", max_tokens=100, temperature=0.7, timeout=12.0)


class FakeResp:
    def __init__(self, status, payload):
        self.status_code = status
        self._payload = payload
        self.text = payload if isinstance(payload, str) else jsonlib.dumps(payload)

    def json(self):
        if isinstance(self._payload, str):
            raise ValueError("not json")
        return self._payload


def _fake_requests(post):
    return types.SimpleNamespace(
        post=post,
        Timeout=requests.Timeout,
        RequestException=requests.RequestException,
    )


@pytest.fixture()
def with_key(monkeypatch):
    monkeypatch.setattr(llm_client, "OPENROUTER_API_KEY", "test-key")


def test_missing_key_raises_config_error(monkeypatch):
    monkeypatch.setattr(llm_client, "OPENROUTER_API_KEY", "")

    def never(*a, **k):
        raise AssertionError("no request without a key")

    monkeypatch.setattr(llm_client, "requests", _fake_requests(never))
    with pytest.raises(ConfigError):
        llm_client.chat_completion([{"role": "user", "content": "hi"}], STAGE)


def test_posts_json_mode_request(monkeypatch, with_key):
    captured = {}

    def fake_post(url, headers=None, json=None, timeout=None):
        captured.update(url=url, headers=headers, body=json, timeout=timeout)
        return FakeResp(200, {"choices": [{"message": {"content": '{"needsImages": false}'}}]})

    monkeypatch.setattr(llm_client, "requests", _fake_requests(fake_post))
    out = llm_client.chat_completion([{"role": "user", "content": "hi"}], STAGE)
    assert out == '{"needsImages": false}'
    assert captured["url"] == llm_client.OPENROUTER_ENDPOINT
    assert captured["headers"]["Authorization"] == "Bearer test-key"
    assert captured["body"]["model"] == "openai/gpt-4o"
    assert captured["body"]["max_tokens"] == 100
    assert captured["body"]["response_format"] == {"type": "json_object"}
    assert captured["timeout"] == 12.0


@pytest.mark.parametrize(
    "resp",
    [
        FakeResp(500, {"error": "boom"}),
        FakeResp(429, {"error": "slow down"}),
        FakeResp(200, "<html>gateway</html>"),
        FakeResp(200, {"choices": []}),
        FakeResp(200, {"choices": [{"message": {"content": "  "}}]}),
    ],
)
def test_bad_answers_raise_chat_request_failed(monkeypatch, with_key, resp):
    monkeypatch.setattr(llm_client, "requests", _fake_requests(lambda *a, **k: resp))
    with pytest.raises(ChatRequestFailed):
        llm_client.chat_completion([{"role": "user", "content": "hi"}], STAGE)


@pytest.mark.parametrize("exc", [requests.Timeout("slow"), requests.ConnectionError("down")])
def test_transport_errors_raise_chat_request_failed(monkeypatch, with_key, exc):
    def fake_post(*a, **k):
        raise exc

    monkeypatch.setattr(llm_client, "requests", _fake_requests(fake_post))
    with pytest.raises(ChatRequestFailed):
        llm_client.chat_completion([{"role": "user", "content": "hi"}], STAGE)


def test_status_reports_token_presence(monkeypatch):
    monkeypatch.setattr(llm_client, "OPENROUTER_API_KEY", "")
    assert llm_client.status()["has_token"] is False
    assert llm_client.status()["provider"] is None
    monkeypatch.setattr(llm_client, "OPENROUTER_API_KEY", "k")
    assert llm_client.status()["provider"] == "openrouter"
