from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import requests

from webagent import config
from webagent.config import StageConfig
from webagent.errors import ChatRequestFailed, ConfigError

log = logging.getLogger(__name__)

OPENROUTER_API_KEY = config.OPENROUTER_API_KEY
OPENROUTER_ENDPOINT = config.OPENROUTER_ENDPOINT


def status() -> Dict[str, Any]:
    return {
        "provider": "openrouter" if OPENROUTER_API_KEY else None,
        "classifier_model": config.CLASSIFIER_MODEL,
        "generator_model": config.GENERATOR_MODEL,
        "has_token": bool(OPENROUTER_API_KEY),
    }


def chat_completion(messages: List[Dict[str, str]], stage: StageConfig) -> str:
    """POST one JSON-mode chat completion and return the assistant text.

    Raises ChatRequestFailed on timeouts, connection errors, non-2xx
    answers and bodies without `choices[0].message.content`. No retries.
    """
    if not OPENROUTER_API_KEY:
        raise ConfigError("OPENROUTER_API_KEY is not set")

    headers = {
        "Authorization": f"Bearer {OPENROUTER_API_KEY}",
        "Content-Type": "application/json",
        "X-Title": "webagent",
    }
    body = {
        "model": stage.model,
        "messages": messages,
        "max_tokens": stage.max_tokens,
        "temperature": stage.temperature,
        "response_format": {"type": "json_object"},
    }

    start = time.time()
    try:
        resp = requests.post(OPENROUTER_ENDPOINT, headers=headers, json=body, timeout=stage.timeout)
    except requests.Timeout as exc:
        log.warning("OpenRouter timeout model=%s after %.1fs", stage.model, stage.timeout)
        raise ChatRequestFailed(f"model request timed out: {exc}") from exc
    except requests.RequestException as exc:
        log.warning("OpenRouter request error model=%s: %r", stage.model, exc)
        raise ChatRequestFailed(f"model request failed: {exc}") from exc
    dur_ms = int((time.time() - start) * 1000)

    if not 200 <= resp.status_code < 300:
        msg = _safe_text(resp)[:400]
        log.warning("OpenRouter HTTP %s model=%s: %s", resp.status_code, stage.model, msg)
        raise ChatRequestFailed(f"model provider returned HTTP {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as exc:
        log.warning("OpenRouter: non-JSON HTTP body model=%s", stage.model)
        raise ChatRequestFailed("model provider returned a non-JSON body") from exc

    text = _message_content(data)
    if text is None:
        log.warning("OpenRouter: empty response text model=%s", stage.model)
        raise ChatRequestFailed("model provider returned no message content")
    log.info("OpenRouter ok model=%s dur_ms=%d chars=%d", stage.model, dur_ms, len(text))
    return text


def _message_content(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    text = message.get("content")
    if not isinstance(text, str) or not text.strip():
        return None
    return text


def _safe_text(resp: Any) -> str:
    try:
        return resp.text or ""
    except Exception:
        return ""
