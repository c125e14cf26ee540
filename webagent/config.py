from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)) or default)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)) or default)
    except ValueError:
        return default


@dataclass(frozen=True)
class StageConfig:
    """Model settings for one outbound pipeline stage."""

    model: str
    max_tokens: int
    temperature: float
    timeout: float = 30.0


OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "").strip()
OPENROUTER_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"

CLASSIFIER_MODEL = os.getenv("CLASSIFIER_MODEL", "openai/gpt-4o").strip()
CLASSIFIER_MAX_TOKENS = _env_int("CLASSIFIER_MAX_TOKENS", 10000)
CLASSIFIER_TEMPERATURE = _env_float("CLASSIFIER_TEMPERATURE", 0.7)

GENERATOR_MODEL = os.getenv("GENERATOR_MODEL", "anthropic/claude-3.5-sonnet").strip()
GENERATOR_MAX_TOKENS = _env_int("GENERATOR_MAX_TOKENS", 8192)
GENERATOR_TEMPERATURE = _env_float("GENERATOR_TEMPERATURE", 1.0)

# Applied to each stage separately
LLM_TIMEOUT_SECS = _env_float("LLM_TIMEOUT_SECS", 30.0)

HOST = os.getenv("HOST", "0.0.0.0")
PORT = _env_int("PORT", 3003)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ALLOW_ORIGINS = [o.strip() for o in os.getenv("ALLOW_ORIGINS", "*").split(",") if o.strip()]

SITE_STORE_DIR = Path(os.getenv("SITE_STORE_DIR", "cache/sites"))
REDIS_URL = os.getenv("REDIS_URL", "").strip()
SITES_PAGE_SIZE = _env_int("SITES_PAGE_SIZE", 12)
RECENT_SITES_LIMIT = _env_int("RECENT_SITES_LIMIT", 10)

API_BASE_URL = os.getenv("NEXT_PUBLIC_API_BASE_URL", "http://localhost:3003").rstrip("/")

# Transcript entries forwarded to each model call
CONTEXT_WINDOW = 5


def classifier_stage() -> StageConfig:
    return StageConfig(
        model=CLASSIFIER_MODEL,
        max_tokens=CLASSIFIER_MAX_TOKENS,
        temperature=CLASSIFIER_TEMPERATURE,
        timeout=LLM_TIMEOUT_SECS,
    )


def generator_stage() -> StageConfig:
    return StageConfig(
        model=GENERATOR_MODEL,
        max_tokens=GENERATOR_MAX_TOKENS,
        temperature=GENERATOR_TEMPERATURE,
        timeout=LLM_TIMEOUT_SECS,
    )
