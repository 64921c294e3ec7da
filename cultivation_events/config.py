"""AI connection settings read from the environment (and an optional .env)."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT = 120.0

_TRUE_VALUES = {"1", "true", "yes", "on"}


class AIConfig(BaseModel):
    api_url: str = DEFAULT_API_URL
    model: str = DEFAULT_MODEL
    api_key: str = ""
    use_proxy: bool = False  # a trusted proxy adds credentials server-side
    timeout: float | None = DEFAULT_TIMEOUT  # None when AI_TIMEOUT is not a number


def _parse_timeout(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        return None


def get_ai_config(env_file: Path | None = None) -> AIConfig:
    """Build the config from AI_* environment variables.

    Values already present in the environment win over the .env file.
    """
    load_dotenv(env_file or Path.cwd() / ".env")
    return AIConfig(
        api_url=os.getenv("AI_API_URL", DEFAULT_API_URL),
        model=os.getenv("AI_MODEL", DEFAULT_MODEL),
        api_key=os.getenv("AI_API_KEY", ""),
        use_proxy=os.getenv("AI_USE_PROXY", "").strip().lower() in _TRUE_VALUES,
        timeout=_parse_timeout(os.getenv("AI_TIMEOUT")),
    )


def validate_ai_config(config: AIConfig) -> tuple[bool, str]:
    """Return (valid, error). The error is empty when the config is usable."""
    if not config.api_url:
        return False, "AI_API_URL is not set"
    if not config.api_url.startswith(("http://", "https://", "/")):
        return False, f"AI_API_URL must be an http(s) URL or a proxy path, got {config.api_url!r}"
    if not config.model:
        return False, "AI_MODEL is not set"
    if not config.use_proxy and not config.api_key:
        return False, "AI_API_KEY is missing and no proxy is configured"
    if config.timeout is None:
        return False, "AI_TIMEOUT is not a number"
    if not config.timeout > 0:
        return False, f"AI_TIMEOUT must be positive, got {config.timeout}"
    return True, ""


def describe_ai_config(config: AIConfig) -> str:
    """One-line summary for logs; the key is masked."""
    if config.use_proxy:
        key = "handled by proxy"
    elif config.api_key:
        key = f"{config.api_key[:4]}…{config.api_key[-4:]}" if len(config.api_key) > 8 else "set"
    else:
        key = "missing"
    return f"AI config: url={config.api_url} model={config.model} key={key} timeout={config.timeout}s"
