"""LLM client: HTTP connection to an OpenAI-compatible chat-completion backend.

The coordinator injects a transport callable matching the protocol:

    async def __call__(self, messages, temperature, max_tokens) -> str: ...

HttpLLM is the real implementation. Tests pass an AsyncMock or patch
httpx.AsyncClient.post instead.

All failures are raised as GenerationError subclasses so callers can tell a
broken setup (ConfigurationError) from a failed call (NetworkError) and from
an unusable reply (ContentError).
"""

from __future__ import annotations

import logging
from typing import Protocol

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from cultivation_events.config import DEFAULT_TIMEOUT, AIConfig
from cultivation_events.models import ChatMessage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocol: every transport must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(
        self,
        messages: list[ChatMessage],
        temperature: float,
        max_tokens: int | None = None,
    ) -> str: ...


# ---------------------------------------------------------------------------
# Response shape: content is either a string or a list of parts
# ---------------------------------------------------------------------------

class ContentPart(BaseModel):
    model_config = ConfigDict(extra="allow")

    text: str | None = None


class _ResponseMessage(BaseModel):
    content: str | list[ContentPart | str] | None = None


class _Choice(BaseModel):
    message: _ResponseMessage


class ChatCompletion(BaseModel):
    choices: list[_Choice]


def content_text(content: str | list[ContentPart | str] | None) -> str:
    """Collapse either content variant to a single string."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return "".join(
        part if isinstance(part, str) else (part.text or "")
        for part in content
    )


# ---------------------------------------------------------------------------
# HttpLLM: connects to a real backend
# ---------------------------------------------------------------------------

class HttpLLM:
    """Async HTTP client for chat-completion backends.

    POST {api_url}  {"model": ..., "messages": [...], "temperature": ..., "max_tokens"?: ...}
    Response:       {"choices": [{"message": {"content": "..." | [{"text": "..."}]}}]}

    Args:
        api_url:   Full endpoint URL, used as-is.
        model:     Model identifier sent in every body.
        api_key:   Bearer token. Not sent when use_proxy is set.
        use_proxy: A trusted proxy adds credentials; no key is required.
        timeout:   HTTP timeout in seconds. Defaults to 120.
    """

    def __init__(
        self,
        api_url: str,
        model: str,
        api_key: str = "",
        use_proxy: bool = False,
        timeout: float = 120.0,
    ) -> None:
        self._url = api_url
        self._model = model
        self._api_key = api_key
        self._use_proxy = use_proxy
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: AIConfig) -> HttpLLM:
        return cls(
            api_url=config.api_url,
            model=config.model,
            api_key=config.api_key,
            use_proxy=config.use_proxy,
            timeout=config.timeout or DEFAULT_TIMEOUT,
        )

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if not self._use_proxy and self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_body(
        self, messages: list[ChatMessage], temperature: float, max_tokens: int | None
    ) -> dict:
        body: dict = {
            "model": self._model,
            "messages": [m.model_dump() for m in messages],
            "temperature": temperature,
        }
        if max_tokens:
            body["max_tokens"] = max_tokens
        return body

    def _parse_response(self, data: object) -> str:
        """Extract the completion text from the response body."""
        try:
            completion = ChatCompletion.model_validate(data)
        except ValidationError as e:
            raise ContentError("Unexpected response format from chat-completion backend") from e
        if not completion.choices:
            raise ContentError("Chat-completion backend returned no choices")
        text = content_text(completion.choices[0].message.content)
        if not text.strip():
            raise ContentError("Chat-completion backend returned empty content")
        return text

    async def __call__(
        self,
        messages: list[ChatMessage],
        temperature: float = 0.7,
        max_tokens: int | None = None,
    ) -> str:
        if not self._use_proxy and not self._api_key:
            raise ConfigurationError("AI API key is missing and no proxy is configured")

        body = self._build_body(messages, temperature, max_tokens)
        logger.debug(
            "llm call url=%s messages=%d temperature=%s max_tokens=%s",
            self._url, len(messages), temperature, max_tokens,
        )

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(self._url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise NetworkError(f"Cannot connect to LLM backend at {self._url}") from e
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"LLM backend returned HTTP {e.response.status_code}: {e.response.text}"
            ) from e
        except httpx.TimeoutException as e:
            raise NetworkError(f"LLM backend timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise NetworkError(f"LLM request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise ContentError("LLM backend returned a non-JSON body") from e

        text = self._parse_response(data)
        logger.debug("llm response len=%d", len(text))
        return text


# ---------------------------------------------------------------------------
# Errors: raised by HttpLLM and the outcome parser
# ---------------------------------------------------------------------------

class GenerationError(RuntimeError):
    """Base class for every failure of the generation pipeline."""


class ConfigurationError(GenerationError):
    """Static setup is missing or inconsistent (credentials, realm tables)."""


class NetworkError(GenerationError):
    """The backend could not be reached or answered with a non-success status."""


class ContentError(GenerationError):
    """The backend answered, but the payload holds no usable data."""
