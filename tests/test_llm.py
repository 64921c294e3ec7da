"""Tests for cultivation_events.llm: HttpLLM and response normalization."""

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from cultivation_events.config import AIConfig
from cultivation_events.llm import (
    ConfigurationError,
    ContentError,
    ContentPart,
    HttpLLM,
    NetworkError,
    content_text,
)
from cultivation_events.models import ChatMessage

MESSAGES = [
    ChatMessage(role="system", content="You are a game master."),
    ChatMessage(role="user", content="Describe the cave."),
]


def _mock_response(body: dict, status: int = 200, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


def _completion(content) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


# ---------------------------------------------------------------------------
# content_text
# ---------------------------------------------------------------------------

class TestContentText:
    def test_plain_string(self) -> None:
        assert content_text('{"story": "x"}') == '{"story": "x"}'

    def test_parts_are_joined(self) -> None:
        parts = [ContentPart(text='{"story": '), "\"x\"", ContentPart(text="}")]
        assert content_text(parts) == '{"story": "x"}'

    def test_parts_without_text_contribute_nothing(self) -> None:
        assert content_text([ContentPart(), ContentPart(text="ok")]) == "ok"

    def test_none_is_empty(self) -> None:
        assert content_text(None) == ""


# ---------------------------------------------------------------------------
# HttpLLM
# ---------------------------------------------------------------------------

class TestHttpLLM:
    @pytest.fixture
    def llm(self) -> HttpLLM:
        return HttpLLM(
            api_url="https://llm.example/v1/chat/completions",
            model="qwen-plus",
            api_key="secret",
        )

    async def test_happy_path(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_completion("The cave is damp.")))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await llm(MESSAGES, 0.8)
        assert result == "The cave is damp."

    async def test_posts_to_configured_url_verbatim(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_completion("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(MESSAGES, 0.8)
        assert mock_post.call_args[0][0] == "https://llm.example/v1/chat/completions"

    async def test_sends_model_messages_and_temperature(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_completion("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(MESSAGES, 0.8, 4000)
        body = mock_post.call_args.kwargs["json"]
        assert body["model"] == "qwen-plus"
        assert body["temperature"] == 0.8
        assert body["max_tokens"] == 4000
        assert body["messages"] == [
            {"role": "system", "content": "You are a game master."},
            {"role": "user", "content": "Describe the cave."},
        ]

    async def test_max_tokens_omitted_when_not_given(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_completion("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(MESSAGES, 0.7)
        assert "max_tokens" not in mock_post.call_args.kwargs["json"]

    async def test_bearer_token_sent(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_completion("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(MESSAGES, 0.7)
        headers = mock_post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer secret"
        assert headers["Content-Type"] == "application/json"

    async def test_no_auth_header_behind_proxy(self) -> None:
        llm = HttpLLM(api_url="/api/chat", model="m", api_key="secret", use_proxy=True)
        mock_post = AsyncMock(return_value=_mock_response(_completion("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(MESSAGES, 0.7)
        assert "Authorization" not in mock_post.call_args.kwargs["headers"]

    async def test_missing_key_without_proxy_raises_configuration_error(self) -> None:
        llm = HttpLLM(api_url="https://llm.example", model="m")
        mock_post = AsyncMock()
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(ConfigurationError, match="key is missing"):
                await llm(MESSAGES, 0.7)
        mock_post.assert_not_called()

    async def test_content_parts_are_normalized(self, llm: HttpLLM) -> None:
        body = _completion([{"type": "text", "text": "{\"a\":"}, {"type": "text", "text": " 1}"}])
        mock_post = AsyncMock(return_value=_mock_response(body))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await llm(MESSAGES, 0.7)
        assert result == '{"a": 1}'

    async def test_connect_error_raises_network_error(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(NetworkError, match="Cannot connect"):
                await llm(MESSAGES, 0.7)

    async def test_timeout_raises_network_error(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(side_effect=httpx.TimeoutException("timeout"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(NetworkError, match="timed out"):
                await llm(MESSAGES, 0.7)

    async def test_http_error_embeds_status_and_body(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({}, status=429, text="rate limited"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(NetworkError, match="HTTP 429: rate limited"):
                await llm(MESSAGES, 0.7)

    async def test_malformed_response_raises_content_error(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"results": [{"text": "kobold"}]}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(ContentError, match="Unexpected response format"):
                await llm(MESSAGES, 0.7)

    async def test_empty_content_raises_content_error(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_completion("   ")))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(ContentError, match="empty content"):
                await llm(MESSAGES, 0.7)

    async def test_no_choices_raises_content_error(self, llm: HttpLLM) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"choices": []}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(ContentError, match="no choices"):
                await llm(MESSAGES, 0.7)


class TestFromConfig:
    async def test_uses_config_values(self) -> None:
        config = AIConfig(api_url="https://x.example/chat", model="m1", api_key="k")
        llm = HttpLLM.from_config(config)
        mock_post = AsyncMock(return_value=_mock_response(_completion("ok")))
        with patch("httpx.AsyncClient.post", mock_post):
            await llm(MESSAGES, 0.7)
        assert mock_post.call_args[0][0] == "https://x.example/chat"
        assert mock_post.call_args.kwargs["json"]["model"] == "m1"
