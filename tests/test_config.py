"""Tests for AI configuration loading and validation."""

import pytest

from cultivation_events.config import (
    DEFAULT_API_URL,
    DEFAULT_MODEL,
    AIConfig,
    describe_ai_config,
    get_ai_config,
    validate_ai_config,
)


class TestGetAIConfig:
    def test_defaults(self) -> None:
        config = get_ai_config()
        assert config.api_url == DEFAULT_API_URL
        assert config.model == DEFAULT_MODEL
        assert config.api_key == ""
        assert config.use_proxy is False
        assert config.timeout == 120.0

    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("AI_API_URL", "http://localhost:8080/v1/chat/completions")
        monkeypatch.setenv("AI_MODEL", "qwen2.5")
        monkeypatch.setenv("AI_API_KEY", "sk-test")
        monkeypatch.setenv("AI_USE_PROXY", "yes")
        monkeypatch.setenv("AI_TIMEOUT", "30")
        config = get_ai_config()
        assert config.api_url == "http://localhost:8080/v1/chat/completions"
        assert config.model == "qwen2.5"
        assert config.api_key == "sk-test"
        assert config.use_proxy is True
        assert config.timeout == 30.0

    @pytest.mark.parametrize("value", ["0", "false", "no", ""])
    def test_proxy_flag_false_values(self, monkeypatch, value) -> None:
        monkeypatch.setenv("AI_USE_PROXY", value)
        assert get_ai_config().use_proxy is False

    def test_malformed_timeout_does_not_raise(self, monkeypatch) -> None:
        monkeypatch.setenv("AI_TIMEOUT", "two minutes")
        config = get_ai_config()
        assert config.timeout is None
        assert validate_ai_config(config) == (False, "AI_TIMEOUT is not a number")

    def test_blank_timeout_uses_default(self, monkeypatch) -> None:
        monkeypatch.setenv("AI_TIMEOUT", "  ")
        assert get_ai_config().timeout == 120.0

    def test_env_file_loaded(self, tmp_path) -> None:
        env_file = tmp_path / "ai.env"
        env_file.write_text("AI_MODEL=from-file\nAI_API_KEY=sk-file\n")
        config = get_ai_config(env_file)
        assert config.model == "from-file"
        assert config.api_key == "sk-file"

    def test_environment_wins_over_env_file(self, tmp_path, monkeypatch) -> None:
        env_file = tmp_path / "ai.env"
        env_file.write_text("AI_MODEL=from-file\n")
        monkeypatch.setenv("AI_MODEL", "from-env")
        assert get_ai_config(env_file).model == "from-env"


class TestValidateAIConfig:
    def test_valid_with_key(self) -> None:
        assert validate_ai_config(AIConfig(api_key="sk-test")) == (True, "")

    def test_valid_behind_proxy_without_key(self) -> None:
        assert validate_ai_config(AIConfig(api_url="/api/ai", use_proxy=True)) == (True, "")

    def test_missing_key(self) -> None:
        valid, error = validate_ai_config(AIConfig())
        assert not valid
        assert "AI_API_KEY" in error

    def test_empty_url(self) -> None:
        valid, error = validate_ai_config(AIConfig(api_url="", api_key="k"))
        assert not valid
        assert "AI_API_URL" in error

    def test_bad_url_scheme(self) -> None:
        valid, error = validate_ai_config(AIConfig(api_url="ftp://x", api_key="k"))
        assert not valid
        assert "ftp://x" in error

    def test_missing_model(self) -> None:
        valid, error = validate_ai_config(AIConfig(model="", api_key="k"))
        assert not valid
        assert "AI_MODEL" in error

    def test_non_positive_timeout(self) -> None:
        valid, error = validate_ai_config(AIConfig(api_key="k", timeout=0))
        assert not valid
        assert "AI_TIMEOUT" in error


class TestDescribeAIConfig:
    def test_key_is_masked(self) -> None:
        text = describe_ai_config(AIConfig(api_key="sk-abcdefghijkl"))
        assert "sk-abcdefghijkl" not in text
        assert "sk-a" in text
        assert "ijkl" in text

    def test_missing_and_proxy(self) -> None:
        assert "key=missing" in describe_ai_config(AIConfig())
        assert "key=handled by proxy" in describe_ai_config(AIConfig(use_proxy=True))
