import pytest

AI_ENV_VARS = ("AI_API_URL", "AI_MODEL", "AI_API_KEY", "AI_USE_PROXY", "AI_TIMEOUT")


@pytest.fixture(autouse=True)
def clean_ai_env(monkeypatch, tmp_path):
    """Run every test without AI_* variables and outside any real .env."""
    for name in AI_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
