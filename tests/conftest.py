import pytest
import structlog

from supportai.config import get_settings

_PROVIDER_ENV = (
    "APP_ENV",
    "AI_PROVIDER",
    "FALLBACK_PROVIDER",
    "FLOWISE_URL",
    "FLOWISE_CHATFLOW_ID",
    "FLOWISE_API_KEY",
    "OPENROUTER_API_KEY",
    "OPENROUTER_MODEL",
    "OPENROUTER_BASE_URL",
    "SYSTEM_PROMPT",
    "SITE_URL",
    "SITE_NAME",
    "AZURE_OPENAI_RESOURCE_NAME",
    "AZURE_OPENAI_DEPLOYMENT_NAME",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_API_VERSION",
    "AZURE_OPENAI_DEPLOYMENT_URI",
    "RAG_K",
    "RAG_SHOW_SOURCES",
    "REPHRASING_MODEL",
    "RETRY_MAX_ATTEMPTS",
    "RETRY_BASE_DELAY_MS",
)


@pytest.fixture(autouse=True)
def test_env(tmp_path, monkeypatch):
    # keep a developer's .env out of the settings under test
    monkeypatch.chdir(tmp_path)
    for key in _PROVIDER_ENV:
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.contextvars.clear_contextvars()


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
