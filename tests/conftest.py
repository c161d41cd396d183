import pytest

from cleaning_cards.config import Settings
from tests.helpers import make_jpeg

CONFIG_ENV = (
    "OPENROUTER_API_KEY",
    "OPENROUTER_MODEL",
    "OPENROUTER_URL",
    "OPENROUTER_REFERRER",
    "OPENROUTER_TITLE",
    "OPENROUTER_TIMEOUT",
    "OPENROUTER_MAX_TOKENS",
    "OPENROUTER_MAX_RETRIES",
    "PORT",
    "MAX_UPLOAD_MB",
    "API_BASE_URL",
    "IMAGE_MAX_SIZE",
    "IMAGE_QUALITY",
    "HEIC_QUALITY",
    "DEBUG",
    "IMAGE_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so teardown also removes values a test's .env load wrote
    for name in CONFIG_ENV:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    yield


@pytest.fixture
def settings():
    return Settings(api_key="test-key")


@pytest.fixture
def jpeg_bytes():
    return make_jpeg()
