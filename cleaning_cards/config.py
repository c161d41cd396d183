from dataclasses import dataclass
from typing import Optional
import os

from dotenv import load_dotenv, find_dotenv

DEFAULT_MODEL = "google/gemini-2.0-flash-001"
DEFAULT_API_URL = "https://openrouter.ai/api/v1/chat/completions"


@dataclass
class Settings:
    api_key: Optional[str]
    model: str = DEFAULT_MODEL
    api_url: str = DEFAULT_API_URL
    referrer: str = "http://localhost"
    title: str = "cleaning-cards"
    timeout: int = 25
    max_tokens: int = 1500
    max_retries: int = 2
    port: int = 8787
    max_upload_mb: int = 20
    api_base_url: str = "http://localhost:8787"
    image_max_size: int = 1280
    image_quality: int = 75
    heic_quality: int = 85
    debug: bool = False


def _find_env_file() -> Optional[str]:
    # usecwd: search upward from the working directory, not from this module
    return find_dotenv(usecwd=True) or None


def _int_env(name: str, default: int) -> int:
    v = os.environ.get(name)
    if not v:
        return default
    try:
        return int(v.split("#", 1)[0].strip())
    except ValueError:
        return default


def _bool_env(*names: str) -> bool:
    for name in names:
        v = os.environ.get(name)
        if v is not None:
            return v.strip().lower() in ("1", "true", "yes", "on")
    return False


def load_config(load_env_file: bool = True) -> Settings:
    """Build Settings from the environment (and `.env` when present).

    A missing OPENROUTER_API_KEY is not an error here: the server must still
    answer health checks, and the gateway raises MissingApiKey on first use.
    """
    if load_env_file:
        env_path = _find_env_file()
        if env_path:
            load_dotenv(env_path)

    return Settings(
        api_key=os.environ.get("OPENROUTER_API_KEY") or None,
        model=os.environ.get("OPENROUTER_MODEL") or DEFAULT_MODEL,
        api_url=os.environ.get("OPENROUTER_URL") or DEFAULT_API_URL,
        referrer=os.environ.get("OPENROUTER_REFERRER") or "http://localhost",
        title=os.environ.get("OPENROUTER_TITLE") or "cleaning-cards",
        timeout=_int_env("OPENROUTER_TIMEOUT", 25),
        max_tokens=_int_env("OPENROUTER_MAX_TOKENS", 1500),
        max_retries=_int_env("OPENROUTER_MAX_RETRIES", 2),
        port=_int_env("PORT", 8787),
        max_upload_mb=_int_env("MAX_UPLOAD_MB", 20),
        api_base_url=(os.environ.get("API_BASE_URL") or "http://localhost:8787").rstrip("/"),
        image_max_size=_int_env("IMAGE_MAX_SIZE", 1280),
        image_quality=_int_env("IMAGE_QUALITY", 75),
        heic_quality=_int_env("HEIC_QUALITY", 85),
        debug=_bool_env("DEBUG", "IMAGE_DEBUG"),
    )
