"""Process configuration.

Centralizes every environment variable the application reads. Settings are
loaded once at startup and passed down explicitly; nothing below this module
calls os.getenv.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"
DEFAULT_LOCAL_BASE_URL = "http://127.0.0.1:8045/v1"
DEFAULT_LOCAL_MODELS = ("claude-opus-4-5-thinking", "gemini-3-flash", "gemini-3-pro-high")
DEFAULT_GEMINI_MODELS = ("gemini-2.0-flash", "gemini-2.5-flash", "gemini-2.5-pro")
DEFAULT_SYSTEM_PROMPT = "You are a friendly AI assistant."


def _split_names(raw: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if raw is None:
        return default
    return tuple(name.strip() for name in raw.split(",") if name.strip())


class Settings(BaseModel):
    """Immutable application settings."""

    model_config = ConfigDict(frozen=True)

    deepseek_api_key: str | None = Field(default=None, description="Primary backend credential")
    deepseek_base_url: str = Field(default=DEFAULT_DEEPSEEK_BASE_URL)
    default_model: str = Field(default="deepseek-chat", description="Model used when a request names none")

    local_api_key: str | None = Field(default=None, description="Local proxy credential")
    local_base_url: str = Field(default=DEFAULT_LOCAL_BASE_URL)
    local_models: tuple[str, ...] = Field(default=DEFAULT_LOCAL_MODELS)

    gemini_api_key: str | None = Field(default=None)
    gemini_base_url: str | None = Field(default=None, description="None uses the SDK default endpoint")
    gemini_models: tuple[str, ...] = Field(default=DEFAULT_GEMINI_MODELS)

    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)

    store_backend: str = Field(default="sqlite", description="'memory' or 'sqlite'")
    db_path: str = Field(default="./charachat.db")
    upload_dir: str = Field(default="./uploads")

    api_url: str = Field(default="http://127.0.0.1:8000", description="Server address used by clients")
    log_level: str = Field(default="INFO")


def load_settings(env_file: str | None = None) -> Settings:
    """Build settings from the environment (and an optional .env file).

    Environment variables:
        DEEPSEEK_API_KEY, DEEPSEEK_BASE_URL, DEEPSEEK_MODEL: primary backend
        LOCAL_API_KEY, LOCAL_API_BASE_URL, LOCAL_API_MODELS: local proxy backend
        GEMINI_API_KEY, GEMINI_BASE_URL, GEMINI_MODELS: flattened REST backend
        CHARACHAT_SYSTEM_PROMPT: fallback system prompt
        CHARACHAT_STORE, CHARACHAT_DB_PATH: persistence backend
        CHARACHAT_UPLOAD_DIR: blob store directory
        CHARACHAT_API_URL: server address for the TUI and CLI clients
        CHARACHAT_LOG_LEVEL: logging level name

    Returns:
        Frozen Settings instance
    """
    load_dotenv(env_file)

    return Settings(
        deepseek_api_key=os.getenv("DEEPSEEK_API_KEY") or None,
        deepseek_base_url=os.getenv("DEEPSEEK_BASE_URL", DEFAULT_DEEPSEEK_BASE_URL),
        default_model=os.getenv("DEEPSEEK_MODEL", "deepseek-chat"),
        local_api_key=os.getenv("LOCAL_API_KEY") or None,
        local_base_url=os.getenv("LOCAL_API_BASE_URL", DEFAULT_LOCAL_BASE_URL),
        local_models=_split_names(os.getenv("LOCAL_API_MODELS"), DEFAULT_LOCAL_MODELS),
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_base_url=os.getenv("GEMINI_BASE_URL") or None,
        gemini_models=_split_names(os.getenv("GEMINI_MODELS"), DEFAULT_GEMINI_MODELS),
        system_prompt=os.getenv("CHARACHAT_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
        store_backend=os.getenv("CHARACHAT_STORE", "sqlite"),
        db_path=os.getenv("CHARACHAT_DB_PATH", "./charachat.db"),
        upload_dir=os.getenv("CHARACHAT_UPLOAD_DIR", "./uploads"),
        api_url=os.getenv("CHARACHAT_API_URL", "http://127.0.0.1:8000"),
        log_level=os.getenv("CHARACHAT_LOG_LEVEL", "INFO"),
    )
