"""Configuration helpers for the N'Ko ni Lonko reader."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    sanity_project_id: str = Field("yfsyhc2p", alias="SANITY_PROJECT_ID")
    sanity_dataset: str = Field("production", alias="SANITY_DATASET")
    sanity_api_version: str = Field("2024-01-01", alias="SANITY_API_VERSION")
    sanity_use_cdn: bool = Field(
        False,
        alias="SANITY_USE_CDN",
        description="Query the API CDN (faster, possibly stale) instead of the live API.",
    )
    articles_path: str | None = Field(
        None,
        alias="LONKO_ARTICLES_PATH",
        description="Optional JSON file or directory used instead of the content store.",
    )
    state_dir: str | None = Field(
        None,
        alias="LONKO_STATE_DIR",
        description="Directory holding the persisted language preference; defaults to ~/.nko_lonko.",
    )
    page_size: int = Field(6, description="Articles shown before the first 'load more'.")
    debounce_ms: int = Field(300, description="Delay before a search query is applied.")
    excerpt_length: int = Field(
        150, description="Characters kept when deriving an excerpt from the body."
    )
    words_per_minute: int = Field(200, description="Reading speed for reading-time estimates.")
    request_timeout: float = Field(10.0, description="Content store HTTP timeout in seconds.")


def get_settings() -> Settings:
    """Settings read from the environment (and `.env`) at call time."""
    return Settings()


def state_dir(settings: Settings | None = None) -> Path:
    """Directory for client-local state such as the preferred language."""
    settings = settings or get_settings()
    if settings.state_dir:
        return Path(settings.state_dir).expanduser().resolve()
    return Path.home() / ".nko_lonko"
