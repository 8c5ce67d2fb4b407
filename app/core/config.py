from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.version import __version__


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    PORT: int = 3000
    APP_NAME: str = "Recomanga"
    APP_ENV: Literal["development", "production"] = "production"

    # Jikan (MyAnimeList) catalog
    JIKAN_BASE_URL: str = "https://api.jikan.moe/v4"
    JIKAN_TIMEOUT: float = 10.0
    # Retries happen inside a single queued job, so keep this low
    JIKAN_MAX_RETRIES: int = 1
    JIKAN_CACHE_TTL_SECONDS: int = 21600  # 6 hours

    # Jikan allows roughly one request per second
    RATE_LIMIT_DELAY_MS: int = 1000
    # 0 disables the per-job timeout
    QUEUE_JOB_TIMEOUT_SECONDS: float = 30.0

    RECOMMENDATION_LIMIT: int = 5
    RECOMMENDATION_DETAIL_LIMIT: int = 8

    # AI
    DEFAULT_GEMINI_MODEL: str = "gemini-1.5-pro"
    GEMINI_API_KEY: str | None = None


settings = Settings()

APP_VERSION = __version__
