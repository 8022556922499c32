"""Application configuration."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    APP_NAME: str = "Pathwise"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENV: str = "development"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database (remote structured store)
    DATABASE_URL: str = "sqlite+aiosqlite:///./pathwise.db"
    DATABASE_ECHO: bool = False

    # AI text generation
    GEMINI_API_KEY: str | None = None
    GEMINI_API_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GENERATION_TEMPERATURE: float = 0.7
    GENERATION_TOP_P: float = 0.95
    GENERATION_TOP_K: int = 40
    GENERATION_MAX_OUTPUT_TOKENS: int = 8192

    # Retry policy: 3 attempts total, fixed delay, no jitter
    GENERATION_MAX_ATTEMPTS: int = 3
    GENERATION_RETRY_DELAY: float = 2.0
    GENERATION_TIMEOUT: float = 60.0

    # Local offline cache
    LOCAL_CACHE_DIR: Path = Path("./.pathwise-cache")
    LOCAL_CACHE_KEY: str = "userData"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENV == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENV == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
