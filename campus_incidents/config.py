"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Local embedded database (single file on the device)
    database_url: str = "sqlite+aiosqlite:///./incidents.db"

    # Capture steps (media pick, location fix)
    capture_step_timeout_seconds: float = 30.0

    # Reverse geocoding (display only, best effort)
    geocoding_enabled: bool = True
    geocoding_base_url: str = "https://nominatim.openstreetmap.org"
    geocoding_user_agent: str = "campus-incidents/0.1"
    geocoding_timeout_seconds: float = 5.0

    # API settings
    api_v1_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]
    rate_limit_per_minute: int = 60

    # Environment
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
