"""Configuration settings for the PieceJob API."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment (PIECEJOB_* variables)."""

    # App
    debug: bool = False
    # CORS: Allowed origins for cross-origin requests (Expo dev servers by default)
    cors_origins: list[str] = [
        "http://localhost:8081",
        "http://localhost:19006",
        "http://127.0.0.1:8081",
    ]

    # Marketplace
    seed_demo_data: bool = True
    monitor_enabled: bool = True
    record_events: bool = False
    rate_limit_enabled: bool = True

    class Config:
        env_prefix = "PIECEJOB_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars not in model


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
