"""
Regime Island - Configuration Module
Loads environment variables and provides app-wide settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App Info
    app_name: str = "Regime Island API"
    app_version: str = "0.1.0"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API Settings
    api_prefix: str = "/api/v1"

    # CORS
    cors_origins: str = "*"  # Comma-separated list in production

    # HMM engine
    default_train_iterations: int = 0
    strict_matrix_validation: bool = False  # Reject mis-shaped matrices instead of defaulting
    forecast_weeks: int = 4

    model_config = SettingsConfigDict(
        env_prefix="REGIME_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()
