"""
Application configuration using Pydantic Settings.
"""

import os
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_env_file() -> str:
    """Determine which env file to use based on environment."""
    env = os.getenv("APP_ENV", "development")
    if env == "production":
        return ".env.production"
    return ".env.development"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=get_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./dev.db"

    # App settings
    app_name: str = "Practice Finance Engine"
    debug: bool = False
    log_level: str = "INFO"
    app_env: str = "development"

    # Forecasting
    forecast_alpha: float = 0.3
    forecast_beta: float = 0.1
    forecast_gamma: float = 0.3
    forecast_horizon_months: int = 6

    # Debt
    default_extra_monthly_payment: float = 500.0
    default_target_dscr: float = 1.25
    default_market_rate: float = 0.075


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
