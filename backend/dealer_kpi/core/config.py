"""
Application configuration using Pydantic Settings.

Engine behaviour switches (evaluation mode, status thresholds) live here so the
dashboard backend can be tuned per deployment without code changes.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "production"] = "local"
    DEBUG: bool = True
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:4321"]
    )

    # ===========================================
    # KPI Engine
    # ===========================================
    # "legacy": referenced KPIs contribute only raw entries / cumulative sources
    # "recursive": referenced formula/percentage/target KPIs are evaluated too
    KPI_EVALUATION_MODE: Literal["legacy", "recursive"] = "legacy"

    # Progress status thresholds (percent of target)
    KPI_STATUS_ACHIEVED_THRESHOLD: float = 100.0
    KPI_STATUS_NEAR_THRESHOLD: float = 80.0

    # Changes below this percentage are reported as flat
    KPI_TREND_FLAT_THRESHOLD: float = 0.1

    @property
    def is_local(self) -> bool:
        """Check if running in local environment."""
        return self.ENVIRONMENT == "local"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
