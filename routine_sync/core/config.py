"""
Application configuration using Pydantic Settings.

Environment-based behaviour (background jobs, watch sessions) is controlled
by the ENVIRONMENT variable.
"""

from functools import lru_cache
from typing import List, Literal, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from routine_sync.models.enums import TieBreak


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
    ENVIRONMENT: Literal["local", "test"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Database
    # ===========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./routine_sync.db"

    # ===========================================
    # Calendar
    # ===========================================
    # Fixed civil offset used for every "today" computation (no DST).
    # 540 = UTC+09:00.
    TIMEZONE_OFFSET_MINUTES: int = Field(540, ge=-14 * 60, le=14 * 60)
    WINDOW_DAYS: int = Field(7, ge=1, le=31)

    # ===========================================
    # Reconciliation
    # ===========================================
    # Upper bound on concurrent date reconciliations during a seed pass
    RECONCILE_CONCURRENCY: int = Field(4, ge=1)
    # Users whose templates are watched while the application runs
    WATCH_USER_IDS: List[str] = Field(default_factory=list)
    SEED_HOUR: int = Field(0, ge=0, le=23)
    SEED_MINUTE: int = Field(1, ge=0, le=59)

    # ===========================================
    # Layout
    # ===========================================
    LAYOUT_TIE_BREAK: TieBreak = TieBreak.START_END
    LAYOUT_BOUND_MINUTES: int = 1440
    # (inner_radius, outer_radius), outermost band first
    RADIAL_BANDS: List[Tuple[float, float]] = Field(
        default=[(33.0, 44.0), (21.0, 32.0), (9.0, 20.0)]
    )

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8081"]
    )

    @property
    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.ENVIRONMENT == "test"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
