"""Engine configuration loaded from environment variables.

Uses ``pydantic-settings`` for automatic env-var loading, type coercion,
and ``.env`` file support.  Every variable is optional; components take
explicit arguments that default from ``settings`` so tests never depend on
the surrounding environment.
"""

VERSION = "0.1.0"

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings, sourced from ``COMPLIANCE_*`` env vars / ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="COMPLIANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -- persisted state --
    HISTORY_PATH: str = "reports/compliance-history.json"
    BASELINES_PATH: str = "reports/performance-baselines.json"
    HISTORY_RETENTION: int = Field(default=30, ge=1)

    # -- scanning --
    MAX_WORKERS: int = Field(default=4, ge=1)
    # Per-file wall-clock limit applied by the processor; 0 disables it.
    FILE_TIMEOUT_SECONDS: float = Field(default=30.0, ge=0)
    MAX_FILE_BYTES: int = Field(default=10 * 1024 * 1024, ge=1)  # 10 MiB

    # -- scoring --
    PENALTY_CRITICAL: int = Field(default=10, ge=0)
    PENALTY_ERROR: int = Field(default=10, ge=0)
    PENALTY_WARNING: int = Field(default=2, ge=0)
    PASS_THRESHOLD: float = Field(default=85.0, ge=0, le=100)

    # -- logging --
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""


settings = Settings()
