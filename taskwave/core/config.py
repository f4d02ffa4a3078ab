"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from ``TASKWAVE_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TASKWAVE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_dir: Path | None = Field(
        default=None,
        description="Directory for rotating log files (stderr only when unset)",
    )

    # Execution
    max_parallel: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Maximum number of tasks running at once within a wave",
    )
    task_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Timeout per task attempt in seconds",
    )
    max_retries: int = Field(
        default=0,
        ge=0,
        le=10,
        description="Retries per task before it is marked failed",
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0,
        description="Delay between retries in seconds",
    )
    abort_on_failure: bool = Field(
        default=False,
        description="Stop the run after the first wave with a failed task",
    )
    executor_mode: Literal["parallel", "sequential", "retry", "dry_run"] = Field(
        default="parallel",
        description="Executor created by default",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance loaded from environment.

    Example:
        >>> settings = get_settings()
        >>> settings.max_parallel
        4
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
