"""Configuration management for the engine manager."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the lifecycle protocol and the CLI."""

    model_config = SettingsConfigDict(
        env_prefix="ENGINE_MANAGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Polling
    pidfile_poll_interval: float = Field(2.0, gt=0, description="Seconds between pidfile checks")
    liveness_poll_interval: float = Field(2.0, gt=0, description="Seconds between liveness checks on start")
    termination_poll_interval: float = Field(1.0, gt=0, description="Seconds between liveness checks on stop")
    max_pidfile_attempts: Optional[int] = Field(
        None,
        ge=1,
        description="Give up waiting for a pidfile after this many retries (unbounded if unset)",
    )
    max_liveness_attempts: Optional[int] = Field(
        None,
        ge=1,
        description="Give up waiting for a pid to come alive after this many retries (unbounded if unset)",
    )
    termination_grace_period: Optional[float] = Field(
        None,
        gt=0,
        description="Seconds to wait after SIGTERM before sending SIGKILL (wait forever if unset)",
    )

    # Status
    status_keyword: str = Field("fcgi", description="Keyword used to filter the process listing")

    # Observability
    log_level: str = Field("INFO", description="Logging level")
    log_format: str = Field("console", description="console or json")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only console and json renderers exist."""
        v = v.lower()
        if v not in ("console", "json"):
            raise ValueError(f"log_format must be 'console' or 'json', got: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v
