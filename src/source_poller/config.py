"""
Configuration management for the source poller.

This module handles environment variables, settings validation, and the
polling configuration passed to each poller, using Pydantic Settings for
type safety and validation.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_INITIAL_DELAY = 1.5
DEFAULT_MAX_DELAY = 24.0


class PollingConfig(BaseModel):
    """Polling configuration settings."""

    initial_delay: float = Field(
        default=DEFAULT_INITIAL_DELAY,
        gt=0,
        description="Delay in seconds before the second attempt",
    )
    backoff_factor: float = Field(
        default=2.0, ge=1.0, description="Multiplier applied once backoff starts"
    )
    max_delay: float = Field(
        default=DEFAULT_MAX_DELAY, gt=0, description="Backoff ceiling in seconds"
    )
    constant_attempts: int = Field(
        default=3,
        ge=0,
        description="Number of attempts polled at the initial delay",
    )
    max_attempts: int = Field(
        default=60, ge=1, description="Hard cap on fetch attempts before giving up"
    )
    retry_transient_errors: bool = Field(
        default=False, description="Retry fetch errors flagged as retryable"
    )

    @model_validator(mode="after")
    def validate_delay_bounds(self) -> "PollingConfig":
        """Ensure the backoff ceiling is not below the initial delay."""
        if self.max_delay < self.initial_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= "
                f"initial_delay ({self.initial_delay})"
            )
        return self


class PollerSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SOURCE_POLLER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format")

    # Polling configuration
    initial_delay: float = Field(
        default=DEFAULT_INITIAL_DELAY,
        gt=0,
        description="Initial poll interval in seconds",
    )
    backoff_factor: float = Field(
        default=2.0, ge=1.0, description="Backoff growth factor"
    )
    max_delay: float = Field(
        default=DEFAULT_MAX_DELAY,
        gt=0,
        description="Maximum poll interval in seconds",
    )
    constant_attempts: int = Field(
        default=3, ge=0, description="Attempts before backoff starts"
    )
    max_attempts: int = Field(default=60, ge=1, description="Maximum fetch attempts")
    retry_transient_errors: bool = Field(
        default=False, description="Retry retryable fetch errors"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v.lower() not in {"json", "console"}:
            raise ValueError(f"Invalid log format: {v}")
        return v.lower()

    @model_validator(mode="after")
    def validate_delay_bounds(self) -> "PollerSettings":
        """Ensure the backoff ceiling is not below the initial delay."""
        if self.max_delay < self.initial_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= "
                f"initial_delay ({self.initial_delay})"
            )
        return self

    @property
    def polling_config(self) -> PollingConfig:
        """Get polling configuration."""
        return PollingConfig(
            initial_delay=self.initial_delay,
            backoff_factor=self.backoff_factor,
            max_delay=self.max_delay,
            constant_attempts=self.constant_attempts,
            max_attempts=self.max_attempts,
            retry_transient_errors=self.retry_transient_errors,
        )


# Global settings instance - initialized lazily to avoid import-time errors
_settings_instance: PollerSettings | None = None


def get_settings() -> PollerSettings:
    """Get the global settings instance, creating it if necessary."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = PollerSettings()
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings_instance
    _settings_instance = None


def __getattr__(name: str) -> Any:
    """Allow module-level access to settings attributes."""
    if name == "settings":
        return get_settings()
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
