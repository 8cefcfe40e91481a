"""Configuration loading for the Trellis orchestration engine.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Import the default reporter named by ``REPORTER``
"""

from typing import Any, Literal

from pydantic import Field, ImportString, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runner configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Execution configuration
    default_timeout_ms: int | None = Field(
        default=None,
        description="Timeout for tests whose suite sets none (built-in default when unset)",
    )
    grep: str | None = Field(
        default=None,
        description="Only register tests whose title contains this substring",
    )
    bail: bool = Field(
        default=False,
        description="Stop after the first failure",
    )

    # Reporting
    reporter: ImportString[Any] | None = Field(
        default=None,
        description="Import path of the default reporter factory, e.g. "
        "trellis.adapters.reporter.logging_reporter.logging_reporter",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    @field_validator("default_timeout_ms")
    @classmethod
    def validate_default_timeout(cls, v: int | None) -> int | None:
        """Ensure the default timeout is positive."""
        if v is not None and v <= 0:
            raise ValueError("default_timeout_ms must be positive")
        return v

    @field_validator("grep")
    @classmethod
    def validate_grep(cls, v: str | None) -> str | None:
        """Treat an empty pattern as no filter."""
        return v or None

    @field_validator("reporter")
    @classmethod
    def validate_reporter(cls, v: Any) -> Any:
        """Ensure the imported reporter is callable."""
        if v is not None and not callable(v):
            raise ValueError("reporter must import a callable")
        return v


def load_settings(env_file: str | None = None) -> Settings:
    """Load runner settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = ["Settings", "load_settings"]
