"""Harness configuration with pydantic-settings.

A single frozen ``HarnessSettings`` instance is passed into every scenario
run. Values come from ``DEPLOY_HARNESS_*`` environment variables or a
``.env`` file.

Usage:
    from deploy_harness.config import get_settings

    settings = get_settings()
    runner = ScenarioRunner(settings)
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HarnessSettings(BaseSettings):
    """Platform credentials and scenario defaults."""

    model_config = SettingsConfigDict(
        env_prefix="DEPLOY_HARNESS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # === Platform API ===

    api_url: str = Field(
        default="https://api.heroku.com",
        description="Base URL of the platform API",
    )
    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Bearer token for the platform API",
    )
    app_prefix: str = Field(
        default="hatchet-t-",
        max_length=20,
        description="Prefix for generated app names",
    )
    stack: str | None = Field(
        default=None,
        description="Stack to create apps on (platform default when unset)",
    )
    buildpacks: list[str] = Field(
        default_factory=list,
        description="Buildpack URLs applied to every build",
    )

    # === Scenario defaults ===

    fixtures_dir: Path = Field(
        default=Path("spec/fixtures/repos"),
        description="Directory that fixture names are resolved against",
    )
    timeout: float = Field(
        default=300.0,
        gt=0,
        description="Seconds to wait for a deployment to become live",
    )
    poll_interval: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between readiness polls",
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Per-request HTTP timeout in seconds",
    )

    # === Retries and concurrency ===

    deploy_retries: int = Field(
        default=2,
        ge=0,
        description="Extra deploy attempts after a retryable request failure",
    )
    retry_backoff: float = Field(
        default=2.0,
        ge=0,
        description="Base backoff in seconds, doubled on each retry",
    )
    max_concurrency: int = Field(
        default=3,
        ge=1,
        description="Max scenarios deployed at once in a suite",
    )

    # === Logging ===

    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache
def get_settings() -> HarnessSettings:
    return HarnessSettings()
