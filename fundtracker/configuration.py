"""Mini README: Centralised configuration models and helpers for Fundtracker.

Structure:
    * FundtrackerSettings - Pydantic settings model describing runtime configuration.
    * get_settings - cached accessor for environment-aware settings.

Usage:
    Import ``get_settings`` to read ``FUNDTRACKER_*`` environment variables (or a
    local ``.env`` file), pick the database URL, session secret, and service
    ports. The configuration is cached so validation runs once per process.
    Tests build ``FundtrackerSettings`` directly and pass it to the app factory.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FundtrackerSettings(BaseSettings):
    """Runtime configuration for the Fundtracker service."""

    model_config = SettingsConfigDict(
        env_prefix="FUNDTRACKER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = Field(
        "development",
        description="Environment label controlling debug toggles and cookie security.",
    )
    database_url: str = Field(
        "sqlite:///data/fundtracker.db",
        description="SQLAlchemy URL of the relational store.",
    )
    session_secret: str = Field(
        "change-me-fundtracker-secret",
        min_length=8,
        description="Secret used to sign the session cookie.",
    )
    session_max_age: int = Field(
        7 * 24 * 60 * 60,
        ge=60,
        description="Session cookie lifetime in seconds (one week by default).",
    )
    interface_host: str = Field(
        "0.0.0.0",
        description="Network interface for the web service to bind to.",
    )
    interface_port: int = Field(
        8000,
        description="Default port the web service exposes.",
        ge=1,
        le=65535,
    )
    log_level: str = Field("INFO", description="Root logging level.")
    activity_limit: int = Field(
        5,
        ge=1,
        le=100,
        description="Default number of entries returned by the recent activity feed.",
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def _prepare_sqlite_directory(cls, value: str) -> str:
        """Create the parent directory of file-based SQLite databases."""

        value = str(value)
        prefix = "sqlite:///"
        if value.startswith(prefix) and ":memory:" not in value:
            path = Path(value[len(prefix):]).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
        return value

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> FundtrackerSettings:
    """Return cached settings, ensuring consistent configuration across modules."""

    return FundtrackerSettings()
