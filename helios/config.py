"""
Helios — Application Configuration
====================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or a .env file),
       validates types/ranges, and provides a `Settings` object.
Who:   Read by the `Helios` application handle at initialization and by the
       application factory (CORS origins, log level).
When:  Constructed once per `Helios` handle; the session secret and cookie
       name are read once, at production initialization.

Environment variables:
    HELIOS_SECRET     Secret used to sign session cookies (required in production)
    SESSION_NAME      Name of the session cookie
    DATABASE_URL      Async SQLAlchemy URL of the durable store
    LOG_LEVEL         DEBUG, INFO, WARNING, ERROR or CRITICAL
    CORS_ORIGINS      Comma-separated allowed origins, "*" for any
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for development and tests.
    Production deployments MUST set HELIOS_SECRET.
    """

    # ── Sessions ──────────────────────────────────────────────────────────
    # Key for the itsdangerous signer protecting the session cookie
    helios_secret: str = Field(
        default="",
        description="Secret used to sign session cookies",
    )
    session_name: str = Field(default="helios_session")

    # Cookie lifetime in seconds (default: 14 days)
    session_max_age: int = Field(default=14 * 24 * 60 * 60, ge=60)
    session_https_only: bool = Field(default=False)

    # ── Database ──────────────────────────────────────────────────────────
    # Format: sqlite+aiosqlite:///path/to/file.sqlite3
    database_url: str = Field(
        default="sqlite+aiosqlite:///db.sqlite3",
        description="Async SQLAlchemy URL of the production store",
    )

    # In-memory store used by Helios.before_test()
    test_database_url: str = Field(default="sqlite+aiosqlite:///:memory:")

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: comma-separated URLs, or "*"
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Logging ───────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # HELIOS_SECRET and helios_secret both work
        "extra": "ignore",
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that critical settings are configured.
        When:  Called by Helios.initialize() before opening the store.
        How:   Collects every problem and raises a single ValueError.
        """
        errors = []
        if not self.helios_secret:
            errors.append("HELIOS_SECRET is not set. Session cookies cannot be signed.")
        if not self.session_name:
            errors.append("SESSION_NAME must not be empty.")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )
