"""
Social API — Application Configuration
========================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
       The service reads only a handful of values, but reading them in one
       place keeps os.getenv() calls out of the rest of the code.
How:   Pydantic Settings reads from environment variables (or a .env file),
       validates types/ranges, and get_settings() caches one instance.
Who:   Imported by the lifecycle manager, the app factory and the database hook.
When:  Loaded on first get_settings() call, so a bad value surfaces where
       the entry point can report it instead of at import time.

Design Decision:
    The .env file is read by pydantic-settings itself (env_file below), so
    values in .env populate the same fields as real environment variables.
    Real environment variables always win over the file.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


LISTENER_FAILURE_POLICIES = {"log", "exit"}


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for local development.
    The bind host is NOT configurable: the server always listens on loopback.
    """

    # ── Server ────────────────────────────────────────────────────────────
    # What: TCP port for the loopback listener
    # Why 0 allowed: asks the OS for an ephemeral port (used by tests)
    port: int = Field(default=8000, ge=0, le=65535)

    # What: Controls verbosity of application logging
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    # What: What to do when the background listener fails to start
    # log:  log the error and keep waiting for a shutdown signal
    # exit: log the error, mark the server unhealthy and exit non-zero
    listener_failure_policy: str = Field(default="log")

    # ── Persistence (boundary only) ───────────────────────────────────────
    # What: Optional async SQLAlchemy URL, e.g. postgresql+asyncpg://...
    # Empty means no persistence layer is attached.
    database_url: str = Field(default="")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("listener_failure_policy")
    @classmethod
    def validate_listener_failure_policy(cls, v: str) -> str:
        lower = v.lower()
        if lower not in LISTENER_FAILURE_POLICIES:
            raise ValueError(
                f"Invalid listener_failure_policy '{v}'. "
                f"Must be one of: {sorted(LISTENER_FAILURE_POLICIES)}"
            )
        return lower

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # PORT and port both work
        "extra": "ignore",        # .env may hold values for other tools
    }


@lru_cache
def get_settings() -> Settings:
    """
    Cached Settings instance.

    Raises:
        pydantic.ValidationError: an environment value is invalid
    """
    return Settings()
