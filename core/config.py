"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for CredVault happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. store_url -> STORE_URL). Type coercion and validation are built in.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or kv/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("credvault.config")

_DEFAULT_STORE_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'kv' / 'credvault.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    # "memory://" selects the in-process store (lost on restart). Anything
    # else is handed to SQLAlchemy's create_engine().
    store_url: str = _DEFAULT_STORE_URL

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    salt_length: int = 16

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    # List values are read as JSON from the environment,
    # e.g. CORS_ALLOW_ORIGINS='["https://app.example.com"]'.
    cors_allow_origins: list[str] = ["*"]
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("salt_length")
    @classmethod
    def validate_salt_length(cls, value: int) -> int:
        if value < 1:
            raise ValueError("SALT_LENGTH must be a positive integer.")
        if value < 16:
            logger.warning("SALT_LENGTH=%d is shorter than the recommended 16 characters.", value)
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Normalize to an upper-case stdlib level name; reject unknown names."""
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"LOG_LEVEL must be a logging level name, got {value!r}.")
        return level


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    All modules should call get_settings() rather than constructing Settings() directly.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
