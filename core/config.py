"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Chirpy happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. The signing
      secret is therefore loaded, validated and frozen for the process lifetime.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret -> SECRET, db_url -> DB_URL).

  @model_validator(mode="after"): Runs after all fields are resolved. Used to
      implement the PLATFORM-conditional SECRET logic: dev generates a key with
      a warning, every other platform refuses to start without one.

Token policy constants (ACCESS_TOKEN_MAX_TTL, REFRESH_TOKEN_LIFETIME,
TOKEN_ISSUER) are module constants, not settings. They are not tunable per
deployment or per request.

Rotating SECRET invalidates every outstanding access token at once. That is
an operational procedure (restart with the new value), not something the
code supports at runtime.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/ or chirps/.
"""

import logging
import secrets
from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigurationFailure

logger = logging.getLogger("chirpy.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'chirpy.db'}"

# ---------------------------------------------------------------------------
# Token policy
# ---------------------------------------------------------------------------

ACCESS_TOKEN_MAX_TTL = 3600  # seconds; also the substitute for 0 / oversized requests
REFRESH_TOKEN_LIFETIME = timedelta(days=60)
TOKEN_ISSUER = "chirpy"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file, as long as PLATFORM=dev or SECRET
    is set.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    platform: str = "prod"
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret: str = ""
    db_url: str = _DEFAULT_DB_URL
    static_dir: str = "."

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    bcrypt_rounds: int = 12
    rotate_refresh_tokens: bool = False
    # 0 disables the background purge; refresh tokens are then kept forever.
    refresh_token_retention_days: int = 0

    @property
    def is_dev(self) -> bool:
        return self.platform.strip().lower() == "dev"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret(self) -> "Settings":
        """Enforce the SECRET policy.

        Dev (PLATFORM=dev): auto-generate a random key with a warning. Tokens
            will not survive a restart -- acceptable for local development.

        Any other platform: refuse to start if SECRET is missing.

        Both: a whitespace-only secret is rejected. ConfigurationFailure is
        not a ValueError, so pydantic lets it propagate unwrapped.
        """
        if not self.secret:
            if self.is_dev:
                self.secret = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET. Tokens will not persist across restarts.")
            else:
                raise ConfigurationFailure(
                    "SECRET is required outside development. "
                    "Set SECRET in your environment or .env file, "
                    "or set PLATFORM=dev for local development."
                )
        if not self.secret.strip():
            raise ConfigurationFailure("SECRET must not be blank.")
        if self.bcrypt_rounds < 4 or self.bcrypt_rounds > 31:
            raise ConfigurationFailure("BCRYPT_ROUNDS must be between 4 and 31.")
        if self.refresh_token_retention_days < 0:
            raise ConfigurationFailure("REFRESH_TOKEN_RETENTION_DAYS must not be negative.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
