"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads happen here. No module should call os.getenv()
directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance afterwards. The signing secret and
      token lifetimes are therefore read once at startup and never mutated.

  @model_validator(mode="after"): cross-field validation after all fields are
      resolved. A missing or weak SECRET_KEY, or nonsensical token lifetimes,
      fail at startup rather than on the first request.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
tracker/, or notify/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("incidentadmin.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'incidentadmin.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Field names map to upper-cased env vars (secret_key -> SECRET_KEY).
    All fields have defaults so tests can build Settings() without a .env file.
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
    # Empty string is the "not configured" sentinel; the validator either
    # generates a dev key or raises.
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    access_token_expire_seconds: int = 3600
    refresh_token_expire_seconds: int = 10 * 24 * 3600

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]
    login_rate_limit: str = "10/minute"
    rate_limit_enabled: bool = True

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    otp_expire_seconds: int = 600
    # Empty string means no webhook: messages go to the log instead.
    notify_webhook_url: str = ""
    support_email: str = "support@localhost"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Tokens will not survive a restart, which is fine locally.

        Production mode: refuse to start without a key.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Tokens will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @model_validator(mode="after")
    def validate_lifetimes(self) -> "Settings":
        """Token and code lifetimes must be positive; refresh must outlive access."""
        if self.access_token_expire_seconds <= 0:
            raise ValueError("ACCESS_TOKEN_EXPIRE_SECONDS must be positive.")
        if self.refresh_token_expire_seconds <= self.access_token_expire_seconds:
            raise ValueError("REFRESH_TOKEN_EXPIRE_SECONDS must be longer than ACCESS_TOKEN_EXPIRE_SECONDS.")
        if self.otp_expire_seconds <= 0:
            raise ValueError("OTP_EXPIRE_SECONDS must be positive.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() if you need to inject different
    environment variables.
    """
    return Settings()
