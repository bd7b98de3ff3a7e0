"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads happen here. No module should call os.getenv()
or os.environ.get() directly -- the API entry point calls get_settings() once
and injects the resulting Settings object into every service it builds.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call, so
      validation (and any fail-fast error) happens exactly once.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved -- the JWT secret policy and the provider credentials check.

Security notes:
  JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing relies
  on key entropy.

  In production mode (DEBUG not set or false), a missing JWT_SECRET is a hard
  startup failure.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
formations/, or provider/.
"""

import logging
import secrets
from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("hrtraining.config")

SEVEN_DAYS = 7 * 24 * 60 * 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be built in tests with explicit
    keyword arguments. The model_validator enforces the startup rules.
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
    environment: str = "development"
    # Empty string is the sentinel for "not configured".
    jwt_secret: str = ""

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    token_expire_seconds: int = SEVEN_DAYS
    # False keeps the historical refresh behaviour: claims are read from the
    # old cookie without checking its signature. True requires a valid
    # signature (expiry is still ignored).
    refresh_verify_signature: bool = False

    # ------------------------------------------------------------------
    # External provider
    # ------------------------------------------------------------------

    provider_backend: Literal["supabase", "local"] = "supabase"
    supabase_url: str = ""
    supabase_anon_key: str = ""
    # Optional. Used for row-store calls when set so table policies written
    # for the backend role apply.
    supabase_service_role_key: str = ""
    local_db_url: str = "sqlite:///hrtraining_local.db"
    provider_timeout_seconds: float = 10.0

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    frontend_url: str = "http://localhost:3000"

    @property
    def secure_cookies(self) -> bool:
        return self.environment.lower() == "production"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the JWT_SECRET policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode: refuse to start if JWT_SECRET is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.jwt_secret:
            if self.debug:
                self.jwt_secret = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated JWT_SECRET. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "JWT_SECRET is required in production mode. "
                    "Set JWT_SECRET in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        return self

    @model_validator(mode="after")
    def validate_provider(self) -> "Settings":
        """The hosted backend cannot start without its URL and anon key."""
        if self.provider_backend == "supabase" and not (self.supabase_url and self.supabase_anon_key):
            raise ValueError(
                "SUPABASE_URL and SUPABASE_ANON_KEY are required when PROVIDER_BACKEND=supabase. "
                "Set PROVIDER_BACKEND=local to run against the local SQLite provider."
            )
        if self.provider_timeout_seconds <= 0:
            raise ValueError("PROVIDER_TIMEOUT_SECONDS must be positive.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: build Settings(...) directly and pass it to create_app(), or call
    get_settings.cache_clear() after changing the environment.
    """
    return Settings()
