"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for ZapMenu happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Implements the DEBUG-conditional
      JWT_SECRET policy: dev mode generates a key with a warning, production
      mode refuses to start without a real one.

Security notes:
  [S1] JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing
       relies on key entropy -- a short key makes offline brute force viable.

  [S2] The well-known fallback secret is refused outside DEBUG. Anyone who
       has read the source can forge tokens signed with it.

  [S3] EXPOSE_PASSCODE_IN_RESPONSE returns the MFA code to the HTTP caller.
       It exists for local development only and logs a warning when enabled
       outside DEBUG.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import re
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("zapmenu.config")

# Signing secret used by earlier deployments when JWT_SECRET was unset.
INSECURE_FALLBACK_SECRET = "your-secret-key-change-in-production"

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'zapmenu.db'}"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> int:
    """Convert a duration string like "7d", "12h", "30m" or "3600" to seconds.

    Raises ValueError for anything else, including zero.
    """
    match = _DURATION_RE.match(str(value).lower())
    if match is None:
        raise ValueError(f"Invalid duration {value!r}; expected <number>[s|m|h|d].")
    seconds = int(match.group(1)) * _DURATION_UNITS[match.group(2)]
    if seconds <= 0:
        raise ValueError("Duration must be positive.")
    return seconds


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    app_name: str = "ZapMenu Auth"
    debug: bool = False
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    jwt_secret: str = ""
    jwt_issuer: str = "zapmenu"
    jwt_algorithm: str = "HS256"
    jwt_expires_in: str = "7d"

    # ------------------------------------------------------------------
    # MFA passcodes
    # ------------------------------------------------------------------

    passcode_expire_minutes: int = 10
    expose_passcode_in_response: bool = False

    # ------------------------------------------------------------------
    # Passcode delivery (Mailgun). Empty key or domain disables delivery.
    # ------------------------------------------------------------------

    mailgun_api_key: str = ""
    mailgun_domain: str = ""
    mailgun_base_url: str = "https://api.mailgun.net"
    mailgun_from_email: str = "noreply@zapmenu.app"
    mailgun_from_name: str = "ZapMenu"

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    auth_rate_limit: str = "10/minute"
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("jwt_secret", "mailgun_api_key", "mailgun_domain", "mailgun_base_url", mode="before")
    @classmethod
    def strip_strings(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("jwt_expires_in")
    @classmethod
    def validate_expires_in(cls, v: str) -> str:
        parse_duration(v)
        return v

    @field_validator("passcode_expire_minutes")
    @classmethod
    def validate_passcode_minutes(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("PASSCODE_EXPIRE_MINUTES must be positive.")
        return v

    @model_validator(mode="after")
    def validate_secret(self) -> "Settings":
        """Enforce the JWT_SECRET policy [S1] [S2].

        Dev mode (DEBUG=true): auto-generate a random key with a warning when
            none is set. Tokens will not survive a restart.

        Production mode (DEBUG=false or not set): refuse to start if
            JWT_SECRET is missing or equal to the well-known fallback.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.jwt_secret:
            if self.debug:
                self.jwt_secret = secrets.token_hex(32)
                logger.warning("Using auto-generated JWT_SECRET. Tokens will not persist across restarts.")
            else:
                raise ValueError(
                    "JWT_SECRET is required in production mode. "
                    "Set JWT_SECRET in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if self.jwt_secret == INSECURE_FALLBACK_SECRET:
            if not self.debug:
                raise ValueError("JWT_SECRET is set to the insecure fallback value. Configure a real secret.")
            logger.warning("JWT_SECRET is the insecure fallback value. Never deploy this configuration.")
        elif len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        if self.expose_passcode_in_response and not self.debug:
            logger.warning("EXPOSE_PASSCODE_IN_RESPONSE is enabled outside DEBUG -- MFA codes are returned to callers.")
        return self

    @property
    def token_expire_seconds(self) -> int:
        return parse_duration(self.jwt_expires_in)

    @property
    def mailgun_enabled(self) -> bool:
        return bool(self.mailgun_api_key and self.mailgun_domain)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
