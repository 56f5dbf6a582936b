"""
core/config.py -- Service settings, read once from the environment.

get_settings() is the only way the rest of the codebase reads configuration;
nothing else touches os.environ. Values come from environment variables or a
.env file in the working directory, matched case-insensitively by field name
(token_expire_seconds <- TOKEN_EXPIRE_SECONDS).

SECRET_KEY:
  Signs every session token. With DEBUG=true an empty key is replaced by a
  random one at startup, which logs everyone out on restart. Without DEBUG
  the service refuses to start until a key is configured. Keys under 32
  characters are refused in both modes.

ADMIN_PASSWORD:
  Defaults to a well-known value so a fresh install can log in at all.
  auth/bootstrap.py warns on every startup while the stored admin hash still
  matches it. Change it with `python main.py set-password <email>`.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or media/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("usermgmt.config")

DEFAULT_ADMIN_PASSWORD = "admin123"

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'usermgmt.db'}"


class Settings(BaseSettings):
    """Every tunable of the service. Each field has a default, so an empty
    environment is valid apart from the SECRET_KEY rule below.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    # "" means unset; check_secret_key replaces or rejects it.
    # JWT_SECRET is accepted for deployments carried over from older setups.
    secret_key: str = Field(default="", validation_alias=AliasChoices("secret_key", "jwt_secret"))

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    token_expire_seconds: int = Field(default=3600, gt=0)
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL
    upload_dir: Path = Path("public/uploads")
    max_upload_bytes: int = Field(default=2 * 1024 * 1024, gt=0)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    frontend_url: str = "http://localhost:5173"
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Bootstrap admin account
    # ------------------------------------------------------------------

    admin_username: str = "admin"
    admin_email: str = "admin@example.com"
    admin_password: str = DEFAULT_ADMIN_PASSWORD

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def check_secret_key(self) -> "Settings":
        """Fill in a throwaway key under DEBUG, otherwise demand a real one."""
        if not self.secret_key:
            if not self.debug:
                raise ValueError("SECRET_KEY is not set. Configure it, or set DEBUG=true for a throwaway key.")
            self.secret_key = secrets.token_hex(32)
            logger.warning("DEBUG: generated a temporary SECRET_KEY; sessions end when the process exits.")
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY is too short (minimum 32 characters).")
        return self


@lru_cache
def get_settings() -> Settings:
    """Build Settings on first use and return the same instance afterwards.

    Tests set environment variables before the first import instead of
    clearing this cache: several modules keep a reference from import time.
    """
    return Settings()
