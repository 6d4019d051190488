"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for ShopGate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. session_ttl_seconds -> SESSION_TTL_SECONDS).

  @model_validator(mode="after"): Cross-field validation once every field is
      resolved. Bad numeric settings are a hard startup failure; a server
      database without a CA bundle only warns.

Database location:
  DATABASE_URL wins when set. Otherwise, if DB_HOST is set, a MySQL URL is
  composed from DB_HOST / DB_PORT / DB_USER / DB_PASS / DB_NAME. Otherwise a
  local SQLite file next to this package is used.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
auth/, or sessions/.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

logger = logging.getLogger("shopgate.config")

_DEFAULT_SQLITE_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'shopgate.db'}"


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
    host: str = "127.0.0.1"
    port: int = 3000

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    database_url: str = ""
    db_host: str = ""
    db_port: int = 3306
    db_user: str = ""
    db_pass: str = ""
    db_name: str = ""
    # Path to a CA bundle. When set, server databases are reached over TLS.
    db_ssl_ca: str = ""

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    session_cookie_name: str = "sid"
    session_ttl_seconds: int = 3600
    session_backend: Literal["memory", "database"] = "memory"
    session_purge_interval_seconds: int = 600

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    bcrypt_rounds: int = 10

    @property
    def resolved_database_url(self) -> str:
        """Return the SQLAlchemy URL the stores should connect to."""
        if self.database_url:
            return self.database_url
        if self.db_host:
            return URL.create(
                "mysql+pymysql",
                username=self.db_user or None,
                password=self.db_pass or None,
                host=self.db_host,
                port=self.db_port,
                database=self.db_name or None,
            ).render_as_string(hide_password=False)
        return _DEFAULT_SQLITE_URL

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject settings that would break sessions or password hashing.

        bcrypt accepts cost factors 4..31; anything else fails inside
        gensalt() on the first registration instead of at startup.
        """
        if self.session_ttl_seconds <= 0:
            raise ValueError("SESSION_TTL_SECONDS must be a positive number of seconds.")
        if self.session_purge_interval_seconds <= 0:
            raise ValueError("SESSION_PURGE_INTERVAL_SECONDS must be a positive number of seconds.")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        url = self.resolved_database_url
        if not self.debug and not url.startswith("sqlite") and not self.db_ssl_ca:
            logger.warning("DB_SSL_CA is not set -- database traffic will not be encrypted.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
