"""
core/config.py -- authgate settings, read with pydantic-settings.

The gate's tables come from the environment (or .env) and nowhere else;
other modules take a Settings instance or call get_settings().

Design patterns used:
  Cached singleton: get_settings() builds Settings on first use and hands
      back the same instance afterwards.

  BaseSettings (pydantic-settings): values come from environment variables
      and an optional .env file. Field names map to env var names
      (e.g. auth_basic_users -> AUTH_BASIC_USERS). Dict-typed fields are read
      as JSON:

        AUTH_BASIC_PATHS='{"/secret": {"realm": "Top secret documents",
                                       "user": "charlie",
                                       "password": "CharliesPassword"},
                           "/documents": {"users": {"bob": "BobsPassword",
                                                    "tim": "{SSHA}..."}}}'
        AUTH_BASIC_USERS='{"fred": "FredsPassword",
                           "ryan": "$2b$12$..."}'

  Frozen models: the path table and user map are loaded once at startup and
      never change while the process runs.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authgate.config")


class ProtectedPathSettings(BaseModel):
    """One entry of AUTH_BASIC_PATHS.

    realm defaults to "Restricted area" when the challenge is built. Set either
    user + password (single user) or users (several users). Passwords are
    credential specs: cleartext, crypt ("$6$...") or RFC 2307 ("{SSHA}...").
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    realm: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    users: Optional[dict[str, str]] = None

    @field_validator("realm")
    @classmethod
    def validate_realm(cls, realm: Optional[str]) -> Optional[str]:
        """The realm is sent quoted in a Latin-1 header; refuse what cannot be."""
        if realm is None:
            return realm
        if any(ch in '"\\' or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in realm):
            raise ValueError("realm must not contain quotes, backslashes or control characters.")
        try:
            realm.encode("latin-1")
        except UnicodeEncodeError:
            raise ValueError("realm must be Latin-1 text to fit in the WWW-Authenticate header.") from None
        return realm


class Settings(BaseSettings):
    """authgate settings from the environment and .env.

    Every field has a default, so Settings(_env_file=None) works anywhere.
    With an empty path table the gate lets every request through.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Basic auth
    # ------------------------------------------------------------------

    auth_basic_paths: dict[str, ProtectedPathSettings] = {}
    auth_basic_users: dict[str, str] = {}
    # False keeps the legacy descending-lexicographic prefix order.
    # True makes the longest configured prefix win.
    auth_basic_longest_prefix: bool = False

    # ------------------------------------------------------------------
    # Static files (optional -- empty STATIC_DIR means nothing is mounted)
    # ------------------------------------------------------------------

    static_dir: str = ""
    static_url: str = "/static"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("auth_basic_paths")
    @classmethod
    def validate_prefixes(cls, paths: dict[str, ProtectedPathSettings]) -> dict[str, ProtectedPathSettings]:
        """Reject empty prefixes -- "" would protect every path by accident."""
        if any(not prefix for prefix in paths):
            raise ValueError("AUTH_BASIC_PATHS keys must be non-empty path prefixes.")
        return paths

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, level: str) -> str:
        level = level.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"LOG_LEVEL must be a standard logging level, got {level!r}.")
        return level

    @model_validator(mode="after")
    def warn_unusable_paths(self) -> "Settings":
        """Log protected paths that name a user without a password.

        Such a user can never log in, so the path is only reachable by global
        users. Not fatal, since that may be intended.
        """
        for prefix, entry in self.auth_basic_paths.items():
            if entry.user is not None and entry.password is None:
                logger.warning("AUTH_BASIC_PATHS[%r] sets user %r without a password.", prefix, entry.user)
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings, reading the environment on first call only.

    Tests that change AUTH_BASIC_* variables must call get_settings.cache_clear().
    """
    return Settings()
