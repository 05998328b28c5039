"""
auth/models.py -- Domain dataclasses for the Basic Auth gate.

Pattern: Data class (pure data container). AuthOptions and AuthConfig are
frozen and their mappings are wrapped in MappingProxyType, so the tables built
at startup stay read-only for the life of the process and can be shared by
concurrent requests without locking.

Credential strings are parsed into CredentialSpec variants when the options
are built (see auth/passwords.py), so malformed hashes show up in the startup
log instead of on the first request that needs them.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from auth.passwords import CredentialSpec, Unrecognized, parse_credential

logger = logging.getLogger("authgate.auth")

DEFAULT_REALM = "Restricted area"
CHALLENGE_BODY = "Authorization required"

_EMPTY: Mapping[str, Any] = MappingProxyType({})


def check_realm(realm: str) -> str:
    """Return realm unchanged if it can be sent in a WWW-Authenticate header.

    The realm goes out inside a quoted string in a Latin-1 header, so quotes,
    backslashes, control characters and anything outside Latin-1 are refused.
    Raises ValueError otherwise.
    """
    if any(ch in '"\\' or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in realm):
        raise ValueError(f"Realm {realm!r} contains a quote, backslash or control character")
    try:
        realm.encode("latin-1")
    except UnicodeEncodeError:
        raise ValueError(f"Realm {realm!r} cannot be sent in an HTTP header (Latin-1 only)") from None
    return realm


def _as_credential(spec: str | CredentialSpec) -> CredentialSpec:
    return parse_credential(spec) if isinstance(spec, str) else spec


def _freeze_users(users: Mapping[str, str | CredentialSpec]) -> Mapping[str, CredentialSpec]:
    return MappingProxyType({name: _as_credential(spec) for name, spec in users.items()})


@dataclass(frozen=True)
class AuthOptions:
    """Realm and credential sources for one protected path or one call site.

    user/password: a single allowed user.
    users:         username -> credential spec, for several allowed users.
    Either, both or neither may be set; see auth/resolver.py for precedence.
    """

    realm: str | None = None
    user: str | None = None
    password: CredentialSpec | None = field(default=None, repr=False)
    users: Mapping[str, CredentialSpec] | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.realm:
            check_realm(self.realm)

    @classmethod
    def build(
        cls,
        realm: str | None = None,
        user: str | None = None,
        password: str | CredentialSpec | None = None,
        users: Mapping[str, str | CredentialSpec] | None = None,
    ) -> AuthOptions:
        """Build options from raw config values, parsing every credential spec."""
        return cls(
            realm=realm,
            user=user,
            password=None if password is None else _as_credential(password),
            users=None if users is None else _freeze_users(users),
        )

    def unrecognized(self) -> list[tuple[str, Unrecognized]]:
        """Return (username, spec) for every credential no recognizer exists for."""
        found: list[tuple[str, Unrecognized]] = []
        if isinstance(self.password, Unrecognized):
            found.append((self.user or "", self.password))
        for name, spec in (self.users or _EMPTY).items():
            if isinstance(spec, Unrecognized):
                found.append((name, spec))
        return found


@dataclass(frozen=True)
class AuthConfig:
    """The protected-path table and the global users, built once at startup."""

    paths: Mapping[str, AuthOptions] = field(default_factory=lambda: _EMPTY)
    users: Mapping[str, CredentialSpec] = field(default_factory=lambda: _EMPTY, repr=False)

    @classmethod
    def build(
        cls,
        paths: Mapping[str, AuthOptions | Mapping[str, Any]] | None = None,
        users: Mapping[str, str | CredentialSpec] | None = None,
    ) -> AuthConfig:
        """Build an immutable config from plain mappings.

        Each path entry may be an AuthOptions or a mapping with the keys
        realm, user, password and users. Raises ValueError on an empty prefix.
        """
        table: dict[str, AuthOptions] = {}
        for prefix, entry in (paths or {}).items():
            if not prefix:
                raise ValueError("Protected path prefixes must be non-empty strings")
            options = entry if isinstance(entry, AuthOptions) else AuthOptions.build(**entry)
            if options.user is not None and options.users is not None:
                logger.warning(
                    "Protected path %r sets both user and users -- the single user is checked first",
                    prefix,
                )
            for name, spec in options.unrecognized():
                logger.error("Path %r, user %r: unusable password (%s)", prefix, name, spec.reason)
            table[prefix] = options

        global_users = _freeze_users(users or {})
        for name, spec in global_users.items():
            if isinstance(spec, Unrecognized):
                logger.error("Global user %r: unusable password (%s)", name, spec.reason)

        return cls(paths=MappingProxyType(table), users=global_users)


@dataclass(frozen=True)
class AuthDecision:
    """Outcome of credential resolution.

    authorized is None when no credential source was configured at all, False
    when credentials were checked and rejected. Both deny access.
    """

    authorized: bool | None
    username: str | None = None

    @property
    def granted(self) -> bool:
        return self.authorized is True


@dataclass(frozen=True)
class Proceed:
    identity: str


@dataclass(frozen=True)
class Reject:
    """A complete 401 challenge, to be sent verbatim."""

    realm: str = DEFAULT_REALM
    status: int = 401
    body: str = CHALLENGE_BODY

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "text/plain",
            "Content-Length": str(len(self.body.encode("utf-8"))),
            "WWW-Authenticate": f'Basic realm="{self.realm}"',
        }


GateResult = Proceed | Reject
