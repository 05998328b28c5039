"""
auth/gate.py -- The per-request Basic Auth decision.

AuthGate is framework-agnostic: it takes a request path and the raw
Authorization header and returns Proceed(identity) or Reject(realm). The
ASGI middleware (api/middleware.py) and the route-level auth_basic()
dependency (auth/dependencies.py) are thin adapters around it, so routed
requests and static files get identical semantics.

Header handling:
  - Missing header, or one that is not exactly "Basic <token>" (the scheme is
    case-sensitive) -> Reject without consulting any password table.
  - A token that is not valid base64/UTF-8, or decodes without a ':' ->
    treated as an empty username and password, which fail the normal checks.
  - The decoded pair is split on the first ':' only; passwords may contain ':'.

Layer rule: no imports from api/. core/ is imported for typing only.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import TYPE_CHECKING

from auth.models import DEFAULT_REALM, AuthConfig, AuthOptions, GateResult, Proceed, Reject
from auth.paths import match_path, normalize_path
from auth.resolver import resolve

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("authgate.auth")

_BASIC_RE = re.compile(r"^Basic (.+)$")


def decode_basic(authorization: str | None) -> tuple[str, str] | None:
    """Extract (username, password) from a Basic Authorization header value.

    Returns None when the header is absent or uses another scheme.
    """
    if not authorization:
        return None
    match = _BASIC_RE.match(authorization)
    if match is None:
        return None
    try:
        decoded = base64.b64decode(match.group(1)).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return "", ""
    username, sep, password = decoded.partition(":")
    if not sep:
        return "", ""
    return username, password


class AuthGate:
    """Apply the protected-path table and global users to incoming requests.

    The gate holds no mutable state; one instance serves every request.
    """

    def __init__(self, config: AuthConfig | None = None, longest_prefix: bool = False) -> None:
        self.config = config if config is not None else AuthConfig()
        self.longest_prefix = longest_prefix

    @classmethod
    def from_settings(cls, settings: Settings) -> AuthGate:
        """Build the gate from AUTH_BASIC_* settings."""
        config = AuthConfig.build(
            paths={prefix: entry.model_dump() for prefix, entry in settings.auth_basic_paths.items()},
            users=settings.auth_basic_users,
        )
        return cls(config, longest_prefix=settings.auth_basic_longest_prefix)

    def match(self, path: str) -> tuple[str, AuthOptions] | None:
        """Return (prefix, options) for the protected path covering path, if any.

        The raw path is tried first, then its normalized form, so a path is
        protected if either the router or a file server would see it as such.
        """
        matched = match_path(self.config.paths, path, longest=self.longest_prefix)
        if matched is None:
            normalized = normalize_path(path)
            if normalized != path:
                matched = match_path(self.config.paths, normalized, longest=self.longest_prefix)
        return matched

    def check(self, path: str, authorization: str | None) -> GateResult | None:
        """Path-table dispatch. Returns None when path is not protected."""
        matched = self.match(path)
        if matched is None:
            return None
        _prefix, options = matched
        return self.authenticate(path, authorization, options)

    def authenticate(
        self,
        path: str,
        authorization: str | None,
        options: AuthOptions | None = None,
    ) -> GateResult:
        """Authenticate one request against options plus the global users."""
        options = options if options is not None else AuthOptions()
        realm = options.realm or DEFAULT_REALM

        credentials = decode_basic(authorization)
        if credentials is None:
            logger.debug("No Basic credentials presented for %s", path)
            return Reject(realm)

        username, password = credentials
        decision = resolve(username, password, options, self.config.users)
        if decision.granted:
            return Proceed(username)

        logger.info("Authorization failed for user %r on %s", username, path)
        return Reject(realm)
