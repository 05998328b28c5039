"""
auth/resolver.py -- Decide whether a username/password pair is allowed in.

Three credential sources are consulted in priority order:
  1. options.user + options.password -- a single user for this path/call site.
  2. options.users                    -- several users for this path/call site.
  3. global users                      -- users allowed on every protected path.

Tier 1 always produces a definite answer once it runs, so tier 2 only runs
when no single user is configured. Tier 3 runs whenever nothing so far has
granted access, which means a global user is let in even on a path whose own
user list rejected them.

If no source is configured at all the decision stays None ("unknown"), which
denies access and logs a warning: none shall pass without a password table.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from auth.models import AuthDecision, AuthOptions
from auth.passwords import CredentialSpec, check_password

logger = logging.getLogger("authgate.auth")


def resolve(
    username: str,
    password: str,
    options: AuthOptions,
    users: Mapping[str, CredentialSpec] | None = None,
) -> AuthDecision:
    """Check username/password against the call-site options, then the global users."""
    authorized: bool | None = None

    if options.user is not None:
        authorized = username == options.user and check_password(options.password, password)

    if authorized is None and options.users is not None:
        authorized = username in options.users and check_password(options.users[username], password)

    if not authorized and users:
        authorized = username in users and check_password(users[username], password)

    if authorized:
        return AuthDecision(True, username)

    if authorized is None:
        logger.warning("No user/password defined for realm %r -- denying access", options.realm)
    return AuthDecision(authorized)
