"""
auth/dependencies.py -- FastAPI helpers around AuthGate.

auth_basic(...) is the ad hoc entry point: it builds a Depends() callable that
protects one route (or a whole router) with its own realm and users, on top
of whatever the path table already enforces:

    @app.get("/confidential", dependencies=[Depends(auth_basic(
        realm="Authorized personnel only",
        users={"alice": "AlicesPassword", "bob": "{SSHA}..."},
    ))])
    async def confidential(request: Request): ...

A failed check raises AuthRequired, which the app turns into the plain-text
401 challenge via auth_required_handler(). On success the username is
stamped on request.state.remote_user, the ASGI counterpart of CGI's
REMOTE_USER, and returned to the route if it asks for it.

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi/starlette because this module
  is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping

from fastapi import Request
from starlette.responses import Response

from auth.gate import AuthGate
from auth.models import AuthOptions, Reject

# Key under request.state / scope["state"] holding the authenticated username
REMOTE_USER = "remote_user"

# Used when auth_basic() runs in an app that never installed a gate: the
# call-site options still apply, there are just no global users.
_FALLBACK_GATE = AuthGate()


class AuthRequired(Exception):
    """Raised by auth_basic() dependencies; carries the 401 to send."""

    def __init__(self, reject: Reject) -> None:
        super().__init__(reject.body)
        self.reject = reject


def reject_response(reject: Reject) -> Response:
    """Render a Reject as a response with exactly the challenge headers."""
    return Response(content=reject.body, status_code=reject.status, headers=reject.headers)


async def auth_required_handler(request: Request, exc: AuthRequired) -> Response:
    """Exception handler for AuthRequired. Register with app.add_exception_handler()."""
    return reject_response(exc.reject)


def get_gate(request: Request) -> AuthGate:
    gate = getattr(request.app.state, "auth_gate", None)
    return gate if gate is not None else _FALLBACK_GATE


def get_remote_user(request: Request) -> str | None:
    """Return the username authenticated for this request, or None."""
    return getattr(request.state, REMOTE_USER, None)


def auth_basic(
    realm: str | None = None,
    user: str | None = None,
    password: str | None = None,
    users: Mapping[str, str] | None = None,
) -> Callable[[Request], str]:
    """Return a dependency that requires Basic credentials for realm.

    Credential specs are parsed here, once, when the route is declared.
    The app's global users (from its AuthGate) are accepted as well.
    """
    options = AuthOptions.build(realm=realm, user=user, password=password, users=users)

    def dependency(request: Request) -> str:
        result = get_gate(request).authenticate(
            request.url.path,
            request.headers.get("Authorization"),
            options,
        )
        if isinstance(result, Reject):
            raise AuthRequired(result)
        setattr(request.state, REMOTE_USER, result.identity)
        return result.identity

    return dependency
