"""
api/middleware.py -- ASGI middleware that enforces the protected-path table.

Pure ASGI rather than @app.middleware("http"): it wraps the whole app, so
mounted StaticFiles, routed handlers and unmatched paths (404s) all pass
through the same AuthGate.check() with the same table. A protected path
without valid credentials never reaches the inner app -- the 401 challenge is
sent verbatim and processing stops there.

On success the username is written to scope["state"]["remote_user"], which
handlers read as request.state.remote_user.
"""

from __future__ import annotations

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from auth.dependencies import REMOTE_USER, reject_response
from auth.gate import AuthGate
from auth.models import Reject


class AuthBasicMiddleware:
    def __init__(self, app: ASGIApp, gate: AuthGate) -> None:
        self.app = app
        self.gate = gate

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        result = self.gate.check(scope["path"], headers.get("authorization"))

        if isinstance(result, Reject):
            response = reject_response(result)
            await response(scope, receive, send)
            return

        if result is not None:
            scope.setdefault("state", {})[REMOTE_USER] = result.identity

        await self.app(scope, receive, send)
