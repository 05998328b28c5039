"""
api/main.py -- FastAPI application factory for authgate.

Run with:  uvicorn asgi:app --reload

create_app() builds a fresh app from Settings, so tests can construct an
isolated app per configuration instead of patching a module-level instance.

Middleware stack (outermost to innermost):
  1. log_requests        -- one access-log line per request, 401s included
  2. AuthBasicMiddleware -- enforces AUTH_BASIC_PATHS on every HTTP request,
                            routed or static

Route-level protection with its own realm/users uses
auth.dependencies.auth_basic(); the AuthRequired handler registered here turns
its failures into the same plain-text 401 challenge.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.middleware import AuthBasicMiddleware
from api.models import ErrorDetail, ErrorResponse, HealthResponse, WhoAmIResponse
from auth.dependencies import AuthRequired, auth_required_handler, get_remote_user
from auth.gate import AuthGate
from core.config import Settings, get_settings

VERSION = "0.1.0"

logger = logging.getLogger("authgate.api")


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once. A no-op when handlers already exist (e.g. under pytest)."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log what the gate protects at startup. The gate itself is built in create_app()."""
    gate: AuthGate = app.state.auth_gate
    prefixes = list(gate.config.paths)
    logger.info("authgate %s starting up", VERSION)
    if prefixes:
        logger.info("Protected paths: %s", ", ".join(sorted(prefixes)))
    else:
        logger.warning("No protected paths configured -- every request passes unauthenticated")
    logger.info("Global users: %d", len(gate.config.users))

    yield

    logger.info("authgate shutdown complete")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers except the 401 challenge return the same ErrorResponse envelope
# so API clients can parse errors uniformly.
# ---------------------------------------------------------------------------


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build a configured FastAPI app.

    Args:
        settings: Settings to use. Defaults to the get_settings() singleton.
    """
    settings = settings if settings is not None else get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="authgate",
        description="HTTP Basic Authentication gate for protected path prefixes.",
        version=VERSION,
        lifespan=lifespan,
        debug=settings.debug,
    )

    gate = AuthGate.from_settings(settings)
    app.state.auth_gate = gate

    app.add_middleware(AuthBasicMiddleware, gate=gate)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s %s",
            request.method,
            request.url.path,
            response.status_code,
            ms,
            request.client.host if request.client else "unknown",
            request.scope.get("state", {}).get("remote_user") or "-",
        )
        return response

    app.add_exception_handler(AuthRequired, auth_required_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    @app.get("/api/v1/health", tags=["Health"])
    async def health(request: Request) -> HealthResponse:
        """Return liveness and the size of the loaded auth tables."""
        config = request.app.state.auth_gate.config
        return HealthResponse(
            version=VERSION,
            protected_paths=len(config.paths),
            global_users=len(config.users),
        )

    @app.get("/api/v1/whoami", tags=["Auth"])
    async def whoami(request: Request) -> WhoAmIResponse:
        """Return the username the gate authenticated for this request, if any."""
        return WhoAmIResponse(username=get_remote_user(request))

    if settings.static_dir:
        app.mount(settings.static_url, StaticFiles(directory=settings.static_dir), name="static")
        logger.info("Serving %s at %s", settings.static_dir, settings.static_url)

    return app
