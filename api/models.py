"""
API response models for authgate's own endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal decision types. The 401 challenge is not modelled here: it is
plain text and rendered by auth.dependencies.reject_response().
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses (except 401 challenges)."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    protected_paths: int
    global_users: int


class WhoAmIResponse(BaseModel):
    """Response for GET /api/v1/whoami.

    username is None when the path is not protected and no credentials were checked.
    """

    model_config = ConfigDict(frozen=True)

    username: Optional[str] = None
