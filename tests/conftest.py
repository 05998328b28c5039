"""
tests/conftest.py -- Shared test fixtures for authgate.

This module provides:
  - PATHS / USERS: the protected-path table and global users used across tests
  - basic_header: builds "Basic <base64(user:password)>" header values
  - settings: Settings wired to PATHS/USERS plus a temporary static directory
  - client: TestClient over create_app(settings)

Settings are always constructed with _env_file=None so a developer's local
.env never leaks into the tests. Password vectors were generated with
openssl / libxcrypt, not with the code under test.
"""

from __future__ import annotations

import base64
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from core.config import Settings, get_settings

# ---------------------------------------------------------------------------
# Credential fixtures
# ---------------------------------------------------------------------------

# {MD5} of "BensPassword"
BEN_MD5 = "{MD5}6E5X8ar/9MdlK07WyHTisg=="
# {SSHA} of "TimsPassword", salt "pepr"
TIM_SSHA = "{SSHA}5NabOv4zookQKTlP+kZMSD31Oj1wZXBy"
# bcrypt ($2a$, cost 8) of "RyansPassword"
RYAN_BCRYPT = "$2a$08$4DqiF8T1kUfj.nhxTj2VhuvIEFq02XhYt2cWsc6jwY3oPf8Dxqgie"

PATHS = {
    "/secret": {
        "realm": "Top secret documents",
        "user": "charlie",
        "password": "CharliesPassword",
    },
    "/documents": {
        "realm": "Only for Bob and Tim",
        "users": {"bob": "BobsPassword", "tim": TIM_SSHA},
    },
    "/restricted": {"user": "alice", "password": "AlicesPassword"},
    "/api/v1/whoami": {"realm": "Who are you", "user": "alice", "password": "AlicesPassword"},
    "/static/private": {"user": "alice", "password": "AlicesPassword"},
}

USERS = {
    "fred": "FredsPassword",
    "ben": BEN_MD5,
    "ryan": RYAN_BCRYPT,
}


def _basic(user: str, password: str) -> str:
    token = base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


@pytest.fixture
def basic_header() -> Callable[[str, str], str]:
    """Return a builder for Basic Authorization header values."""
    return _basic


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    """A static directory with one public and one private file."""
    root = tmp_path / "static"
    (root / "private").mkdir(parents=True)
    (root / "public.txt").write_text("hello, world")
    (root / "private" / "report.txt").write_text("quarterly numbers")
    return root


@pytest.fixture
def settings(static_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        auth_basic_paths=PATHS,
        auth_basic_users=USERS,
        static_dir=str(static_dir),
        static_url="/static",
    )


@pytest.fixture
def client(settings: Settings) -> Generator[TestClient, None, None]:
    """TestClient over a fresh app; the context manager runs the lifespan."""
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def clear_settings_cache() -> Generator[None, None, None]:
    """Reset the get_settings() singleton around tests that change the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
