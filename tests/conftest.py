"""
tests/conftest.py -- Shared test fixtures for the user management tests.

This module provides:
  - make_test_store(): isolated named shared-memory SQLite UserStore
  - _patch_lifespan(): lifespan stand-in that only sets app.state stores
  - api_client: TestClient plus an admin JWT for API integration tests
  - store / pictures: fresh unit-test stores

Stores use named shared-memory SQLite URIs
(file:<name>?mode=memory&cache=shared&uri=true). TestClient runs sync routes
on worker threads, and each connection to a plain :memory: URL gets its own
empty database; the named form gives every connection the same one.

Environment must be set before any app module import: get_settings() is
read once at import time by auth/ and api/.
"""

from __future__ import annotations

import os
import tempfile
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from pathlib import Path

# CRITICAL: set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="usermgmt-uploads-"))

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import issue_token
from core.config import get_settings
from media.store import PictureStore

ADMIN_EMAIL = "testadmin@example.com"
ADMIN_PASSWORD = "testpass123"

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_store(db_suffix: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    return UserStore(db_url=f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(user_store: UserStore, pictures: PictureStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.pictures = pictures
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = make_test_store(uuid.uuid4().hex)
    yield s
    s.close()


@pytest.fixture
def pictures(tmp_path: Path) -> PictureStore:
    return PictureStore(tmp_path / "uploads", max_bytes=1024)


# ---------------------------------------------------------------------------
# Module-scoped API client -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, admin_token, admin_id) for API integration tests.

    Real app, real routes and middleware; only the lifespan is swapped so
    the stores are in-memory and no bootstrap admin is created. The
    admin user is created before the client starts.
    """
    user_store = make_test_store(f"api_{uuid.uuid4().hex}")
    pictures = PictureStore(get_settings().upload_dir, get_settings().max_upload_bytes)

    admin = User(
        username="testadmin",
        email=ADMIN_EMAIL,
        hashed_password=hash_password(ADMIN_PASSWORD),
        is_admin=True,
    )
    uid = user_store.create_user(admin)
    token = issue_token(uid, True)

    app.router.lifespan_context = _patch_lifespan(user_store, pictures)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, uid

    user_store.close()


@pytest.fixture(autouse=True)
def _fresh_cookies(request):
    """Drop cookies a previous login left on the shared module client."""
    if "api_client" in request.fixturenames:
        client, _token, _uid = request.getfixturevalue("api_client")
        client.cookies.clear()
        yield
        client.cookies.clear()
    else:
        yield
