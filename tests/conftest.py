"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • a temporary SQLite database seeded with the demo catalog (via app lifespan)
  • a no-op maintenance worker
  • rate limiting switched off

The `client` fixture runs the full lifespan (DB init / seed / shutdown), so
async tests can call `app.db` directly while the client is open.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_current_user
from app.main import app
from app.models import UserInfo
from tests.mocks.models import MOCK_ADMIN, MOCK_USER


# ── Helpers ────────────────────────────────────────────────────────────────

class _NoopWorker:
    """Drop-in replacement for MaintenanceWorker that does nothing."""

    is_running = False

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass


def _override_user(user: UserInfo) -> None:
    async def _mock_current_user():
        return user

    app.dependency_overrides[get_current_user] = _mock_current_user


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture()
def _test_env(monkeypatch, tmp_path):
    """
    Internal fixture that patches the DB path and background worker so
    that the app lifespan runs cleanly against a temp database.
    """
    # ── Temp database ─────────────────────────────────────────────────
    import app.db as db_mod

    monkeypatch.setattr(db_mod, "DB_PATH", str(tmp_path / "test.db"))
    monkeypatch.setattr("app.main.SEED_DEMO_DATA", True)

    # ── No-op maintenance worker ──────────────────────────────────────
    monkeypatch.setattr("app.main.maintenance_worker", _NoopWorker())

    # ── Disable rate limiting in tests ────────────────────────────────
    from app.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)


@pytest.fixture()
def client(_test_env) -> TestClient:
    """
    TestClient signed in as the demo client account.

    Uses a context manager so the lifespan runs (DB init/shutdown).
    """
    _override_user(MOCK_USER)

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()


@pytest.fixture()
def admin_client(_test_env) -> TestClient:
    """TestClient signed in as the demo admin account."""
    _override_user(MOCK_ADMIN)

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()


@pytest.fixture()
def act_as():
    """Switch the signed-in user of an open client mid-test."""
    return _override_user


@pytest.fixture()
def unauthed_client(_test_env) -> TestClient:
    """
    TestClient without auth overrides. Requests are rejected unless
    a session cookie is provided.
    """
    app.dependency_overrides.clear()

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()
