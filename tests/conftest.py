"""
tests/conftest.py -- Shared test fixtures for Incident Admin tests.

This module provides:
  - RecordingNotifier: a Notifier that keeps messages in memory
  - _make_test_stores(): isolated in-memory DBs for admins, tracker, codes
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient context for route integration tests
  - admin_headers: Bearer headers for a freshly signed-up admin

Design: named shared-memory SQLite URIs (not plain :memory:) because
TestClient runs sync route handlers in a thread pool. Plain :memory: DBs are
per-connection and would present a blank schema to each worker thread.

Environment must be set before any core/auth/api import:
  DEBUG=true               -- get_settings() auto-generates SECRET_KEY
  RATE_LIMIT_ENABLED=false -- repeated logins from one client are not throttled
  ALLOWED_HOSTS            -- TestClient sends Host: testserver
"""

from __future__ import annotations

import os
import re
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app, install_services
from auth.store import AdminStore
from core.config import get_settings
from notify.codes import CodeStore
from notify.sender import Notifier
from tracker.store import TrackerStore

_CODE_RE = re.compile(r"\b(\d{6})\b")


class RecordingNotifier(Notifier):
    """Collects (destination, subject, body) tuples instead of delivering them."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str, str]] = []

    def send(self, destination: str, subject: str, body: str) -> None:
        self.messages.append((destination, subject, body))

    def last_code(self, destination: str) -> str:
        for dest, _subject, body in reversed(self.messages):
            if dest == destination:
                match = _CODE_RE.search(body)
                if match:
                    return match.group(1)
        raise AssertionError(f"No code was sent to {destination}")


@dataclass
class ApiContext:
    client: TestClient
    admin_store: AdminStore
    tracker: TrackerStore
    codes: CodeStore
    notifier: RecordingNotifier


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _memory_url(name: str) -> str:
    return f"sqlite:///file:{name}?mode=memory&cache=shared&uri=true"


def _make_test_stores(db_suffix: str) -> tuple[AdminStore, TrackerStore, CodeStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB names so test modules
                   don't share state.
    """
    settings = get_settings()
    admin_store = AdminStore(_memory_url(f"test_admins_{db_suffix}"))
    tracker = TrackerStore(_memory_url(f"test_tracker_{db_suffix}"))
    codes = CodeStore(settings.secret_key, settings.otp_expire_seconds, db_url=_memory_url(f"test_codes_{db_suffix}"))
    return admin_store, tracker, codes


def _patch_lifespan(admin_store: AdminStore, tracker: TrackerStore, codes: CodeStore, notifier: Notifier):
    """Return a lifespan that installs the given test stores instead of real ones."""

    @asynccontextmanager
    async def test_lifespan(app):
        install_services(app, get_settings(), admin_store, tracker, codes, notifier)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiContext, None, None]:
    """Yield an ApiContext whose client talks to the real app with isolated stores.

    Module-scoped: one set of stores per test module.
    """
    suffix = request.module.__name__.replace(".", "_")
    admin_store, tracker, codes = _make_test_stores(suffix)
    notifier = RecordingNotifier()

    app.router.lifespan_context = _patch_lifespan(admin_store, tracker, codes, notifier)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(client=client, admin_store=admin_store, tracker=tracker, codes=codes, notifier=notifier)

    admin_store.close()
    tracker.close()
    codes.close()


@pytest.fixture(scope="module")
def admin_headers(api_client: ApiContext) -> dict[str, str]:
    """Sign up a dedicated admin and return its Authorization header."""
    resp = api_client.client.post("/signup", json={"username": "route-admin", "password": "route-pass-123"})
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['accessToken']}"}
