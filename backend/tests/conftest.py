"""
Shared test fixtures for LotFlow tests

Provides the in-memory document store, a controllable clock, the
dashboard order cache and an HTTP client with dependencies overridden.
"""
import hashlib

import pytest
from fastapi.testclient import TestClient

from lotflow.api.v1.deps import get_current_caller
from lotflow.core.limiter import limiter
from lotflow.core.settings import get_settings
from lotflow.db.firestore import get_db
from lotflow.main import app
from lotflow.schemas.auth import CallerIdentity
from lotflow.services.dashboard_order import DashboardOrderCache, dashboard_order_cache
from tests.factories import ADMIN_PASSWORD
from tests.memory_store import InMemoryStore

# Disable rate limiting for tests
limiter.enabled = False


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def order_cache(clock):
    return DashboardOrderCache(ttl_seconds=300, clock=clock)


@pytest.fixture(autouse=True)
def reset_shared_cache():
    """The process-wide dashboard order cache must not leak between tests."""
    dashboard_order_cache.invalidate()
    yield
    dashboard_order_cache.invalidate()


@pytest.fixture
def admin_password_hash(monkeypatch):
    """Configure ADMIN_PASSWORD_HASH for ADMIN_PASSWORD."""
    digest = hashlib.sha256(ADMIN_PASSWORD.encode("utf-8")).hexdigest()
    monkeypatch.setattr(get_settings(), "ADMIN_PASSWORD_HASH", digest)
    return digest


@pytest.fixture
def caller():
    return CallerIdentity(uid="user-admin", email="admin@example.com")


@pytest.fixture
def client(store, caller):
    """Create a test client with store and caller overrides"""
    def override_get_db():
        yield store

    async def override_get_current_caller():
        return caller

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_caller] = override_get_current_caller
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(store):
    """Test client without a caller override (real bearer-token dependency)."""
    def override_get_db():
        yield store

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
