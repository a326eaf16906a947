import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ADMIN_TOKEN", "admin-token")
os.environ.setdefault("ALLOW_INSECURE_HTTP", "true")

import pytest

from ewaiter.config import Settings
from ewaiter.context import AppContext
from tests.mocks.identity import FakeIdentityProvider
from tests.mocks.memory_store import InMemoryDocumentStore

TENANTS = "Restaurants"


def make_settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": "test-secret",
        "ADMIN_TOKEN": "admin-token",
        "ALLOW_INSECURE_HTTP": True,
        "DEVICE_SCAN_TIMEOUT_SECONDS": 1.0,
    }
    values.update(overrides)
    return Settings(**values)


def devices_of(tenant_id: str) -> str:
    return f"{TENANTS}/{tenant_id}/Devices"


def sessions_of(tenant_id: str) -> str:
    return f"{TENANTS}/{tenant_id}/Sessions"


@pytest.fixture
def store() -> InMemoryDocumentStore:
    store = InMemoryDocumentStore()
    store.put(TENANTS, "7", {"restaurantName": "Seven Seas", "ownerPrincipal": "uid-seven", "ownerEmail": "owner@seven.test"})
    store.put(TENANTS, "42", {"restaurantName": "Answer Bistro", "email": "a@b.com", "userId": "uid-a"})
    store.put(TENANTS, "99", {"restaurantName": "Elsewhere", "ownerPrincipal": "uid-other", "ownerEmail": "other@elsewhere.test"})
    return store


@pytest.fixture
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider(
        {
            "owner@seven.test": ("uid-seven", "pw-seven"),
            "A@B.com": ("uid-a", "pw-a"),
            "other@elsewhere.test": ("uid-other", "pw-other"),
        }
    )


@pytest.fixture
def registry_context(store) -> AppContext:
    return AppContext.build(make_settings(AUTH_FLOW="registry"), store=store)


@pytest.fixture
def session_context(store) -> AppContext:
    return AppContext.build(make_settings(AUTH_FLOW="session"), store=store)
