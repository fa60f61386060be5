"""Pytest configuration for the People Picker test suite."""

import os

import pytest
from cryptography.fernet import Fernet


def _ensure_test_env() -> None:
    """Seed required environment variables for tests."""
    os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
    os.environ.setdefault("ADMIN_EMAILS", "admin@example.com")
    os.environ.setdefault("TENANCY_SECRET_KEY", Fernet.generate_key().decode())


_ensure_test_env()

from fastapi.testclient import TestClient  # noqa: E402

from src.application.api import (  # noqa: E402
    domain_routes,
    ooo_routes,
    presence_routes,
    routes,
    routing_routes,
    tenancy_routes,
)
from src.domain.models.audit_models import RequestContext  # noqa: E402
from src.main import app  # noqa: E402
from src.services.secret_cipher import SecretCipher  # noqa: E402
from tests.fakes import (  # noqa: E402
    FakeCacheStore,
    FakeClock,
    InMemoryAuditRepository,
    InMemoryTenancyRepository,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_store() -> FakeCacheStore:
    return FakeCacheStore()


@pytest.fixture
def tenancy_repository(clock) -> InMemoryTenancyRepository:
    return InMemoryTenancyRepository(clock)


@pytest.fixture
def audit_repository() -> InMemoryAuditRepository:
    return InMemoryAuditRepository()


@pytest.fixture
def cipher() -> SecretCipher:
    return SecretCipher(Fernet.generate_key().decode())


@pytest.fixture
def admin_ctx() -> RequestContext:
    return RequestContext(admin_email="admin@example.com", ip_address="10.0.0.1", user_agent="pytest")


ROUTE_MODULES = (routes, presence_routes, ooo_routes, tenancy_routes, domain_routes, routing_routes)


@pytest.fixture
def api_client(monkeypatch):
    """Build a TestClient whose routes resolve services from ``container``."""
    monkeypatch.setenv("ADMIN_EMAILS", "admin@example.com")

    def build(container) -> TestClient:
        for module in ROUTE_MODULES:
            monkeypatch.setattr(module, "get_container", lambda: container)
        return TestClient(app)

    return build
