"""
Shared test fixtures for pytest.

Provides common test data for all test modules:
- now: Fixed UTC instant every test measures against
- settings: Test environment configuration
- make_grant, make_request: Record factories
- admin: The acting administrator
- service: AccessAdminService on a fixed clock with an in-app sink
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from access_governance.access.models import (
    AccessGrant,
    AccessStatus,
    PendingAccessRequest,
    RequestPriority,
)
from access_governance.audit.models import Administrator
from access_governance.config import Environment, Settings, get_settings
from access_governance.services.access_admin import AccessAdminService, AdminState
from access_governance.services.notification_center import InAppNotificationCenter

NOW = datetime(2024, 3, 15, 9, 0, tzinfo=UTC)


# ------------------------------------------------------------------ #
# Session-scoped: clear settings cache between test sessions
# ------------------------------------------------------------------ #

@pytest.fixture(autouse=True, scope="session")
def _clear_settings_cache():
    """Clear the lru_cache on get_settings so test overrides take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def settings() -> Settings:
    return Settings(environment=Environment.TEST)


@pytest.fixture
def admin() -> Administrator:
    return Administrator(
        id="admin-001",
        name="System Administrator",
        email="admin@company.com",
        ip_address="10.0.0.1",
    )


@pytest.fixture
def make_grant():
    """Factory for AccessGrant records, expiring *days_left* after NOW."""

    def _make(
        grant_id: str = "access-001",
        *,
        days_left: float = 200,
        user_id: str = "user-001",
        product_id: str = "prod-001",
        product_name: str = "Customer Analytics",
        status: AccessStatus = AccessStatus.ACTIVE,
        revocation_scheduled_at: datetime | None = None,
    ) -> AccessGrant:
        return AccessGrant(
            id=grant_id,
            user_id=user_id,
            user_name="Jane Analyst",
            user_email="jane@company.com",
            product_id=product_id,
            product_name=product_name,
            granted_at=NOW - timedelta(days=165),
            expires_at=NOW + timedelta(days=days_left),
            granted_by="admin-000",
            status=status,
            revocation_scheduled_at=revocation_scheduled_at,
        )

    return _make


@pytest.fixture
def make_request():
    """Factory for PendingAccessRequest records."""

    def _make(request_id: str = "req-001", **overrides) -> PendingAccessRequest:
        fields = {
            "id": request_id,
            "product_id": "prod-001",
            "product_name": "Customer Analytics",
            "requester_id": "user-002",
            "requester_name": "Sam Engineer",
            "requester_email": "sam@company.com",
            "bdac": "BDAC-42",
            "business_justification": "Quarterly churn modelling",
            "created_at": NOW - timedelta(days=3),
            "priority": RequestPriority.HIGH,
            "days_waiting": 3,
        }
        fields.update(overrides)
        return PendingAccessRequest(**fields)

    return _make


class Clock:
    """Mutable clock so tests can advance time between service calls."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture
def center() -> InAppNotificationCenter:
    return InAppNotificationCenter()


@pytest.fixture
def service(settings, clock, center, make_grant, make_request) -> AccessAdminService:
    state = AdminState(
        pending_requests=[make_request("req-001"), make_request("req-002")],
        grants=[
            make_grant("access-001", days_left=200),
            make_grant("access-002", days_left=20, user_id="user-003", product_id="prod-002",
                       product_name="Sensitive HR Records"),
        ],
    )
    return AccessAdminService(state, settings=settings, sink=center, clock=clock)
