"""Access domain records: pending requests, grants and revocation notices.

Records are frozen dataclasses. State changes build new records with
``dataclasses.replace``; the orchestration layer owns the only mutable
collections (see ``access_governance.services.access_admin``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class AccessLevel(StrEnum):
    READ = "read"
    WRITE = "write"
    ADMIN = "admin"


class AccessStatus(StrEnum):
    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    SCHEDULED_FOR_REVOCATION = "scheduled_for_revocation"
    REVOKED = "revoked"


class RequestStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


class RequestPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class PendingAccessRequest:
    """A user's request for access to a data product, awaiting review."""

    id: str
    product_id: str
    product_name: str
    requester_id: str
    requester_name: str
    requester_email: str
    bdac: str
    business_justification: str
    created_at: datetime
    priority: RequestPriority = RequestPriority.MEDIUM
    status: RequestStatus = RequestStatus.PENDING
    days_waiting: int = 0
    admin_notes: str | None = None
    escalated: bool = False


@dataclass(frozen=True)
class AccessGrant:
    """A permission currently held by a user on a data product."""

    id: str
    user_id: str
    user_name: str
    user_email: str
    product_id: str
    product_name: str
    granted_at: datetime
    expires_at: datetime
    granted_by: str
    access_level: AccessLevel = AccessLevel.READ
    status: AccessStatus = AccessStatus.ACTIVE
    revocation_scheduled_at: datetime | None = None
    revocation_notification_sent: bool = False

    def __post_init__(self) -> None:
        if self.expires_at <= self.granted_at:
            raise ValueError(
                f"Grant {self.id!r} must expire after it is granted "
                f"(granted_at={self.granted_at.isoformat()}, "
                f"expires_at={self.expires_at.isoformat()})"
            )


@dataclass(frozen=True)
class RevocationNotice:
    """Record that a grant has been scheduled for revocation.

    One-to-one with an AccessGrant in ``scheduled_for_revocation`` status.
    """

    id: str
    access_id: str
    user_id: str
    scheduled_revocation_date: datetime
    notification_date: datetime
    created_at: datetime
    notification_sent: bool = False
    reminders_sent: int = 0
