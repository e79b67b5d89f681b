"""Access domain: requests, grants, revocation notices and their transitions."""

from __future__ import annotations

from access_governance.access.models import (
    AccessGrant,
    AccessLevel,
    AccessStatus,
    PendingAccessRequest,
    RequestPriority,
    RequestStatus,
    RevocationNotice,
)

__all__ = [
    "AccessGrant",
    "AccessLevel",
    "AccessStatus",
    "PendingAccessRequest",
    "RequestPriority",
    "RequestStatus",
    "RevocationNotice",
]
