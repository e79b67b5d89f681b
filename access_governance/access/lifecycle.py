"""Pure state transitions for access grants.

Each function takes the current records plus ``now`` and returns new
records. Nothing here touches shared state or logs; the orchestration
layer applies the results and records audit entries.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta

from access_governance.access.models import (
    AccessGrant,
    AccessLevel,
    AccessStatus,
    PendingAccessRequest,
    RevocationNotice,
)

_ACTIVE_STATES = (AccessStatus.ACTIVE, AccessStatus.EXPIRING_SOON)


def _short_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def grant_from_request(
    request: PendingAccessRequest,
    *,
    granted_by: str,
    now: datetime,
    validity: timedelta,
    access_level: AccessLevel = AccessLevel.READ,
) -> AccessGrant:
    """Build the grant created when *request* is approved."""
    return AccessGrant(
        id=_short_id("access"),
        user_id=request.requester_id,
        user_name=request.requester_name,
        user_email=request.requester_email,
        product_id=request.product_id,
        product_name=request.product_name,
        granted_at=now,
        expires_at=now + validity,
        granted_by=granted_by,
        access_level=access_level,
        status=AccessStatus.ACTIVE,
    )


def renew_grant(grant: AccessGrant, *, now: datetime, validity: timedelta) -> AccessGrant:
    """Extend *grant* and cancel any pending revocation."""
    return replace(
        grant,
        expires_at=now + validity,
        status=AccessStatus.ACTIVE,
        revocation_scheduled_at=None,
        revocation_notification_sent=False,
    )


def schedule_revocation(
    grant: AccessGrant,
    *,
    now: datetime,
    notice_period: timedelta,
) -> tuple[AccessGrant, RevocationNotice]:
    """Mark *grant* for revocation after *notice_period* and create its notice."""
    revocation_date = now + notice_period
    updated = replace(
        grant,
        status=AccessStatus.SCHEDULED_FOR_REVOCATION,
        revocation_scheduled_at=revocation_date,
        revocation_notification_sent=False,
    )
    notice = RevocationNotice(
        id=_short_id("notice"),
        access_id=grant.id,
        user_id=grant.user_id,
        scheduled_revocation_date=revocation_date,
        notification_date=now,
        created_at=now,
    )
    return updated, notice


def refresh_status(grant: AccessGrant, *, now: datetime, expiring_window: timedelta) -> AccessGrant:
    """Flip between ``active`` and ``expiring_soon`` based on time left.

    Grants under revocation scheduling keep their status.
    """
    if grant.status not in _ACTIVE_STATES:
        return grant
    status = (
        AccessStatus.EXPIRING_SOON
        if grant.expires_at - now <= expiring_window
        else AccessStatus.ACTIVE
    )
    return grant if status == grant.status else replace(grant, status=status)


@dataclass
class ExpiryOutcome:
    """Partition of grants after natural expiry processing."""

    retained: list[AccessGrant] = field(default_factory=list)
    expired: list[AccessGrant] = field(default_factory=list)
    revoked: list[AccessGrant] = field(default_factory=list)
    notices: list[RevocationNotice] = field(default_factory=list)


def process_expirations(
    grants: Iterable[AccessGrant],
    notices: Iterable[RevocationNotice],
    *,
    now: datetime,
    expiring_window: timedelta,
) -> ExpiryOutcome:
    """Drop expired grants and enforce revocations whose date has passed.

    Retained grants get their ``expiring_soon`` flag refreshed. Notices
    belonging to removed grants are dropped.
    """
    outcome = ExpiryOutcome()
    for grant in grants:
        if (
            grant.status == AccessStatus.SCHEDULED_FOR_REVOCATION
            and grant.revocation_scheduled_at is not None
            and grant.revocation_scheduled_at <= now
        ):
            outcome.revoked.append(replace(grant, status=AccessStatus.REVOKED))
        elif grant.expires_at <= now:
            outcome.expired.append(grant)
        else:
            outcome.retained.append(
                refresh_status(grant, now=now, expiring_window=expiring_window)
            )

    removed = {g.id for g in outcome.expired} | {g.id for g in outcome.revoked}
    outcome.notices = [n for n in notices if n.access_id not in removed]
    return outcome
