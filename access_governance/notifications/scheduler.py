"""Notification scheduler for access lifecycle reminders.

Computes when expiration reminders and revocation notices must fire,
selects the ones that are due, and keeps the scheduled set tidy.

Scheduling rules:
- Expiration reminders fire ``d`` days before ``expires_at`` for every
  configured offset ``d``. Grants already scheduled for revocation are
  skipped; they follow the revocation path instead.
- A revocation notice produces one initial notice (dated at the notice's
  ``notification_date``) plus a reminder ``d`` days before the revocation
  date for every configured revocation offset.
- Only future-dated reminders are generated. Missed reminders are never
  backfilled; a periodic regeneration picks up new grants instead.

Notification ids are derived from (access or notice id, type, offset), so
regenerating a schedule is idempotent. Every function here is pure: inputs
are never mutated and new lists are returned.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any

import structlog

from access_governance.access.models import AccessGrant, AccessStatus, RevocationNotice
from access_governance.config import Settings, get_settings
from access_governance.core.dates import ONE_DAY, days_until, utcnow
from access_governance.notifications.models import (
    ExpirationReminderPayload,
    NotificationType,
    RevocationNoticePayload,
    ScheduledNotification,
)

log = structlog.get_logger(__name__)

# The initial revocation notice always announces the full notice window.
INITIAL_NOTICE_DAYS = 30

MAX_EXPIRATION_OFFSET = 365
MAX_REVOCATION_OFFSET = 30


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NotificationSchedulerConfig:
    """Reminder offsets and batching knobs."""

    expiration_reminder_days: tuple[int, ...] = (30, 7, 1)
    revocation_reminder_days: tuple[int, ...] = (7, 1)
    enable_batch_processing: bool = True
    max_batch_size: int = 50

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> NotificationSchedulerConfig:
        settings = settings or get_settings()
        return cls(
            expiration_reminder_days=tuple(settings.expiration_reminder_days),
            revocation_reminder_days=tuple(settings.revocation_reminder_days),
            enable_batch_processing=settings.enable_batch_processing,
            max_batch_size=settings.max_batch_size,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "expiration_reminder_days": list(self.expiration_reminder_days),
            "revocation_reminder_days": list(self.revocation_reminder_days),
            "enable_batch_processing": self.enable_batch_processing,
            "max_batch_size": self.max_batch_size,
        }


@dataclass(frozen=True)
class ConfigValidation:
    is_valid: bool
    errors: list[str] = field(default_factory=list)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_offsets(name: str, values: Any, upper: int, errors: list[str]) -> None:
    if not isinstance(values, list | tuple) or not values:
        errors.append(f"{name} must be a non-empty list")
        return
    if not all(_is_int(v) and 1 <= v <= upper for v in values):
        errors.append(f"{name} must contain values between 1 and {upper}")


def validate_config(config: NotificationSchedulerConfig) -> ConfigValidation:
    """Check types and ranges of *config*.

    Offsets must be non-empty sequences of integers; expiration offsets lie
    in [1, 365] and revocation offsets in [1, 30]. Never raises.
    """
    errors: list[str] = []
    _check_offsets(
        "expiration_reminder_days", config.expiration_reminder_days, MAX_EXPIRATION_OFFSET, errors
    )
    _check_offsets(
        "revocation_reminder_days", config.revocation_reminder_days, MAX_REVOCATION_OFFSET, errors
    )
    if not isinstance(config.enable_batch_processing, bool):
        errors.append("enable_batch_processing must be a boolean")
    size = config.max_batch_size
    if not (isinstance(size, int | float) and not isinstance(size, bool) and size > 0):
        errors.append("max_batch_size must be a positive number")
    return ConfigValidation(is_valid=not errors, errors=errors)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def generate_expiration_reminders(
    grants: Iterable[AccessGrant],
    config: NotificationSchedulerConfig | None = None,
    now: datetime | None = None,
) -> list[ScheduledNotification]:
    """Schedule a reminder per configured offset for every eligible grant.

    Args:
        grants: Current grants.
        config: Reminder offsets. Defaults to ``NotificationSchedulerConfig()``.
        now: Generation instant. Only reminders strictly after it are emitted.

    Returns:
        New ScheduledNotification records, ids ``exp-reminder-{access}-{N}d``.
    """
    config = config or NotificationSchedulerConfig()
    now = now or utcnow()
    scheduled: list[ScheduledNotification] = []

    for grant in grants:
        if grant.status == AccessStatus.SCHEDULED_FOR_REVOCATION:
            continue
        for days_before in config.expiration_reminder_days:
            reminder_date = grant.expires_at - days_before * ONE_DAY
            if reminder_date <= now:
                continue
            scheduled.append(
                ScheduledNotification(
                    id=f"exp-reminder-{grant.id}-{days_before}d",
                    access_id=grant.id,
                    user_id=grant.user_id,
                    user_name=grant.user_name,
                    user_email=grant.user_email,
                    product_id=grant.product_id,
                    product_name=grant.product_name,
                    notification_type=NotificationType.EXPIRATION_REMINDER,
                    scheduled_date=reminder_date,
                    target_date=grant.expires_at,
                    days_before_target=days_before,
                    created_at=now,
                )
            )
    return scheduled


def generate_revocation_notices(
    notices: Iterable[RevocationNotice],
    grants: Iterable[AccessGrant],
    config: NotificationSchedulerConfig | None = None,
    now: datetime | None = None,
) -> list[ScheduledNotification]:
    """Schedule the initial notice and reminders for each revocation notice.

    Notices whose grant no longer exists are skipped. The initial notice is
    emitted only while ``notification_sent`` is False and is dated at the
    notice's ``notification_date`` even when that is already past, so it
    becomes due immediately. Reminders are future-only.
    """
    config = config or NotificationSchedulerConfig()
    now = now or utcnow()
    by_id = {grant.id: grant for grant in grants}
    scheduled: list[ScheduledNotification] = []

    for notice in notices:
        grant = by_id.get(notice.access_id)
        if grant is None:
            log.debug("scheduler.orphan_notice_skipped", notice_id=notice.id)
            continue

        common = {
            "access_id": notice.access_id,
            "user_id": notice.user_id,
            "user_name": grant.user_name,
            "user_email": grant.user_email,
            "product_id": grant.product_id,
            "product_name": grant.product_name,
            "target_date": notice.scheduled_revocation_date,
        }

        if not notice.notification_sent:
            scheduled.append(
                ScheduledNotification(
                    id=f"rev-notice-{notice.id}",
                    notification_type=NotificationType.REVOCATION_NOTICE,
                    scheduled_date=notice.notification_date,
                    days_before_target=INITIAL_NOTICE_DAYS,
                    created_at=notice.created_at,
                    **common,
                )
            )

        for days_before in config.revocation_reminder_days:
            reminder_date = notice.scheduled_revocation_date - days_before * ONE_DAY
            if reminder_date <= now:
                continue
            scheduled.append(
                ScheduledNotification(
                    id=f"rev-reminder-{notice.id}-{days_before}d",
                    notification_type=NotificationType.REVOCATION_REMINDER,
                    scheduled_date=reminder_date,
                    days_before_target=days_before,
                    created_at=now,
                    **common,
                )
            )
    return scheduled


def merge_schedule(
    existing: Sequence[ScheduledNotification],
    generated: Iterable[ScheduledNotification],
    *,
    keep_sent: bool = False,
) -> list[ScheduledNotification]:
    """Merge freshly generated notifications into an existing schedule.

    Existing entries win on id collisions. A full regeneration drops sent
    entries (``keep_sent=False``); targeted scheduling keeps them.
    """
    known = {n.id for n in existing}
    kept = list(existing) if keep_sent else [n for n in existing if not n.sent]
    added: list[ScheduledNotification] = []
    for notification in generated:
        if notification.id in known:
            continue
        known.add(notification.id)
        added.append(notification)
    return kept + added


# ---------------------------------------------------------------------------
# Due-set processing
# ---------------------------------------------------------------------------


def get_due_notifications(
    scheduled: Iterable[ScheduledNotification],
    now: datetime | None = None,
) -> list[ScheduledNotification]:
    """Unsent notifications whose scheduled date is at or before *now*."""
    now = now or utcnow()
    return [n for n in scheduled if not n.sent and n.scheduled_date <= now]


def group_by_type(
    notifications: Iterable[ScheduledNotification],
) -> dict[NotificationType, list[ScheduledNotification]]:
    groups: dict[NotificationType, list[ScheduledNotification]] = defaultdict(list)
    for notification in notifications:
        groups[notification.notification_type].append(notification)
    return dict(groups)


@dataclass
class DueNotificationBatch:
    """Delivery payloads for everything currently due."""

    expiration_reminders: list[ExpirationReminderPayload] = field(default_factory=list)
    revocation_notices: list[RevocationNoticePayload] = field(default_factory=list)
    processed_ids: list[str] = field(default_factory=list)


def process_due_notifications(
    scheduled: Sequence[ScheduledNotification],
    now: datetime | None = None,
) -> DueNotificationBatch:
    """Project due notifications into delivery payloads.

    Days until expiration are recomputed from *now* rather than taken from
    ``days_before_target``, since processing may run late. Revocation
    notices and reminders share one output list. This is a read: nothing
    is marked sent here.
    """
    now = now or utcnow()
    due = get_due_notifications(scheduled, now)
    grouped = group_by_type(due)

    batch = DueNotificationBatch(processed_ids=[n.id for n in due])
    for n in grouped.get(NotificationType.EXPIRATION_REMINDER, []):
        batch.expiration_reminders.append(
            ExpirationReminderPayload(
                notification_id=n.id,
                user_id=n.user_id,
                user_name=n.user_name,
                user_email=n.user_email,
                product_id=n.product_id,
                product_name=n.product_name,
                expiration_date=n.target_date,
                days_until_expiration=days_until(n.target_date, now),
            )
        )

    revocations = grouped.get(NotificationType.REVOCATION_NOTICE, []) + grouped.get(
        NotificationType.REVOCATION_REMINDER, []
    )
    for n in revocations:
        batch.revocation_notices.append(
            RevocationNoticePayload(
                notification_id=n.id,
                notification_type=n.notification_type,
                user_id=n.user_id,
                user_name=n.user_name,
                user_email=n.user_email,
                product_id=n.product_id,
                product_name=n.product_name,
                revocation_date=n.target_date,
            )
        )
    return batch


def mark_as_sent(
    scheduled: Iterable[ScheduledNotification],
    ids: Iterable[str],
    now: datetime | None = None,
) -> list[ScheduledNotification]:
    """Return a copy of *scheduled* with the given ids flagged as sent.

    Entries already sent keep their original ``sent_at``.
    """
    now = now or utcnow()
    wanted = set(ids)
    return [
        replace(n, sent=True, sent_at=now) if n.id in wanted and not n.sent else n
        for n in scheduled
    ]


def cleanup_old_notifications(
    scheduled: Iterable[ScheduledNotification],
    retention_days: int = 90,
    now: datetime | None = None,
) -> list[ScheduledNotification]:
    """Drop sent notifications older than *retention_days*.

    Age is measured from ``sent_at`` (or ``created_at`` when missing).
    Unsent notifications are always kept.
    """
    now = now or utcnow()
    cutoff = now - timedelta(days=retention_days)
    return [n for n in scheduled if not n.sent or (n.sent_at or n.created_at) > cutoff]


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


@dataclass
class TypeStats:
    total: int = 0
    sent: int = 0
    pending: int = 0


@dataclass
class NotificationStats:
    """Counts over a scheduled set.

    ``pending`` and ``overdue`` partition the unsent entries. Per-type
    ``pending`` counts every unsent entry of that type.
    """

    total: int = 0
    sent: int = 0
    pending: int = 0
    overdue: int = 0
    by_type: dict[str, TypeStats] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "sent": self.sent,
            "pending": self.pending,
            "overdue": self.overdue,
            "by_type": {
                key: {"total": s.total, "sent": s.sent, "pending": s.pending}
                for key, s in self.by_type.items()
            },
        }


def get_stats(
    scheduled: Iterable[ScheduledNotification],
    now: datetime | None = None,
) -> NotificationStats:
    now = now or utcnow()
    stats = NotificationStats()
    for n in scheduled:
        stats.total += 1
        if n.sent:
            stats.sent += 1
        elif n.scheduled_date < now:
            stats.overdue += 1
        else:
            stats.pending += 1

        per_type = stats.by_type.setdefault(str(n.notification_type), TypeStats())
        per_type.total += 1
        if n.sent:
            per_type.sent += 1
        else:
            per_type.pending += 1
    return stats
