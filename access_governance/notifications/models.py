"""Notification records: scheduled instances, catalog templates, rendered payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class NotificationType(StrEnum):
    """Kind of scheduled notification instance."""

    EXPIRATION_REMINDER = "expiration_reminder"
    REVOCATION_NOTICE = "revocation_notice"
    REVOCATION_REMINDER = "revocation_reminder"


class TemplateType(StrEnum):
    """Message type carried by a catalog template and its rendered output."""

    ACCESS_EXPIRING_SOON = "access_expiring_soon"
    ACCESS_REVOCATION_SCHEDULED = "access_revocation_scheduled"
    ACCESS_REVOCATION_IMMINENT = "access_revocation_imminent"
    ACCESS_RENEWED = "access_renewed"
    ACCESS_FORCE_REVOKED = "access_force_revoked"


class UrgencyLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TemplateCategory(StrEnum):
    EXPIRATION = "expiration"
    REVOCATION = "revocation"
    RENEWAL = "renewal"
    ADMINISTRATIVE = "administrative"


class BatchTarget(StrEnum):
    """Which tier family a batch request selects from."""

    EXPIRATION = "expiration"
    REVOCATION = "revocation"


@dataclass(frozen=True)
class ScheduledNotification:
    """A single future-dated notification instance.

    ``id`` is derived from (access or notice id, type, offset) so that
    regenerating a schedule never yields duplicates.
    """

    id: str
    access_id: str
    user_id: str
    user_name: str
    user_email: str
    product_id: str
    product_name: str
    notification_type: NotificationType
    scheduled_date: datetime
    target_date: datetime
    days_before_target: int
    created_at: datetime
    sent: bool = False
    sent_at: datetime | None = None


@dataclass(frozen=True)
class NotificationTemplate:
    """Immutable catalog row."""

    id: str
    type: TemplateType
    title: str
    message_template: str
    variables: tuple[str, ...]
    urgency_level: UrgencyLevel
    category: TemplateCategory


@dataclass(frozen=True)
class BatchNotificationRequest:
    user_id: str
    user_name: str
    user_email: str
    product_id: str
    product_name: str
    target_date: datetime
    notification_type: BatchTarget
    days_until_target: int


@dataclass(frozen=True)
class RenderedNotification:
    """Delivery-ready payload handed to a NotificationSink."""

    user_id: str | None
    user_name: str | None
    user_email: str | None
    product_id: str | None
    product_name: str | None
    title: str
    message: str
    urgency_level: UrgencyLevel
    type: TemplateType


@dataclass(frozen=True)
class ExpirationReminderPayload:
    """Delivery input for a due expiration reminder."""

    notification_id: str
    user_id: str
    user_name: str
    user_email: str
    product_id: str
    product_name: str
    expiration_date: datetime
    days_until_expiration: int


@dataclass(frozen=True)
class RevocationNoticePayload:
    """Delivery input for a due revocation notice or reminder."""

    notification_id: str
    notification_type: NotificationType
    user_id: str
    user_name: str
    user_email: str
    product_id: str
    product_name: str
    revocation_date: datetime
