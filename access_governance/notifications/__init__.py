"""Access lifecycle notifications.

Key components:
- scheduler: computes when expiration reminders and revocation notices fire
- templates: the fixed message catalog and tier selection
- models: scheduled instances, templates and rendered payloads
"""

from __future__ import annotations

from access_governance.notifications.models import (
    BatchNotificationRequest,
    BatchTarget,
    NotificationTemplate,
    NotificationType,
    RenderedNotification,
    ScheduledNotification,
    TemplateCategory,
    TemplateType,
    UrgencyLevel,
)
from access_governance.notifications.scheduler import (
    NotificationSchedulerConfig,
    validate_config,
)
from access_governance.notifications.templates import TemplateSelectionError

__all__ = [
    "BatchNotificationRequest",
    "BatchTarget",
    "NotificationSchedulerConfig",
    "NotificationTemplate",
    "NotificationType",
    "RenderedNotification",
    "ScheduledNotification",
    "TemplateCategory",
    "TemplateSelectionError",
    "TemplateType",
    "UrgencyLevel",
    "validate_config",
]
