"""In-app notification centre.

The delivery sink the admin service hands rendered notifications to. It
keeps them in memory, newest first, with per-item read state. Real
delivery channels (email, push) would implement the same
``NotificationSink`` protocol.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

import structlog

from access_governance.core.dates import utcnow
from access_governance.notifications.models import RenderedNotification, UrgencyLevel

log = structlog.get_logger(__name__)


class NotificationSink(Protocol):
    """Anything that can accept a rendered notification."""

    def deliver(self, payload: RenderedNotification) -> None: ...


@dataclass(frozen=True)
class DeliveredNotification:
    id: str
    type: str
    title: str
    message: str
    urgency_level: UrgencyLevel
    created_at: datetime
    user_id: str | None = None
    product_id: str | None = None
    product_name: str | None = None
    read: bool = False


class InAppNotificationCenter:
    """In-memory inbox implementing ``NotificationSink``."""

    def __init__(self) -> None:
        self._items: list[DeliveredNotification] = []

    def deliver(self, payload: RenderedNotification) -> None:
        item = DeliveredNotification(
            id=f"notif-{uuid.uuid4().hex[:12]}",
            type=str(payload.type),
            title=payload.title,
            message=payload.message,
            urgency_level=payload.urgency_level,
            created_at=utcnow(),
            user_id=payload.user_id,
            product_id=payload.product_id,
            product_name=payload.product_name,
        )
        self._items.insert(0, item)
        log.debug("notification_center.delivered", notification_id=item.id, type=item.type)

    @property
    def notifications(self) -> list[DeliveredNotification]:
        return list(self._items)

    def unread(self) -> list[DeliveredNotification]:
        return [n for n in self._items if not n.read]

    def unread_count(self) -> int:
        return sum(1 for n in self._items if not n.read)

    def mark_as_read(self, notification_id: str) -> bool:
        """Mark one notification read. Returns False if the id is unknown."""
        for index, item in enumerate(self._items):
            if item.id == notification_id:
                self._items[index] = replace(item, read=True)
                return True
        return False

    def mark_all_as_read(self) -> None:
        self._items = [replace(n, read=True) if not n.read else n for n in self._items]

    def remove(self, notification_id: str) -> bool:
        before = len(self._items)
        self._items = [n for n in self._items if n.id != notification_id]
        return len(self._items) < before

    def clear(self) -> None:
        self._items.clear()
