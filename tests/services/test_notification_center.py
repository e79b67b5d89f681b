"""Tests for the in-app notification centre."""

from __future__ import annotations

from access_governance.notifications.models import (
    RenderedNotification,
    TemplateType,
    UrgencyLevel,
)
from access_governance.services.notification_center import InAppNotificationCenter


def _payload(title: str) -> RenderedNotification:
    return RenderedNotification(
        user_id="user-001",
        user_name="Jane Analyst",
        user_email="jane@company.com",
        product_id="prod-001",
        product_name="Customer Analytics",
        title=title,
        message=f"{title} message",
        urgency_level=UrgencyLevel.LOW,
        type=TemplateType.ACCESS_RENEWED,
    )


class TestInAppNotificationCenter:
    def test_newest_first(self) -> None:
        center = InAppNotificationCenter()
        center.deliver(_payload("first"))
        center.deliver(_payload("second"))
        assert [n.title for n in center.notifications] == ["second", "first"]
        assert center.notifications[0].id.startswith("notif-")
        assert center.notifications[0].type == "access_renewed"
        assert center.unread_count() == 2

    def test_mark_as_read(self) -> None:
        center = InAppNotificationCenter()
        center.deliver(_payload("one"))
        center.deliver(_payload("two"))
        target = center.notifications[1].id

        assert center.mark_as_read(target) is True
        assert center.unread_count() == 1
        assert [n.title for n in center.unread()] == ["two"]
        assert center.mark_as_read("notif-missing") is False

    def test_mark_all_and_clear(self) -> None:
        center = InAppNotificationCenter()
        center.deliver(_payload("one"))
        center.deliver(_payload("two"))
        center.mark_all_as_read()
        assert center.unread_count() == 0
        center.clear()
        assert center.notifications == []

    def test_remove(self) -> None:
        center = InAppNotificationCenter()
        center.deliver(_payload("one"))
        notification_id = center.notifications[0].id
        assert center.remove(notification_id) is True
        assert center.remove(notification_id) is False
        assert center.notifications == []
