"""Tests for the notification scheduler.

Covers:
- Idempotent, future-only expiration reminder generation
- Revocation notice + reminder generation, orphan skipping
- Due-set selection and payload projection
- mark_as_sent, cleanup retention, statistics
- Config validation messages
"""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from access_governance.access.models import AccessStatus, RevocationNotice
from access_governance.notifications import scheduler
from access_governance.notifications.models import NotificationType, ScheduledNotification
from access_governance.notifications.scheduler import NotificationSchedulerConfig


def _notification(now, notification_id: str, **overrides) -> ScheduledNotification:
    fields = {
        "id": notification_id,
        "access_id": "access-001",
        "user_id": "user-001",
        "user_name": "Jane Analyst",
        "user_email": "jane@company.com",
        "product_id": "prod-001",
        "product_name": "Customer Analytics",
        "notification_type": NotificationType.EXPIRATION_REMINDER,
        "scheduled_date": now,
        "target_date": now + timedelta(days=7),
        "days_before_target": 7,
        "created_at": now - timedelta(days=1),
    }
    fields.update(overrides)
    return ScheduledNotification(**fields)


def _notice(now, access_id: str = "access-001", **overrides) -> RevocationNotice:
    fields = {
        "id": "notice-001",
        "access_id": access_id,
        "user_id": "user-001",
        "scheduled_revocation_date": now + timedelta(days=30),
        "notification_date": now,
        "created_at": now,
    }
    fields.update(overrides)
    return RevocationNotice(**fields)


class TestExpirationReminders:
    """generate_expiration_reminders"""

    def test_one_reminder_per_offset(self, make_grant, now) -> None:
        grant = make_grant(days_left=200)
        reminders = scheduler.generate_expiration_reminders([grant], now=now)
        assert [r.id for r in reminders] == [
            "exp-reminder-access-001-30d",
            "exp-reminder-access-001-7d",
            "exp-reminder-access-001-1d",
        ]
        assert reminders[0].scheduled_date == grant.expires_at - timedelta(days=30)
        assert all(r.target_date == grant.expires_at for r in reminders)
        assert all(r.notification_type == NotificationType.EXPIRATION_REMINDER for r in reminders)

    def test_generation_is_idempotent(self, make_grant, now) -> None:
        """Repeated generation yields the same ids and no duplicates once merged."""
        grants = [make_grant("access-001"), make_grant("access-002", days_left=90)]
        first = scheduler.generate_expiration_reminders(grants, now=now)
        second = scheduler.generate_expiration_reminders(grants, now=now)
        assert [n.id for n in first] == [n.id for n in second]

        merged = scheduler.merge_schedule(first, second)
        assert len(merged) == len(first)
        assert len({n.id for n in merged}) == len(merged)

    def test_only_future_reminders(self, make_grant, now) -> None:
        """A grant expiring in 5 days only gets its 1-day reminder."""
        reminders = scheduler.generate_expiration_reminders([make_grant(days_left=5)], now=now)
        assert [r.days_before_target for r in reminders] == [1]
        assert all(r.scheduled_date > now for r in reminders)

    def test_reminder_exactly_now_is_excluded(self, make_grant, now) -> None:
        reminders = scheduler.generate_expiration_reminders([make_grant(days_left=7)], now=now)
        assert [r.days_before_target for r in reminders] == [1]

    def test_skips_grants_scheduled_for_revocation(self, make_grant, now) -> None:
        grant = make_grant(status=AccessStatus.SCHEDULED_FOR_REVOCATION)
        assert scheduler.generate_expiration_reminders([grant], now=now) == []

    def test_custom_offsets(self, make_grant, now) -> None:
        config = NotificationSchedulerConfig(expiration_reminder_days=(14,))
        reminders = scheduler.generate_expiration_reminders([make_grant()], config, now)
        assert [r.id for r in reminders] == ["exp-reminder-access-001-14d"]


class TestRevocationNotices:
    """generate_revocation_notices"""

    def test_initial_notice_and_reminders(self, make_grant, now) -> None:
        grant = make_grant(status=AccessStatus.SCHEDULED_FOR_REVOCATION)
        notice = _notice(now)
        generated = scheduler.generate_revocation_notices([notice], [grant], now=now)

        assert [n.id for n in generated] == [
            "rev-notice-notice-001",
            "rev-reminder-notice-001-7d",
            "rev-reminder-notice-001-1d",
        ]
        initial = generated[0]
        assert initial.notification_type == NotificationType.REVOCATION_NOTICE
        assert initial.scheduled_date == notice.notification_date
        assert initial.days_before_target == 30
        assert initial.product_name == grant.product_name
        assert all(n.target_date == notice.scheduled_revocation_date for n in generated)

    def test_initial_notice_skipped_once_sent(self, make_grant, now) -> None:
        notice = _notice(now, notification_sent=True)
        generated = scheduler.generate_revocation_notices([notice], [make_grant()], now=now)
        assert all(n.notification_type == NotificationType.REVOCATION_REMINDER for n in generated)

    def test_past_reminders_excluded(self, make_grant, now) -> None:
        notice = _notice(now, scheduled_revocation_date=now + timedelta(days=3))
        generated = scheduler.generate_revocation_notices([notice], [make_grant()], now=now)
        assert [n.id for n in generated] == [
            "rev-notice-notice-001",
            "rev-reminder-notice-001-1d",
        ]

    def test_orphan_notice_skipped(self, make_grant, now) -> None:
        notice = _notice(now, access_id="access-gone")
        assert scheduler.generate_revocation_notices([notice], [make_grant()], now=now) == []


class TestMergeSchedule:
    def test_existing_wins_on_collision(self, now) -> None:
        existing = [_notification(now, "n1", sent=True, sent_at=now)]
        merged = scheduler.merge_schedule(existing, [_notification(now, "n1")], keep_sent=True)
        assert merged == existing

    def test_full_regeneration_drops_sent(self, now) -> None:
        existing = [_notification(now, "n1", sent=True, sent_at=now), _notification(now, "n2")]
        merged = scheduler.merge_schedule(existing, [_notification(now, "n3")])
        assert [n.id for n in merged] == ["n2", "n3"]


class TestDueNotifications:
    def test_due_set_correctness(self, now) -> None:
        past = _notification(now, "past", scheduled_date=now - timedelta(seconds=1))
        future = _notification(now, "future", scheduled_date=now + timedelta(seconds=60))
        assert scheduler.get_due_notifications([past, future], now) == [past]

    def test_sent_notifications_not_due(self, now) -> None:
        sent = _notification(now, "sent", scheduled_date=now - timedelta(days=1), sent=True)
        assert scheduler.get_due_notifications([sent], now) == []

    def test_group_by_type(self, now) -> None:
        a = _notification(now, "a")
        b = _notification(now, "b", notification_type=NotificationType.REVOCATION_REMINDER)
        groups = scheduler.group_by_type([a, b])
        assert groups[NotificationType.EXPIRATION_REMINDER] == [a]
        assert groups[NotificationType.REVOCATION_REMINDER] == [b]

    def test_process_due_projects_payloads(self, now) -> None:
        expiring = _notification(
            now,
            "exp",
            scheduled_date=now - timedelta(hours=1),
            target_date=now + timedelta(days=6, hours=2),
        )
        notice = _notification(
            now,
            "rev",
            notification_type=NotificationType.REVOCATION_NOTICE,
            scheduled_date=now - timedelta(hours=1),
            target_date=now + timedelta(days=30),
        )
        later = _notification(now, "later", scheduled_date=now + timedelta(days=1))

        batch = scheduler.process_due_notifications([expiring, notice, later], now)

        assert batch.processed_ids == ["exp", "rev"]
        assert len(batch.expiration_reminders) == 1
        # recomputed from now, rounded up
        assert batch.expiration_reminders[0].days_until_expiration == 7
        assert batch.revocation_notices[0].notification_id == "rev"
        assert batch.revocation_notices[0].notification_type == NotificationType.REVOCATION_NOTICE

    def test_process_due_does_not_mark_sent(self, now) -> None:
        scheduled = [_notification(now, "n1", scheduled_date=now - timedelta(hours=1))]
        scheduler.process_due_notifications(scheduled, now)
        assert scheduled[0].sent is False


class TestMarkAsSent:
    def test_only_target_changes(self, now) -> None:
        scheduled = [_notification(now, "n1"), _notification(now, "n2")]
        updated = scheduler.mark_as_sent(scheduled, ["n1"], now)
        assert updated[0].sent is True
        assert updated[0].sent_at == now
        assert updated[1] == scheduled[1]

    def test_second_call_is_noop(self, now) -> None:
        once = scheduler.mark_as_sent([_notification(now, "n1")], ["n1"], now)
        twice = scheduler.mark_as_sent(once, ["n1"], now + timedelta(hours=2))
        assert twice[0].sent is True
        assert twice[0].sent_at == now

    def test_input_not_mutated(self, now) -> None:
        scheduled = [_notification(now, "n1")]
        scheduler.mark_as_sent(scheduled, ["n1"], now)
        assert scheduled[0].sent is False


class TestCleanup:
    def test_retention(self, now) -> None:
        old_sent = _notification(
            now, "old-sent", sent=True, sent_at=now - timedelta(days=100)
        )
        old_unsent = _notification(now, "old-unsent", created_at=now - timedelta(days=100))
        recent_sent = _notification(now, "recent", sent=True, sent_at=now - timedelta(days=10))

        kept = scheduler.cleanup_old_notifications([old_sent, old_unsent, recent_sent], 90, now)
        assert [n.id for n in kept] == ["old-unsent", "recent"]

    def test_sent_without_timestamp_uses_created_at(self, now) -> None:
        legacy = _notification(now, "legacy", sent=True, created_at=now - timedelta(days=120))
        assert scheduler.cleanup_old_notifications([legacy], 90, now) == []


class TestStats:
    def test_counts(self, now) -> None:
        scheduled = [
            _notification(now, "sent", sent=True, sent_at=now),
            _notification(now, "overdue", scheduled_date=now - timedelta(days=1)),
            _notification(
                now,
                "pending",
                scheduled_date=now + timedelta(days=1),
                notification_type=NotificationType.REVOCATION_REMINDER,
            ),
        ]
        stats = scheduler.get_stats(scheduled, now)
        assert (stats.total, stats.sent, stats.pending, stats.overdue) == (3, 1, 1, 1)
        assert stats.by_type["expiration_reminder"].total == 2
        assert stats.by_type["expiration_reminder"].pending == 1
        assert stats.to_dict()["by_type"]["revocation_reminder"] == {
            "total": 1,
            "sent": 0,
            "pending": 1,
        }


class TestValidateConfig:
    def test_defaults_are_valid(self) -> None:
        result = scheduler.validate_config(NotificationSchedulerConfig())
        assert result.is_valid is True
        assert result.errors == []

    @pytest.mark.parametrize(
        ("changes", "message"),
        [
            ({"expiration_reminder_days": ()}, "expiration_reminder_days must be a non-empty list"),
            (
                {"expiration_reminder_days": (400,)},
                "expiration_reminder_days must contain values between 1 and 365",
            ),
            (
                {"revocation_reminder_days": (31,)},
                "revocation_reminder_days must contain values between 1 and 30",
            ),
            (
                {"revocation_reminder_days": (True,)},
                "revocation_reminder_days must contain values between 1 and 30",
            ),
            ({"enable_batch_processing": "yes"}, "enable_batch_processing must be a boolean"),
            ({"max_batch_size": 0}, "max_batch_size must be a positive number"),
        ],
    )
    def test_invalid_configs(self, changes, message) -> None:
        config = replace(NotificationSchedulerConfig(), **changes)
        result = scheduler.validate_config(config)
        assert result.is_valid is False
        assert result.errors == [message]

    def test_to_dict_uses_lists(self) -> None:
        assert NotificationSchedulerConfig().to_dict() == {
            "expiration_reminder_days": [30, 7, 1],
            "revocation_reminder_days": [7, 1],
            "enable_batch_processing": True,
            "max_batch_size": 50,
        }
