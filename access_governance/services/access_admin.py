"""Admin orchestration over the access, notification and audit cores.

``AccessAdminService`` owns the only mutable state (``AdminState``) and
applies the results of the pure core functions to it:

1. Look up the target (raise ``NotFoundError`` if missing, state untouched)
2. Build the audit entry and the new records
3. Append the entry and apply the record changes
4. Deliver notifications through the ``NotificationSink``

Delivery runs last and its failures are caught, logged and stored in
``state.error``; an audit entry that was already appended is never rolled
back. Mutations are serialized per access id (or request id) with
``KeyedLock``.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timedelta
from typing import Any

import structlog

from access_governance.access import lifecycle
from access_governance.access.models import (
    AccessGrant,
    AccessStatus,
    PendingAccessRequest,
    RevocationNotice,
)
from access_governance.audit import logger as audit
from access_governance.audit.models import (
    Administrator,
    AuditLogEntry,
    AuditReport,
    AuditReportFilters,
    AuditReportSummary,
    ExportFormat,
)
from access_governance.config import Settings, get_settings
from access_governance.core import comment_templates
from access_governance.core.comment_templates import (
    DEFAULT_COMMENT_TEMPLATES,
    CommentTemplate,
    CommentTemplateCategory,
    SuggestionContext,
)
from access_governance.core.dates import days_until, utcnow
from access_governance.notifications import scheduler
from access_governance.notifications.models import (
    BatchNotificationRequest,
    BatchTarget,
    NotificationType,
    RenderedNotification,
    ScheduledNotification,
    TemplateType,
    UrgencyLevel,
)
from access_governance.notifications.scheduler import (
    NotificationSchedulerConfig,
    NotificationStats,
)
from access_governance.notifications.templates import (
    TemplateSelectionError,
    format_notification_date,
    render_force_revocation,
    render_request,
    render_template,
    require_template,
)
from access_governance.services.locks import KeyedLock
from access_governance.services.notification_center import (
    InAppNotificationCenter,
    NotificationSink,
)
from access_governance.telemetry.logging import bind_admin_context

log = structlog.get_logger(__name__)

DEFAULT_FORCE_REVOKE_REASON = "Immediate revocation requested by administrator"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class NotFoundError(LookupError):
    """An action targeted an id that does not exist."""


class AccessNotFoundError(NotFoundError):
    def __init__(self, access_id: str) -> None:
        super().__init__(f"Access {access_id!r} not found")
        self.access_id = access_id


class RequestNotFoundError(NotFoundError):
    def __init__(self, request_id: str) -> None:
        super().__init__(f"Access request {request_id!r} not found")
        self.request_id = request_id


class CommentTemplateNotFoundError(NotFoundError):
    def __init__(self, template_id: str) -> None:
        super().__init__(f"Comment template {template_id!r} not found")
        self.template_id = template_id


class InvalidSchedulerConfigError(ValueError):
    """Raised when a notification config update fails validation."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@dataclass
class AdminState:
    pending_requests: list[PendingAccessRequest] = field(default_factory=list)
    grants: list[AccessGrant] = field(default_factory=list)
    revocation_notices: list[RevocationNotice] = field(default_factory=list)
    scheduled_notifications: list[ScheduledNotification] = field(default_factory=list)
    audit_log: list[AuditLogEntry] = field(default_factory=list)
    comment_templates: list[CommentTemplate] = field(
        default_factory=lambda: list(DEFAULT_COMMENT_TEMPLATES)
    )
    notification_config: NotificationSchedulerConfig = field(
        default_factory=NotificationSchedulerConfig
    )
    error: str | None = None
    last_refresh: datetime | None = None


@dataclass
class NotificationRunResult:
    """Outcome of one ``process_pending_notifications`` pass."""

    processed_ids: list[str] = field(default_factory=list)
    delivered: int = 0
    failed: int = 0
    failed_ids: list[str] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)


def _period_phrase(days: int) -> str:
    return "one year" if days == 365 else f"{days} days"


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AccessAdminService:
    """Administrative actions on access requests and grants.

    Usage:
        service = AccessAdminService(AdminState(grants=grants))
        await service.renew("access-001")
        await service.process_pending_notifications()
    """

    def __init__(
        self,
        state: AdminState | None = None,
        *,
        settings: Settings | None = None,
        sink: NotificationSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            state: Initial state. A fresh state uses the scheduler config
                from *settings*.
            settings: Policy constants and the acting administrator.
            sink: Delivery target for rendered notifications.
            clock: Zero-argument callable returning the current UTC instant.
        """
        self._settings = settings or get_settings()
        self.state = state or AdminState(
            notification_config=NotificationSchedulerConfig.from_settings(self._settings)
        )
        self.sink: NotificationSink = sink or InAppNotificationCenter()
        self._clock = clock or utcnow
        self._locks = KeyedLock()
        self.administrator = Administrator(
            id=self._settings.admin_id,
            name=self._settings.admin_name,
            email=self._settings.admin_email,
            ip_address=self._settings.admin_ip_address,
        )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @property
    def _validity(self) -> timedelta:
        return timedelta(days=self._settings.renewal_period_days)

    @property
    def _notice_period(self) -> timedelta:
        return timedelta(days=self._settings.revocation_notice_days)

    def _begin(self) -> datetime:
        self.state.error = None
        bind_admin_context(self.administrator.id)
        return self._clock()

    def _find_request(self, request_id: str) -> PendingAccessRequest:
        for request in self.state.pending_requests:
            if request.id == request_id:
                return request
        raise RequestNotFoundError(request_id)

    def _find_grant(self, access_id: str) -> AccessGrant:
        for grant in self.state.grants:
            if grant.id == access_id:
                return grant
        raise AccessNotFoundError(access_id)

    def _put_grant(self, grant: AccessGrant) -> None:
        self.state.grants = [grant if g.id == grant.id else g for g in self.state.grants]

    def _drop_notices(self, access_ids: set[str]) -> None:
        self.state.revocation_notices = [
            n for n in self.state.revocation_notices if n.access_id not in access_ids
        ]

    def _drop_notifications(self, access_ids: set[str], *, include_sent: bool = False) -> None:
        self.state.scheduled_notifications = [
            n
            for n in self.state.scheduled_notifications
            if n.access_id not in access_ids or (n.sent and not include_sent)
        ]

    def _deliver(self, payload: RenderedNotification) -> bool:
        try:
            self.sink.deliver(payload)
        except Exception as exc:
            log.warning(
                "notifications.delivery_failed",
                type=str(payload.type),
                product_id=payload.product_id,
                error=str(exc),
            )
            self.state.error = f"Failed to deliver notification: {exc}"
            return False
        return True

    def _renewed_notification(self, grant: AccessGrant) -> RenderedNotification:
        return render_template(
            require_template("access-renewed"),
            {
                "productName": grant.product_name,
                "newExpirationDate": format_notification_date(grant.expires_at),
            },
            user_id=grant.user_id,
            user_name=grant.user_name,
            user_email=grant.user_email,
            product_id=grant.product_id,
            product_name=grant.product_name,
        )

    # ------------------------------------------------------------------ #
    # Request actions
    # ------------------------------------------------------------------ #

    async def approve(self, request_id: str, comment: str | None = None) -> AccessGrant:
        """Approve a pending request and grant read access for the renewal period.

        Raises:
            RequestNotFoundError: If no pending request has *request_id*.
        """
        async with self._locks.acquire(request_id):
            now = self._begin()
            request = self._find_request(request_id)
            entry = audit.create_approval_entry(
                request, self.administrator, comment, validity=self._validity, now=now
            )
            grant = lifecycle.grant_from_request(
                request, granted_by=self.administrator.id, now=now, validity=self._validity
            )
            self.state.audit_log.append(entry)
            self.state.grants.append(grant)
            self.state.pending_requests = [
                r for r in self.state.pending_requests if r.id != request_id
            ]
            log.info(
                "admin.request_approved",
                request_id=request_id,
                access_id=grant.id,
                audit_entry_id=entry.id,
            )
            return grant

    async def decline(
        self,
        request_id: str,
        comment: str,
        template_used: str | None = None,
    ) -> AuditLogEntry:
        """Decline a pending request, recording *comment* as the reason.

        Raises:
            RequestNotFoundError: If no pending request has *request_id*.
        """
        async with self._locks.acquire(request_id):
            now = self._begin()
            request = self._find_request(request_id)
            entry = audit.create_decline_entry(
                request, self.administrator, comment, template_used, now=now
            )
            self.state.audit_log.append(entry)
            self.state.pending_requests = [
                r for r in self.state.pending_requests if r.id != request_id
            ]
            log.info(
                "admin.request_declined",
                request_id=request_id,
                template_used=template_used,
                audit_entry_id=entry.id,
            )
            return entry

    # ------------------------------------------------------------------ #
    # Grant actions
    # ------------------------------------------------------------------ #

    def _apply_renewal(self, grants: Sequence[AccessGrant], now: datetime) -> list[AccessGrant]:
        renewed = [lifecycle.renew_grant(g, now=now, validity=self._validity) for g in grants]
        for grant in renewed:
            self._put_grant(grant)
        ids = {g.id for g in renewed}
        self._drop_notices(ids)
        # A renewal starts a new reminder cycle under the same notification ids.
        self._drop_notifications(ids, include_sent=True)
        self.state.scheduled_notifications = scheduler.merge_schedule(
            self.state.scheduled_notifications,
            scheduler.generate_expiration_reminders(renewed, self.state.notification_config, now),
            keep_sent=True,
        )
        return renewed

    async def renew(self, access_id: str) -> AccessGrant:
        """Extend a grant by the renewal period and cancel any pending revocation.

        Raises:
            AccessNotFoundError: If no grant has *access_id*.
        """
        async with self._locks.acquire(access_id):
            now = self._begin()
            grant = self._find_grant(access_id)
            entry = audit.create_renewal_entry(
                grant, self.administrator, validity=self._validity, now=now
            )
            self.state.audit_log.append(entry)
            (renewed,) = self._apply_renewal([grant], now)
            log.info(
                "admin.access_renewed",
                access_id=access_id,
                user_id=grant.user_id,
                product_id=grant.product_id,
                audit_entry_id=entry.id,
            )
            self._deliver(self._renewed_notification(renewed))
            return renewed

    async def bulk_renew(self, access_ids: Iterable[str]) -> list[AccessGrant]:
        """Renew several grants at once.

        Unknown ids are skipped with a warning. One audit entry is written
        per renewed grant.
        """
        ids = list(dict.fromkeys(access_ids))
        async with self._locks.acquire(*ids):
            now = self._begin()
            wanted = set(ids)
            found = [g for g in self.state.grants if g.id in wanted]
            unknown = sorted(wanted - {g.id for g in found})
            if unknown:
                log.warning("admin.bulk_renew_unknown_ids", access_ids=unknown)
            if not found:
                return []

            entries = audit.create_bulk_renewal_entries(
                found, self.administrator, validity=self._validity, now=now
            )
            self.state.audit_log.extend(entries)
            renewed = self._apply_renewal(found, now)
            log.info(
                "admin.bulk_renewed",
                renewed_count=len(renewed),
                access_ids=[g.id for g in renewed],
                audit_entries_created=len(entries),
            )

            if len(renewed) == 1:
                self._deliver(self._renewed_notification(renewed[0]))
            else:
                period = _period_phrase(self._settings.renewal_period_days)
                self._deliver(
                    RenderedNotification(
                        user_id=None,
                        user_name=None,
                        user_email=None,
                        product_id=None,
                        product_name=None,
                        title="Bulk Access Renewal Complete",
                        message=(
                            f"Successfully renewed {len(renewed)} access permissions "
                            f"for {period}."
                        ),
                        urgency_level=UrgencyLevel.LOW,
                        type=TemplateType.ACCESS_RENEWED,
                    )
                )
            return renewed

    async def schedule_revocation(self, access_id: str) -> RevocationNotice:
        """Schedule a grant for revocation after the notice period.

        The user is notified immediately; reminders are added to the
        schedule. Any earlier notice for the same grant is replaced.

        Raises:
            AccessNotFoundError: If no grant has *access_id*.
        """
        async with self._locks.acquire(access_id):
            now = self._begin()
            grant = self._find_grant(access_id)
            updated, notice = lifecycle.schedule_revocation(
                grant, now=now, notice_period=self._notice_period
            )
            entry = audit.create_scheduled_revocation_entry(
                grant,
                self.administrator,
                notice.scheduled_revocation_date,
                notice_days=self._settings.revocation_notice_days,
                now=now,
            )
            self.state.audit_log.append(entry)
            self._drop_notices({access_id})
            self._drop_notifications({access_id})
            self._put_grant(updated)
            log.info(
                "admin.revocation_scheduled",
                access_id=access_id,
                notice_id=notice.id,
                revocation_date=notice.scheduled_revocation_date.isoformat(),
                audit_entry_id=entry.id,
            )

            delivered = self._deliver(
                render_template(
                    require_template("revocation-scheduled"),
                    {
                        "productName": grant.product_name,
                        "revocationDate": format_notification_date(
                            notice.scheduled_revocation_date
                        ),
                    },
                    user_id=grant.user_id,
                    user_name=grant.user_name,
                    user_email=grant.user_email,
                    product_id=grant.product_id,
                    product_name=grant.product_name,
                )
            )
            if delivered:
                # The initial notice went out; only reminders remain to schedule.
                notice = replace(notice, notification_sent=True)
                self._put_grant(replace(updated, revocation_notification_sent=True))
            self.state.revocation_notices.append(notice)

            self.state.scheduled_notifications = scheduler.merge_schedule(
                self.state.scheduled_notifications,
                scheduler.generate_revocation_notices(
                    [notice], self.state.grants, self.state.notification_config, now
                ),
                keep_sent=True,
            )
            return notice

    async def force_revoke(self, access_id: str, reason: str | None = None) -> AuditLogEntry:
        """Remove a grant immediately.

        Raises:
            AccessNotFoundError: If no grant has *access_id*.
        """
        reason = reason or DEFAULT_FORCE_REVOKE_REASON
        async with self._locks.acquire(access_id):
            now = self._begin()
            grant = self._find_grant(access_id)
            entry = audit.create_force_revocation_entry(
                grant, self.administrator, reason, now=now
            )
            self.state.audit_log.append(entry)
            self.state.grants = [g for g in self.state.grants if g.id != access_id]
            self._drop_notices({access_id})
            self._drop_notifications({access_id})
            log.info(
                "admin.access_force_revoked",
                access_id=access_id,
                user_id=grant.user_id,
                product_id=grant.product_id,
                audit_entry_id=entry.id,
            )
            self._deliver(
                render_force_revocation(
                    product_name=grant.product_name,
                    reason=reason,
                    user_id=grant.user_id,
                    user_name=grant.user_name,
                    user_email=grant.user_email,
                    product_id=grant.product_id,
                )
            )
            return entry

    async def process_expirations(self) -> lifecycle.ExpiryOutcome:
        """Remove lapsed grants, enforce due revocations and refresh expiring flags.

        Each enforced revocation is recorded as a ``revoke`` audit entry.
        """
        async with self._locks.acquire(*(g.id for g in self.state.grants)):
            now = self._begin()
            outcome = lifecycle.process_expirations(
                self.state.grants,
                self.state.revocation_notices,
                now=now,
                expiring_window=timedelta(days=self._settings.expiring_soon_days),
            )
            for grant in outcome.revoked:
                self.state.audit_log.append(
                    audit.create_revocation_entry(grant, self.administrator, now=now)
                )
            self.state.grants = outcome.retained
            self.state.revocation_notices = outcome.notices
            self._drop_notifications({g.id for g in outcome.expired + outcome.revoked})
            log.info(
                "admin.expirations_processed",
                expired=len(outcome.expired),
                revoked=len(outcome.revoked),
                expiring_soon=sum(
                    1 for g in outcome.retained if g.status == AccessStatus.EXPIRING_SOON
                ),
            )
            return outcome

    # ------------------------------------------------------------------ #
    # Notification scheduling
    # ------------------------------------------------------------------ #

    async def generate_notification_schedule(self) -> list[ScheduledNotification]:
        """Regenerate reminders for every grant and notice.

        Sent entries are dropped from the schedule; unsent ones are kept
        and new ids are appended.
        """
        now = self._begin()
        config = self.state.notification_config
        expiration = scheduler.generate_expiration_reminders(self.state.grants, config, now)
        revocation = scheduler.generate_revocation_notices(
            self.state.revocation_notices, self.state.grants, config, now
        )
        generated = expiration + revocation
        self.state.scheduled_notifications = scheduler.merge_schedule(
            self.state.scheduled_notifications, generated
        )
        self.state.last_refresh = now
        log.info(
            "scheduler.generated",
            expiration_reminders=len(expiration),
            revocation_notifications=len(revocation),
            scheduled_total=len(self.state.scheduled_notifications),
        )
        return generated

    async def schedule_expiration_reminders(
        self, grants: Sequence[AccessGrant] | None = None
    ) -> list[ScheduledNotification]:
        now = self._begin()
        targets = self.state.grants if grants is None else grants
        generated = scheduler.generate_expiration_reminders(
            targets, self.state.notification_config, now
        )
        self.state.scheduled_notifications = scheduler.merge_schedule(
            self.state.scheduled_notifications, generated, keep_sent=True
        )
        log.info("scheduler.expiration_scheduled", count=len(generated), grants=len(targets))
        return generated

    async def schedule_revocation_notices(
        self, notices: Sequence[RevocationNotice] | None = None
    ) -> list[ScheduledNotification]:
        now = self._begin()
        targets = self.state.revocation_notices if notices is None else notices
        generated = scheduler.generate_revocation_notices(
            targets, self.state.grants, self.state.notification_config, now
        )
        self.state.scheduled_notifications = scheduler.merge_schedule(
            self.state.scheduled_notifications, generated, keep_sent=True
        )
        log.info("scheduler.revocation_scheduled", count=len(generated), notices=len(targets))
        return generated

    async def process_pending_notifications(self) -> NotificationRunResult:
        """Render and deliver every due notification, then mark them sent.

        Items without a matching template tier are logged, skipped and marked
        sent. Delivery is chunked by ``max_batch_size`` when batch processing
        is enabled. Failed deliveries stay unsent and are retried on the next
        run.
        """
        now = self._begin()
        config = self.state.notification_config
        batch = scheduler.process_due_notifications(self.state.scheduled_notifications, now)
        result = NotificationRunResult(processed_ids=batch.processed_ids)
        if not batch.processed_ids:
            log.info("notifications.none_due")
            return result

        requests: list[tuple[str, BatchNotificationRequest]] = []
        for reminder in batch.expiration_reminders:
            requests.append(
                (
                    reminder.notification_id,
                    BatchNotificationRequest(
                        user_id=reminder.user_id,
                        user_name=reminder.user_name,
                        user_email=reminder.user_email,
                        product_id=reminder.product_id,
                        product_name=reminder.product_name,
                        target_date=reminder.expiration_date,
                        notification_type=BatchTarget.EXPIRATION,
                        days_until_target=reminder.days_until_expiration,
                    ),
                )
            )
        for notice in batch.revocation_notices:
            requests.append(
                (
                    notice.notification_id,
                    BatchNotificationRequest(
                        user_id=notice.user_id,
                        user_name=notice.user_name,
                        user_email=notice.user_email,
                        product_id=notice.product_id,
                        product_name=notice.product_name,
                        target_date=notice.revocation_date,
                        notification_type=BatchTarget.REVOCATION,
                        days_until_target=days_until(notice.revocation_date, now),
                    ),
                )
            )

        rendered: list[tuple[str, RenderedNotification]] = []
        for notification_id, request in requests:
            try:
                rendered.append((notification_id, render_request(request)))
            except TemplateSelectionError as exc:
                log.warning(
                    "notifications.template_missing",
                    notification_id=notification_id,
                    error=str(exc),
                )
                result.skipped_ids.append(notification_id)

        delivered_ids: list[str] = []
        chunk_size = config.max_batch_size if config.enable_batch_processing else 1
        for start in range(0, len(rendered), chunk_size):
            chunk = rendered[start : start + chunk_size]
            for notification_id, payload in chunk:
                if self._deliver(payload):
                    result.delivered += 1
                    delivered_ids.append(notification_id)
                else:
                    result.failed += 1
                    result.failed_ids.append(notification_id)
            log.debug("notifications.chunk_delivered", size=len(chunk))

        settled_ids = delivered_ids + result.skipped_ids
        settled = set(settled_ids)
        sent = [n for n in self.state.scheduled_notifications if n.id in settled]
        self.state.scheduled_notifications = scheduler.mark_as_sent(
            self.state.scheduled_notifications, settled_ids, now
        )
        self._record_revocation_progress(sent)

        log.info(
            "notifications.processed",
            processed=len(result.processed_ids),
            delivered=result.delivered,
            failed=result.failed,
            skipped=len(result.skipped_ids),
        )
        return result

    def _record_revocation_progress(self, sent: Iterable[ScheduledNotification]) -> None:
        initial: set[str] = set()
        reminders: dict[str, int] = {}
        for n in sent:
            if n.notification_type == NotificationType.REVOCATION_NOTICE:
                initial.add(n.access_id)
            elif n.notification_type == NotificationType.REVOCATION_REMINDER:
                reminders[n.access_id] = reminders.get(n.access_id, 0) + 1
        if not initial and not reminders:
            return

        self.state.revocation_notices = [
            replace(
                notice,
                notification_sent=notice.notification_sent or notice.access_id in initial,
                reminders_sent=notice.reminders_sent + reminders.get(notice.access_id, 0),
            )
            if notice.access_id in initial or notice.access_id in reminders
            else notice
            for notice in self.state.revocation_notices
        ]
        self.state.grants = [
            replace(g, revocation_notification_sent=True) if g.id in initial else g
            for g in self.state.grants
        ]

    def update_notification_config(self, **changes: Any) -> NotificationSchedulerConfig:
        """Apply *changes* to the scheduler config if the result is valid.

        Raises:
            InvalidSchedulerConfigError: On unknown fields or failed validation.
        """
        known = {f.name for f in fields(NotificationSchedulerConfig)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise InvalidSchedulerConfigError(
                [f"Unknown configuration field: {name}" for name in unknown]
            )
        normalized = {k: tuple(v) if isinstance(v, list) else v for k, v in changes.items()}
        candidate = replace(self.state.notification_config, **normalized)
        validation = scheduler.validate_config(candidate)
        if not validation.is_valid:
            log.warning("scheduler.config_rejected", errors=validation.errors)
            raise InvalidSchedulerConfigError(validation.errors)
        self.state.notification_config = candidate
        log.info("scheduler.config_updated", **candidate.to_dict())
        return candidate

    def notification_statistics(self) -> NotificationStats:
        return scheduler.get_stats(self.state.scheduled_notifications, self._clock())

    def cleanup_old_notifications(self, retention_days: int | None = None) -> int:
        """Drop old sent notifications. Returns how many were removed."""
        retention = retention_days or self._settings.notification_retention_days
        before = len(self.state.scheduled_notifications)
        self.state.scheduled_notifications = scheduler.cleanup_old_notifications(
            self.state.scheduled_notifications, retention, self._clock()
        )
        removed = before - len(self.state.scheduled_notifications)
        log.info("scheduler.cleanup", retention_days=retention, removed=removed)
        return removed

    # ------------------------------------------------------------------ #
    # Audit log
    # ------------------------------------------------------------------ #

    def audit_log(self) -> list[AuditLogEntry]:
        """All entries, newest first."""
        return audit.sort_entries(self.state.audit_log)

    def filtered_audit_log(self, filters: AuditReportFilters) -> list[AuditLogEntry]:
        return audit.sort_entries(audit.filter_entries(self.state.audit_log, filters))

    def generate_audit_report(
        self,
        filters: AuditReportFilters,
        title: str | None = None,
        export_format: ExportFormat = ExportFormat.JSON,
    ) -> AuditReport:
        return audit.create_report(
            self.state.audit_log,
            filters,
            self.administrator.display_name,
            title,
            export_format,
            now=self._clock(),
        )

    def export_audit_report_csv(self, report: AuditReport) -> str:
        content = audit.export_csv(report)
        log.info("audit.report_exported", report_id=report.id, csv_length=len(content))
        return content

    def export_audit_report_json(self, report: AuditReport) -> str:
        content = audit.export_json(report)
        log.info("audit.report_exported", report_id=report.id, json_length=len(content))
        return content

    def audit_summary(self, filters: AuditReportFilters | None = None) -> AuditReportSummary:
        entries = audit.filter_entries(self.state.audit_log, filters)
        return audit.summarize(entries, self._clock())

    def clear_audit_log(self) -> None:
        cleared = len(self.state.audit_log)
        self.state.audit_log = []
        log.warning("audit.log_cleared", administrator_id=self.administrator.id, cleared=cleared)

    def clear_error(self) -> None:
        self.state.error = None

    # ------------------------------------------------------------------ #
    # Comment templates
    # ------------------------------------------------------------------ #

    def comment_templates_by_category(
        self, category: CommentTemplateCategory
    ) -> list[CommentTemplate]:
        return comment_templates.filter_by_category(self.state.comment_templates, category)

    def search_comment_templates(self, term: str) -> list[CommentTemplate]:
        return comment_templates.search(self.state.comment_templates, term)

    def comment_template_suggestions(
        self, context: SuggestionContext | None = None
    ) -> list[CommentTemplate]:
        return comment_templates.suggest(self.state.comment_templates, context)

    def add_comment_template(
        self,
        *,
        category: CommentTemplateCategory,
        title: str,
        content: str,
        variables: Sequence[str] | None = None,
    ) -> CommentTemplate:
        template = CommentTemplate(
            id=f"template-{uuid.uuid4().hex[:12]}",
            category=category,
            title=title,
            content=content,
            variables=tuple(variables) if variables is not None else None,
        )
        self.state.comment_templates.append(template)
        log.info("comment_templates.added", template_id=template.id)
        return template

    def update_comment_template(self, template_id: str, **changes: Any) -> CommentTemplate:
        """Apply *changes* to a stored template.

        ``None`` leaves category, title and content unchanged. Only
        ``variables`` may be cleared.

        Raises:
            CommentTemplateNotFoundError: If *template_id* is unknown.
        """
        changes = {k: v for k, v in changes.items() if v is not None or k == "variables"}
        for index, template in enumerate(self.state.comment_templates):
            if template.id == template_id:
                if "variables" in changes and changes["variables"] is not None:
                    changes["variables"] = tuple(changes["variables"])
                updated = replace(template, **changes)
                self.state.comment_templates[index] = updated
                log.info("comment_templates.updated", template_id=template_id)
                return updated
        raise CommentTemplateNotFoundError(template_id)

    def delete_comment_template(self, template_id: str) -> None:
        """Raises CommentTemplateNotFoundError if *template_id* is unknown."""
        remaining = [t for t in self.state.comment_templates if t.id != template_id]
        if len(remaining) == len(self.state.comment_templates):
            raise CommentTemplateNotFoundError(template_id)
        self.state.comment_templates = remaining
        log.info("comment_templates.deleted", template_id=template_id)


# Module-level singleton - initialized from settings at startup
_admin_service: AccessAdminService | None = None


def init_admin_service(
    settings: Settings | None = None,
    state: AdminState | None = None,
) -> AccessAdminService:
    """Initialize the global admin service from settings."""
    global _admin_service
    _admin_service = AccessAdminService(state, settings=settings)
    log.info("admin_service.initialized", administrator_id=_admin_service.administrator.id)
    return _admin_service


def get_admin_service() -> AccessAdminService:
    """FastAPI dependency - return the initialized admin service."""
    if _admin_service is None:
        return init_admin_service()
    return _admin_service
