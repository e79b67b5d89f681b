"""Admin endpoints - access lifecycle, notifications and audit.

POST  /admin/requests/{id}/approve              - Approve a pending request
POST  /admin/requests/{id}/decline              - Decline a pending request
GET   /admin/access                             - List current grants
POST  /admin/access/{id}/renew                  - Renew a grant
POST  /admin/access/bulk-renew                  - Renew several grants
POST  /admin/access/{id}/schedule-revocation    - Schedule revocation
POST  /admin/access/{id}/force-revoke           - Revoke immediately
POST  /admin/access/process-expirations         - Enforce expiry and due revocations
POST  /admin/notifications/schedule             - Regenerate the schedule
POST  /admin/notifications/process              - Deliver due notifications
GET   /admin/notifications/stats                - Schedule statistics
POST  /admin/notifications/cleanup              - Drop old sent notifications
GET   /admin/notifications/config               - Scheduler config
PATCH /admin/notifications/config               - Update scheduler config
GET   /admin/audit                              - Query the audit log
GET   /admin/audit/summary                      - Audit summary
POST  /admin/audit/reports                      - Generate a report (JSON)
POST  /admin/audit/reports/csv                  - Generate a report as CSV
GET   /admin/comment-templates                  - List decline comment templates
POST  /admin/comment-templates                  - Add a comment template
PATCH /admin/comment-templates/{id}             - Update a comment template
DELETE /admin/comment-templates/{id}            - Delete a comment template

Lookup failures surface as 404 and rejected config updates as 422 via the
exception handlers registered in ``access_governance.main``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field

from access_governance.access.models import AccessLevel, AccessStatus
from access_governance.audit.models import (
    AuditAction,
    AuditLogEntry,
    AuditReportFilters,
    DateRange,
    ExportFormat,
)
from access_governance.core.comment_templates import (
    CommentTemplateCategory,
    format_for_display,
)
from access_governance.notifications.models import NotificationType
from access_governance.services.access_admin import AccessAdminService, get_admin_service

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# ------------------------------------------------------------------ #
# Schemas
# ------------------------------------------------------------------ #


class GrantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    user_name: str
    user_email: str
    product_id: str
    product_name: str
    granted_at: datetime
    expires_at: datetime
    granted_by: str
    access_level: AccessLevel
    status: AccessStatus
    revocation_scheduled_at: datetime | None
    revocation_notification_sent: bool


class RevocationNoticeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    access_id: str
    user_id: str
    scheduled_revocation_date: datetime
    notification_date: datetime
    notification_sent: bool
    reminders_sent: int
    created_at: datetime


class AuditEntryResponse(BaseModel):
    id: str
    timestamp: datetime
    administrator_id: str
    administrator_name: str
    administrator_email: str
    action: AuditAction
    target_user_id: str
    target_user_name: str
    target_user_email: str
    product_id: str
    product_name: str
    access_id: str | None
    request_id: str | None
    details: dict[str, Any]
    ip_address: str | None
    user_agent: str | None

    @classmethod
    def from_entry(cls, entry: AuditLogEntry) -> AuditEntryResponse:
        return cls(**entry.to_dict())


class ScheduledNotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    access_id: str
    user_id: str
    product_id: str
    product_name: str
    notification_type: NotificationType
    scheduled_date: datetime
    target_date: datetime
    days_before_target: int
    sent: bool
    sent_at: datetime | None


class ApproveRequest(BaseModel):
    comment: str | None = Field(default=None, max_length=2000)


class DeclineRequest(BaseModel):
    comment: str = Field(..., min_length=1, max_length=2000)
    template_used: str | None = None


class BulkRenewRequest(BaseModel):
    access_ids: list[str] = Field(..., min_length=1)


class ForceRevokeRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class ExpiryResponse(BaseModel):
    expired: list[str]
    revoked: list[str]
    retained: int


class NotificationRunResponse(BaseModel):
    processed_ids: list[str]
    delivered: int
    failed: int
    failed_ids: list[str]
    skipped_ids: list[str]


class CleanupRequest(BaseModel):
    retention_days: int | None = Field(default=None, ge=1)


class SchedulerConfigResponse(BaseModel):
    expiration_reminder_days: list[int]
    revocation_reminder_days: list[int]
    enable_batch_processing: bool
    max_batch_size: int


class SchedulerConfigUpdate(BaseModel):
    expiration_reminder_days: list[int] | None = None
    revocation_reminder_days: list[int] | None = None
    enable_batch_processing: bool | None = None
    max_batch_size: int | None = None


class AuditFiltersBody(BaseModel):
    administrator_ids: list[str] = Field(default_factory=list)
    target_user_ids: list[str] = Field(default_factory=list)
    product_ids: list[str] = Field(default_factory=list)
    actions: list[AuditAction] = Field(default_factory=list)
    date_from: datetime | None = None
    date_to: datetime | None = None


class ReportRequest(BaseModel):
    filters: AuditFiltersBody = Field(default_factory=AuditFiltersBody)
    title: str | None = None
    export_format: ExportFormat = ExportFormat.JSON


class CommentTemplateCreate(BaseModel):
    category: CommentTemplateCategory
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    variables: list[str] | None = None


class CommentTemplateUpdate(BaseModel):
    category: CommentTemplateCategory | None = None
    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1)
    variables: list[str] | None = None


def _as_utc(value: datetime) -> datetime:
    # Audit timestamps are aware UTC; naive query bounds are read as UTC.
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def _to_filters(body: AuditFiltersBody) -> AuditReportFilters:
    if (body.date_from is None) != (body.date_to is None):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="date_from and date_to must be given together",
        )
    date_range = (
        DateRange(start=_as_utc(body.date_from), end=_as_utc(body.date_to))
        if body.date_from is not None and body.date_to is not None
        else None
    )
    return AuditReportFilters(
        administrator_ids=tuple(body.administrator_ids),
        target_user_ids=tuple(body.target_user_ids),
        product_ids=tuple(body.product_ids),
        actions=tuple(body.actions),
        date_range=date_range,
    )


def _query_filters(
    administrator_id: list[str] = Query(default=[]),
    target_user_id: list[str] = Query(default=[]),
    product_id: list[str] = Query(default=[]),
    action: list[AuditAction] = Query(default=[]),
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
) -> AuditReportFilters:
    return _to_filters(
        AuditFiltersBody(
            administrator_ids=administrator_id,
            target_user_ids=target_user_id,
            product_ids=product_id,
            actions=action,
            date_from=date_from,
            date_to=date_to,
        )
    )


# ------------------------------------------------------------------ #
# Requests
# ------------------------------------------------------------------ #


@router.post(
    "/requests/{request_id}/approve",
    response_model=GrantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Approve a pending access request",
)
async def approve_request(
    request_id: str,
    body: ApproveRequest | None = None,
    service: AccessAdminService = Depends(get_admin_service),
) -> GrantResponse:
    grant = await service.approve(request_id, body.comment if body else None)
    return GrantResponse.model_validate(grant)


@router.post(
    "/requests/{request_id}/decline",
    response_model=AuditEntryResponse,
    summary="Decline a pending access request",
)
async def decline_request(
    request_id: str,
    body: DeclineRequest,
    service: AccessAdminService = Depends(get_admin_service),
) -> AuditEntryResponse:
    entry = await service.decline(request_id, body.comment, body.template_used)
    return AuditEntryResponse.from_entry(entry)


# ------------------------------------------------------------------ #
# Grants
# ------------------------------------------------------------------ #


@router.get("/access", response_model=list[GrantResponse], summary="List current grants")
async def list_access(
    service: AccessAdminService = Depends(get_admin_service),
) -> list[GrantResponse]:
    return [GrantResponse.model_validate(g) for g in service.state.grants]


@router.post(
    "/access/bulk-renew",
    response_model=list[GrantResponse],
    summary="Renew several grants",
)
async def bulk_renew_access(
    body: BulkRenewRequest,
    service: AccessAdminService = Depends(get_admin_service),
) -> list[GrantResponse]:
    renewed = await service.bulk_renew(body.access_ids)
    return [GrantResponse.model_validate(g) for g in renewed]


@router.post(
    "/access/process-expirations",
    response_model=ExpiryResponse,
    summary="Remove expired grants and enforce due revocations",
)
async def process_expirations(
    service: AccessAdminService = Depends(get_admin_service),
) -> ExpiryResponse:
    outcome = await service.process_expirations()
    return ExpiryResponse(
        expired=[g.id for g in outcome.expired],
        revoked=[g.id for g in outcome.revoked],
        retained=len(outcome.retained),
    )


@router.post("/access/{access_id}/renew", response_model=GrantResponse, summary="Renew a grant")
async def renew_access(
    access_id: str,
    service: AccessAdminService = Depends(get_admin_service),
) -> GrantResponse:
    return GrantResponse.model_validate(await service.renew(access_id))


@router.post(
    "/access/{access_id}/schedule-revocation",
    response_model=RevocationNoticeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a grant for revocation",
)
async def schedule_revocation(
    access_id: str,
    service: AccessAdminService = Depends(get_admin_service),
) -> RevocationNoticeResponse:
    notice = await service.schedule_revocation(access_id)
    return RevocationNoticeResponse.model_validate(notice)


@router.post(
    "/access/{access_id}/force-revoke",
    response_model=AuditEntryResponse,
    summary="Revoke a grant immediately",
)
async def force_revoke(
    access_id: str,
    body: ForceRevokeRequest | None = None,
    service: AccessAdminService = Depends(get_admin_service),
) -> AuditEntryResponse:
    entry = await service.force_revoke(access_id, body.reason if body else None)
    return AuditEntryResponse.from_entry(entry)


# ------------------------------------------------------------------ #
# Notifications
# ------------------------------------------------------------------ #


@router.post(
    "/notifications/schedule",
    response_model=list[ScheduledNotificationResponse],
    summary="Regenerate the notification schedule",
)
async def regenerate_schedule(
    service: AccessAdminService = Depends(get_admin_service),
) -> list[ScheduledNotificationResponse]:
    generated = await service.generate_notification_schedule()
    return [ScheduledNotificationResponse.model_validate(n) for n in generated]


@router.post(
    "/notifications/process",
    response_model=NotificationRunResponse,
    summary="Deliver every due notification",
)
async def process_notifications(
    service: AccessAdminService = Depends(get_admin_service),
) -> NotificationRunResponse:
    result = await service.process_pending_notifications()
    return NotificationRunResponse(
        processed_ids=result.processed_ids,
        delivered=result.delivered,
        failed=result.failed,
        failed_ids=result.failed_ids,
        skipped_ids=result.skipped_ids,
    )


@router.get("/notifications/stats", summary="Notification schedule statistics")
async def notification_stats(
    service: AccessAdminService = Depends(get_admin_service),
) -> dict[str, Any]:
    return service.notification_statistics().to_dict()


@router.post("/notifications/cleanup", summary="Drop old sent notifications")
async def cleanup_notifications(
    body: CleanupRequest | None = None,
    service: AccessAdminService = Depends(get_admin_service),
) -> dict[str, int]:
    removed = service.cleanup_old_notifications(body.retention_days if body else None)
    return {"removed": removed, "remaining": len(service.state.scheduled_notifications)}


@router.get(
    "/notifications/config",
    response_model=SchedulerConfigResponse,
    summary="Current scheduler configuration",
)
async def get_notification_config(
    service: AccessAdminService = Depends(get_admin_service),
) -> SchedulerConfigResponse:
    return SchedulerConfigResponse(**service.state.notification_config.to_dict())


@router.patch(
    "/notifications/config",
    response_model=SchedulerConfigResponse,
    summary="Update scheduler configuration",
)
async def update_notification_config(
    body: SchedulerConfigUpdate,
    service: AccessAdminService = Depends(get_admin_service),
) -> SchedulerConfigResponse:
    config = service.update_notification_config(**body.model_dump(exclude_unset=True))
    return SchedulerConfigResponse(**config.to_dict())


# ------------------------------------------------------------------ #
# Audit
# ------------------------------------------------------------------ #


@router.get("/audit", response_model=list[AuditEntryResponse], summary="Query the audit log")
async def query_audit_log(
    filters: AuditReportFilters = Depends(_query_filters),
    limit: int = Query(default=100, ge=1, le=1000),
    service: AccessAdminService = Depends(get_admin_service),
) -> list[AuditEntryResponse]:
    entries = service.filtered_audit_log(filters)[:limit]
    return [AuditEntryResponse.from_entry(e) for e in entries]


@router.get("/audit/summary", summary="Audit log summary")
async def audit_summary(
    filters: AuditReportFilters = Depends(_query_filters),
    service: AccessAdminService = Depends(get_admin_service),
) -> dict[str, Any]:
    return service.audit_summary(filters).to_dict()


@router.post("/audit/reports", summary="Generate an audit report")
async def create_audit_report(
    body: ReportRequest,
    service: AccessAdminService = Depends(get_admin_service),
) -> Response:
    report = service.generate_audit_report(_to_filters(body.filters), body.title, body.export_format)
    log.info("api.audit_report_generated", report_id=report.id, entries=len(report.entries))
    return Response(
        content=service.export_audit_report_json(report),
        media_type="application/json",
    )


@router.post("/audit/reports/csv", summary="Generate an audit report as CSV")
async def export_audit_report_csv(
    body: ReportRequest,
    service: AccessAdminService = Depends(get_admin_service),
) -> Response:
    report = service.generate_audit_report(_to_filters(body.filters), body.title, ExportFormat.CSV)
    log.info("api.audit_report_generated", report_id=report.id, entries=len(report.entries))
    content = service.export_audit_report_csv(report)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{report.id}.csv"'},
    )


# ------------------------------------------------------------------ #
# Comment templates
# ------------------------------------------------------------------ #


@router.get("/comment-templates", summary="List decline comment templates")
async def list_comment_templates(
    category: CommentTemplateCategory | None = Query(default=None),
    q: str | None = Query(default=None, min_length=1),
    service: AccessAdminService = Depends(get_admin_service),
) -> list[dict[str, Any]]:
    templates = service.state.comment_templates
    if category is not None:
        templates = service.comment_templates_by_category(category)
    if q is not None:
        matching = {t.id for t in service.search_comment_templates(q)}
        templates = [t for t in templates if t.id in matching]
    return [format_for_display(t) for t in templates]


@router.post(
    "/comment-templates",
    status_code=status.HTTP_201_CREATED,
    summary="Add a decline comment template",
)
async def add_comment_template(
    body: CommentTemplateCreate,
    service: AccessAdminService = Depends(get_admin_service),
) -> dict[str, Any]:
    template = service.add_comment_template(
        category=body.category,
        title=body.title,
        content=body.content,
        variables=body.variables,
    )
    return format_for_display(template)


@router.patch("/comment-templates/{template_id}", summary="Update a decline comment template")
async def update_comment_template(
    template_id: str,
    body: CommentTemplateUpdate,
    service: AccessAdminService = Depends(get_admin_service),
) -> dict[str, Any]:
    template = service.update_comment_template(template_id, **body.model_dump(exclude_unset=True))
    return format_for_display(template)


@router.delete(
    "/comment-templates/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a decline comment template",
)
async def delete_comment_template(
    template_id: str,
    service: AccessAdminService = Depends(get_admin_service),
) -> Response:
    service.delete_comment_template(template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
