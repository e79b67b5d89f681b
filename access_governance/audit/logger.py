"""Audit log engine.

Builds immutable audit entries for administrative actions and answers
queries over the log: filtering, sorting, summaries, reports and exports.

Design:
- Every function is pure. Callers own the log and append what these
  functions return, so a failed notification never rolls back an entry.
- Typed constructors fix the ``details`` shape per action; callers never
  assemble ``AuditActionDetails`` by hand for the standard actions.
- Entry and report ids are ``{prefix}-{epoch_ms}-{random9}``: unique and
  roughly time-ordered. They are not meant to be derived or recomputed.
- Validation reports problems as a list of messages and never raises.
"""

from __future__ import annotations

import csv
import io
import json
import secrets
import string
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any

import structlog

from access_governance.access.models import AccessGrant, PendingAccessRequest
from access_governance.audit.models import (
    Administrator,
    AuditAction,
    AuditActionDetails,
    AuditLogEntry,
    AuditReport,
    AuditReportFilters,
    AuditReportSummary,
    DateRange,
    ExportFormat,
    SortOrder,
)
from access_governance.core.dates import format_locale_datetime, format_short_date, utcnow

log = structlog.get_logger(__name__)

DEFAULT_VALIDITY = timedelta(days=365)
DEFAULT_NOTICE_DAYS = 30

CSV_HEADERS = (
    "Timestamp",
    "Administrator",
    "Administrator Email",
    "Action",
    "Target User",
    "Target User Email",
    "Product Name",
    "Details",
    "IP Address",
    "User Agent",
)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _new_id(prefix: str, now: datetime) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}-{int(now.timestamp() * 1000)}-{suffix}"


# ---------------------------------------------------------------------------
# Entry construction
# ---------------------------------------------------------------------------


def create_entry(
    action: AuditAction,
    administrator: Administrator,
    *,
    target_user_id: str,
    target_user_name: str,
    target_user_email: str,
    product_id: str,
    product_name: str,
    details: AuditActionDetails | None = None,
    access_id: str | None = None,
    request_id: str | None = None,
    now: datetime | None = None,
) -> AuditLogEntry:
    """Create an audit entry with a fresh id and timestamp.

    IP address and user agent are taken from *administrator*.
    """
    now = now or utcnow()
    entry = AuditLogEntry(
        id=_new_id("audit", now),
        timestamp=now,
        administrator_id=administrator.id,
        administrator_name=administrator.name,
        administrator_email=administrator.email,
        action=action,
        target_user_id=target_user_id,
        target_user_name=target_user_name,
        target_user_email=target_user_email,
        product_id=product_id,
        product_name=product_name,
        details=details or AuditActionDetails(),
        access_id=access_id,
        request_id=request_id,
        ip_address=administrator.ip_address,
        user_agent=administrator.user_agent,
    )
    log.debug("audit.entry_created", entry_id=entry.id, action=str(action))
    return entry


def _request_context(request: PendingAccessRequest) -> dict[str, Any]:
    return {
        "business_justification": request.business_justification,
        "bdac": request.bdac,
        "priority": str(request.priority),
        "days_waiting": request.days_waiting,
    }


def _grant_context(grant: AccessGrant) -> dict[str, Any]:
    return {
        "access_level": str(grant.access_level),
        "previous_status": str(grant.status),
        "granted_by": grant.granted_by,
        "granted_at": grant.granted_at.isoformat(),
    }


def _for_request(
    action: AuditAction,
    request: PendingAccessRequest,
    administrator: Administrator,
    details: AuditActionDetails,
    now: datetime,
) -> AuditLogEntry:
    return create_entry(
        action,
        administrator,
        target_user_id=request.requester_id,
        target_user_name=request.requester_name,
        target_user_email=request.requester_email,
        product_id=request.product_id,
        product_name=request.product_name,
        details=details,
        request_id=request.id,
        now=now,
    )


def _for_grant(
    action: AuditAction,
    grant: AccessGrant,
    administrator: Administrator,
    details: AuditActionDetails,
    now: datetime,
) -> AuditLogEntry:
    return create_entry(
        action,
        administrator,
        target_user_id=grant.user_id,
        target_user_name=grant.user_name,
        target_user_email=grant.user_email,
        product_id=grant.product_id,
        product_name=grant.product_name,
        details=details,
        access_id=grant.id,
        now=now,
    )


def create_approval_entry(
    request: PendingAccessRequest,
    administrator: Administrator,
    comment: str | None = None,
    *,
    validity: timedelta = DEFAULT_VALIDITY,
    now: datetime | None = None,
) -> AuditLogEntry:
    now = now or utcnow()
    details = AuditActionDetails(
        comment=comment,
        new_expiration_date=now + validity,
        additional_context=_request_context(request),
    )
    return _for_request(AuditAction.APPROVE, request, administrator, details, now)


def create_decline_entry(
    request: PendingAccessRequest,
    administrator: Administrator,
    comment: str | None,
    template_used: str | None = None,
    *,
    now: datetime | None = None,
) -> AuditLogEntry:
    """The decline comment doubles as the recorded reason."""
    now = now or utcnow()
    details = AuditActionDetails(
        reason=comment,
        comment=comment,
        template_used=template_used,
        additional_context=_request_context(request),
    )
    return _for_request(AuditAction.DECLINE, request, administrator, details, now)


def create_renewal_entry(
    grant: AccessGrant,
    administrator: Administrator,
    *,
    validity: timedelta = DEFAULT_VALIDITY,
    now: datetime | None = None,
) -> AuditLogEntry:
    now = now or utcnow()
    details = AuditActionDetails(
        previous_expiration_date=grant.expires_at,
        new_expiration_date=now + validity,
        additional_context=_grant_context(grant),
    )
    return _for_grant(AuditAction.RENEW, grant, administrator, details, now)


def create_bulk_renewal_entries(
    grants: Sequence[AccessGrant],
    administrator: Administrator,
    *,
    validity: timedelta = DEFAULT_VALIDITY,
    now: datetime | None = None,
) -> list[AuditLogEntry]:
    """One ``bulk_renew`` entry per grant, all sharing the batch size and new expiry."""
    now = now or utcnow()
    new_expiration = now + validity
    return [
        _for_grant(
            AuditAction.BULK_RENEW,
            grant,
            administrator,
            AuditActionDetails(
                previous_expiration_date=grant.expires_at,
                new_expiration_date=new_expiration,
                bulk_operation_count=len(grants),
                additional_context=_grant_context(grant),
            ),
            now,
        )
        for grant in grants
    ]


def create_scheduled_revocation_entry(
    grant: AccessGrant,
    administrator: Administrator,
    revocation_date: datetime,
    *,
    notice_days: int = DEFAULT_NOTICE_DAYS,
    now: datetime | None = None,
) -> AuditLogEntry:
    now = now or utcnow()
    details = AuditActionDetails(
        revocation_scheduled_date=revocation_date,
        previous_expiration_date=grant.expires_at,
        additional_context={**_grant_context(grant), "notification_period": f"{notice_days} days"},
    )
    return _for_grant(AuditAction.SCHEDULE_REVOCATION, grant, administrator, details, now)


def create_force_revocation_entry(
    grant: AccessGrant,
    administrator: Administrator,
    reason: str | None = None,
    *,
    now: datetime | None = None,
) -> AuditLogEntry:
    now = now or utcnow()
    details = AuditActionDetails(
        reason=reason,
        previous_expiration_date=grant.expires_at,
        additional_context={**_grant_context(grant), "immediate_revocation": True},
    )
    return _for_grant(AuditAction.FORCE_REVOKE, grant, administrator, details, now)


def create_revocation_entry(
    grant: AccessGrant,
    administrator: Administrator,
    *,
    now: datetime | None = None,
) -> AuditLogEntry:
    """Record that a scheduled revocation was carried out."""
    now = now or utcnow()
    details = AuditActionDetails(
        reason="Scheduled revocation date reached",
        previous_expiration_date=grant.expires_at,
        revocation_scheduled_date=grant.revocation_scheduled_at,
        additional_context=_grant_context(grant),
    )
    return _for_grant(AuditAction.REVOKE, grant, administrator, details, now)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def _matches(entry: AuditLogEntry, filters: AuditReportFilters) -> bool:
    if filters.administrator_ids and entry.administrator_id not in filters.administrator_ids:
        return False
    if filters.target_user_ids and entry.target_user_id not in filters.target_user_ids:
        return False
    if filters.product_ids and entry.product_id not in filters.product_ids:
        return False
    if filters.actions and entry.action not in filters.actions:
        return False
    if filters.date_range is not None and not filters.date_range.contains(entry.timestamp):
        return False
    return True


def filter_entries(
    entries: Iterable[AuditLogEntry],
    filters: AuditReportFilters | None = None,
) -> list[AuditLogEntry]:
    """Entries satisfying every given criterion, in input order."""
    if filters is None:
        return list(entries)
    return [entry for entry in entries if _matches(entry, filters)]


def sort_entries(
    entries: Iterable[AuditLogEntry],
    order: SortOrder = SortOrder.DESC,
) -> list[AuditLogEntry]:
    """Sort by timestamp; ``desc`` puts the newest first. Ties keep input order."""
    return sorted(entries, key=lambda e: e.timestamp, reverse=order == SortOrder.DESC)


def summarize(entries: Sequence[AuditLogEntry], now: datetime | None = None) -> AuditReportSummary:
    """Counts per action (all actions present, zero-filled), admin and product.

    With no entries the date range collapses to *now* on both ends.
    """
    actions: Counter[str] = Counter({str(action): 0 for action in AuditAction})
    administrators: Counter[str] = Counter()
    products: Counter[str] = Counter()
    for entry in entries:
        actions[str(entry.action)] += 1
        administrators[f"{entry.administrator_name} ({entry.administrator_email})"] += 1
        products[entry.product_name] += 1

    if entries:
        timestamps = [entry.timestamp for entry in entries]
        date_range = DateRange(start=min(timestamps), end=max(timestamps))
    else:
        now = now or utcnow()
        date_range = DateRange(start=now, end=now)

    return AuditReportSummary(
        total_entries=len(entries),
        action_counts=dict(actions),
        administrator_counts=dict(administrators),
        product_counts=dict(products),
        date_range=date_range,
    )


def create_report(
    entries: Iterable[AuditLogEntry],
    filters: AuditReportFilters,
    generated_by: str,
    title: str | None = None,
    export_format: ExportFormat = ExportFormat.JSON,
    *,
    now: datetime | None = None,
) -> AuditReport:
    """Filter, sort newest-first and summarize *entries* into a report.

    The report's date range is the filter's explicit range when given,
    otherwise the range observed in the selected entries.
    """
    now = now or utcnow()
    selected = sort_entries(filter_entries(entries, filters))
    summary = summarize(selected, now)
    report = AuditReport(
        id=_new_id("report", now),
        title=title or f"Audit Report - {format_short_date(now)}",
        generated_at=now,
        generated_by=generated_by,
        date_range=filters.date_range or summary.date_range,
        filters=filters,
        entries=selected,
        summary=summary,
        export_format=export_format,
    )
    log.info(
        "audit.report_generated",
        report_id=report.id,
        total_entries=len(selected),
        export_format=str(export_format),
    )
    return report


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def export_csv(report: AuditReport) -> str:
    """Render *report* as CSV.

    The header row is written bare. Every data cell is quoted and embedded
    quotes are doubled. Rows are separated by ``\\n`` with no trailing
    newline.
    """
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for entry in report.entries:
        writer.writerow(
            [
                entry.timestamp.isoformat(),
                entry.administrator_name,
                entry.administrator_email,
                str(entry.action),
                entry.target_user_name,
                entry.target_user_email,
                entry.product_name,
                json.dumps(entry.details.to_dict(), separators=(",", ":")),
                entry.ip_address or "",
                entry.user_agent or "",
            ]
        )
    rows = output.getvalue().rstrip("\n")
    header = ",".join(CSV_HEADERS)
    return f"{header}\n{rows}" if rows else header


def export_json(report: AuditReport) -> str:
    return json.dumps(report.to_dict(), indent=2, sort_keys=True)


# ---------------------------------------------------------------------------
# Validation & display
# ---------------------------------------------------------------------------

_REQUIRED_FIELDS = (
    ("administrator_id", "Administrator ID is required"),
    ("administrator_name", "Administrator name is required"),
    ("administrator_email", "Administrator email is required"),
    ("action", "Action is required"),
    ("target_user_id", "Target user ID is required"),
    ("target_user_name", "Target user name is required"),
    ("target_user_email", "Target user email is required"),
    ("product_id", "Product ID is required"),
    ("product_name", "Product name is required"),
)


def validate_entry(entry: Mapping[str, Any] | AuditLogEntry) -> list[str]:
    """One message per missing required field; empty when complete."""
    data = entry.to_dict() if isinstance(entry, AuditLogEntry) else entry
    return [message for name, message in _REQUIRED_FIELDS if not data.get(name)]


def _describe(entry: AuditLogEntry) -> str:
    details = entry.details

    def _date(value: datetime | None) -> str:
        return format_locale_datetime(value) if value else "unknown date"

    action = entry.action
    if action == AuditAction.APPROVE:
        suffix = f' with comment: "{details.comment}"' if details.comment else ""
        return f"Approved access request{suffix}"
    if action == AuditAction.DECLINE:
        return f"Declined access request: {details.reason or 'No reason provided'}"
    if action == AuditAction.RENEW:
        return f"Renewed access until {_date(details.new_expiration_date)}"
    if action == AuditAction.BULK_RENEW:
        count = details.bulk_operation_count or 1
        return f"Bulk renewed access ({count} items) until {_date(details.new_expiration_date)}"
    if action == AuditAction.SCHEDULE_REVOCATION:
        return f"Scheduled access revocation for {_date(details.revocation_scheduled_date)}"
    if action == AuditAction.FORCE_REVOKE:
        suffix = f" - Reason: {details.reason}" if details.reason else ""
        return f"Immediately revoked access{suffix}"
    return f"Performed {action} action"


def format_for_display(entry: AuditLogEntry) -> dict[str, str]:
    """Human-readable rendering of *entry* for audit history views."""
    return {
        "timestamp": format_locale_datetime(entry.timestamp),
        "action": str(entry.action).replace("_", " ").upper(),
        "description": _describe(entry),
        "administrator": f"{entry.administrator_name} ({entry.administrator_email})",
        "target": f"{entry.target_user_name} ({entry.target_user_email})",
        "product": entry.product_name,
    }
