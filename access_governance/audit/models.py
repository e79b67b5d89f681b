"""Audit trail records.

Entries are immutable once created. The log is append-only; the only way
to remove entries is an explicit administrative clear.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class AuditAction(StrEnum):
    APPROVE = "approve"
    DECLINE = "decline"
    RENEW = "renew"
    REVOKE = "revoke"
    FORCE_REVOKE = "force_revoke"
    SCHEDULE_REVOCATION = "schedule_revocation"
    BULK_RENEW = "bulk_renew"


class ExportFormat(StrEnum):
    JSON = "json"
    CSV = "csv"
    PDF = "pdf"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Administrator:
    """The actor recorded on every audit entry."""

    id: str
    name: str
    email: str
    ip_address: str | None = None
    user_agent: str | None = None

    @property
    def display_name(self) -> str:
        return f"{self.name} ({self.email})"


def _isoformat(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


@dataclass(frozen=True)
class AuditActionDetails:
    """Action-specific payload of an audit entry.

    Which fields are set depends on the action; see the constructors in
    ``access_governance.audit.logger``.
    """

    comment: str | None = None
    reason: str | None = None
    previous_expiration_date: datetime | None = None
    new_expiration_date: datetime | None = None
    revocation_scheduled_date: datetime | None = None
    bulk_operation_count: int | None = None
    template_used: str | None = None
    additional_context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping; unset fields are omitted."""
        data: dict[str, Any] = {}
        for name in (
            "comment",
            "reason",
            "previous_expiration_date",
            "new_expiration_date",
            "revocation_scheduled_date",
            "bulk_operation_count",
            "template_used",
        ):
            value = getattr(self, name)
            if value is not None:
                data[name] = _isoformat(value)
        if self.additional_context is not None:
            data["additional_context"] = {
                key: _isoformat(value) for key, value in self.additional_context.items()
            }
        return data


@dataclass(frozen=True)
class AuditLogEntry:
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
    details: AuditActionDetails = field(default_factory=AuditActionDetails)
    access_id: str | None = None
    request_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "administrator_id": self.administrator_id,
            "administrator_name": self.administrator_name,
            "administrator_email": self.administrator_email,
            "action": str(self.action),
            "target_user_id": self.target_user_id,
            "target_user_name": self.target_user_name,
            "target_user_email": self.target_user_email,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "access_id": self.access_id,
            "request_id": self.request_id,
            "details": self.details.to_dict(),
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
        }


@dataclass(frozen=True)
class DateRange:
    """Inclusive timestamp window."""

    start: datetime
    end: datetime

    def contains(self, value: datetime) -> bool:
        return self.start <= value <= self.end

    def to_dict(self) -> dict[str, str]:
        return {"from": self.start.isoformat(), "to": self.end.isoformat()}


@dataclass(frozen=True)
class AuditReportFilters:
    """Criteria are AND-ed; list criteria match any member. Empty means no restriction."""

    administrator_ids: tuple[str, ...] = ()
    target_user_ids: tuple[str, ...] = ()
    product_ids: tuple[str, ...] = ()
    actions: tuple[AuditAction, ...] = ()
    date_range: DateRange | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.administrator_ids:
            data["administrator_ids"] = list(self.administrator_ids)
        if self.target_user_ids:
            data["target_user_ids"] = list(self.target_user_ids)
        if self.product_ids:
            data["product_ids"] = list(self.product_ids)
        if self.actions:
            data["actions"] = [str(a) for a in self.actions]
        if self.date_range is not None:
            data["date_range"] = self.date_range.to_dict()
        return data


@dataclass(frozen=True)
class AuditReportSummary:
    total_entries: int
    action_counts: dict[str, int]
    administrator_counts: dict[str, int]
    product_counts: dict[str, int]
    date_range: DateRange

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_entries": self.total_entries,
            "action_counts": dict(self.action_counts),
            "administrator_counts": dict(self.administrator_counts),
            "product_counts": dict(self.product_counts),
            "date_range": self.date_range.to_dict(),
        }


@dataclass(frozen=True)
class AuditReport:
    """Point-in-time snapshot of a filtered audit log."""

    id: str
    title: str
    generated_at: datetime
    generated_by: str
    date_range: DateRange
    filters: AuditReportFilters
    entries: list[AuditLogEntry]
    summary: AuditReportSummary
    export_format: ExportFormat = ExportFormat.JSON

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "generated_at": self.generated_at.isoformat(),
            "generated_by": self.generated_by,
            "date_range": self.date_range.to_dict(),
            "filters": self.filters.to_dict(),
            "entries": [entry.to_dict() for entry in self.entries],
            "summary": self.summary.to_dict(),
            "export_format": str(self.export_format),
        }
