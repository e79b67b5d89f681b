"""Audit trail for administrative access actions.

Key components:
- AuditLogEntry / AuditActionDetails: immutable records of one action
- Typed constructors (create_approval_entry, create_renewal_entry, ...)
- filter_entries / sort_entries / summarize: log queries
- create_report / export_csv / export_json: point-in-time reports
"""

from __future__ import annotations

from access_governance.audit.logger import (
    create_approval_entry,
    create_bulk_renewal_entries,
    create_decline_entry,
    create_entry,
    create_force_revocation_entry,
    create_renewal_entry,
    create_report,
    create_revocation_entry,
    create_scheduled_revocation_entry,
    export_csv,
    export_json,
    filter_entries,
    format_for_display,
    sort_entries,
    summarize,
    validate_entry,
)
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

__all__ = [
    "Administrator",
    "AuditAction",
    "AuditActionDetails",
    "AuditLogEntry",
    "AuditReport",
    "AuditReportFilters",
    "AuditReportSummary",
    "DateRange",
    "ExportFormat",
    "SortOrder",
    "create_approval_entry",
    "create_bulk_renewal_entries",
    "create_decline_entry",
    "create_entry",
    "create_force_revocation_entry",
    "create_renewal_entry",
    "create_report",
    "create_revocation_entry",
    "create_scheduled_revocation_entry",
    "export_csv",
    "export_json",
    "filter_entries",
    "format_for_display",
    "sort_entries",
    "summarize",
    "validate_entry",
]
