"""Tests for the audit log engine.

Covers:
- Typed entry constructors and their details payloads
- Filtering, sorting and zero-filled summaries
- Report generation and CSV / JSON export
- Entry validation and display formatting
"""

from __future__ import annotations

import csv
import io
import json
import re
from datetime import timedelta

import pytest

from access_governance.audit import logger as audit
from access_governance.audit.models import (
    AuditAction,
    AuditActionDetails,
    AuditReportFilters,
    DateRange,
    ExportFormat,
    SortOrder,
)


@pytest.fixture
def entries(admin, make_grant, make_request, now):
    """A small mixed log, oldest first."""
    other = make_grant("access-002", user_id="user-003", product_id="prod-002",
                       product_name="Sensitive HR Records")
    return [
        audit.create_approval_entry(make_request(), admin, "Looks fine", now=now),
        audit.create_renewal_entry(make_grant(), admin, now=now + timedelta(hours=1)),
        audit.create_force_revocation_entry(
            other, admin, "Security incident", now=now + timedelta(hours=2)
        ),
    ]


class TestEntryConstruction:
    def test_id_format_and_admin_fields(self, admin, make_grant, now) -> None:
        entry = audit.create_renewal_entry(make_grant(), admin, now=now)
        assert re.fullmatch(r"audit-\d+-[a-z0-9]{9}", entry.id)
        assert entry.id.split("-")[1] == str(int(now.timestamp() * 1000))
        assert entry.timestamp == now
        assert entry.administrator_id == "admin-001"
        assert entry.ip_address == "10.0.0.1"
        assert entry.access_id == "access-001"
        assert entry.request_id is None

    def test_ids_unique(self, admin, make_grant, now) -> None:
        ids = {audit.create_renewal_entry(make_grant(), admin, now=now).id for _ in range(50)}
        assert len(ids) == 50

    def test_approval_details(self, admin, make_request, now) -> None:
        entry = audit.create_approval_entry(make_request(), admin, "Approved for Q2", now=now)
        assert entry.action == AuditAction.APPROVE
        assert entry.request_id == "req-001"
        assert entry.target_user_id == "user-002"
        assert entry.details.comment == "Approved for Q2"
        assert entry.details.new_expiration_date == now + timedelta(days=365)
        assert entry.details.additional_context == {
            "business_justification": "Quarterly churn modelling",
            "bdac": "BDAC-42",
            "priority": "high",
            "days_waiting": 3,
        }

    def test_decline_reason_is_comment(self, admin, make_request, now) -> None:
        entry = audit.create_decline_entry(
            make_request(), admin, "Insufficient justification", "template-007", now=now
        )
        assert entry.action == AuditAction.DECLINE
        assert entry.details.reason == "Insufficient justification"
        assert entry.details.comment == "Insufficient justification"
        assert entry.details.template_used == "template-007"

    def test_renewal_details(self, admin, make_grant, now) -> None:
        grant = make_grant()
        entry = audit.create_renewal_entry(grant, admin, now=now)
        assert entry.details.previous_expiration_date == grant.expires_at
        assert entry.details.new_expiration_date == now + timedelta(days=365)
        assert entry.details.additional_context["previous_status"] == "active"

    def test_bulk_renewal_fan_out(self, admin, make_grant, now) -> None:
        grants = [make_grant("a"), make_grant("b")]
        entries = audit.create_bulk_renewal_entries(grants, admin, now=now)
        assert len(entries) == 2
        assert [e.access_id for e in entries] == ["a", "b"]
        assert all(e.action == AuditAction.BULK_RENEW for e in entries)
        assert all(e.details.bulk_operation_count == 2 for e in entries)
        assert entries[0].details.new_expiration_date == entries[1].details.new_expiration_date

    def test_scheduled_revocation_details(self, admin, make_grant, now) -> None:
        revocation_date = now + timedelta(days=30)
        entry = audit.create_scheduled_revocation_entry(make_grant(), admin, revocation_date, now=now)
        assert entry.details.revocation_scheduled_date == revocation_date
        assert entry.details.additional_context["notification_period"] == "30 days"

    def test_force_revocation_details(self, admin, make_grant, now) -> None:
        entry = audit.create_force_revocation_entry(make_grant(), admin, "Policy breach", now=now)
        assert entry.action == AuditAction.FORCE_REVOKE
        assert entry.details.reason == "Policy breach"
        assert entry.details.additional_context["immediate_revocation"] is True

    def test_details_to_dict_omits_unset(self, now) -> None:
        details = AuditActionDetails(comment="ok", new_expiration_date=now)
        assert details.to_dict() == {"comment": "ok", "new_expiration_date": now.isoformat()}


class TestQueries:
    def test_empty_filters_return_input_unchanged(self, entries) -> None:
        assert audit.filter_entries(entries, AuditReportFilters()) == entries
        assert audit.filter_entries(entries) == entries

    def test_every_criterion_applies(self, entries, now) -> None:
        filters = AuditReportFilters(
            product_ids=("prod-001",),
            actions=(AuditAction.RENEW, AuditAction.FORCE_REVOKE),
        )
        result = audit.filter_entries(entries, filters)
        assert [e.action for e in result] == [AuditAction.RENEW]

    def test_date_range_inclusive(self, entries, now) -> None:
        filters = AuditReportFilters(
            date_range=DateRange(start=now + timedelta(hours=1), end=now + timedelta(hours=2))
        )
        result = audit.filter_entries(entries, filters)
        assert [e.action for e in result] == [AuditAction.RENEW, AuditAction.FORCE_REVOKE]

    def test_unknown_administrator_matches_nothing(self, entries) -> None:
        filters = AuditReportFilters(administrator_ids=("admin-999",))
        assert audit.filter_entries(entries, filters) == []

    def test_sort_orders(self, entries) -> None:
        assert audit.sort_entries(entries)[0] is entries[-1]
        assert audit.sort_entries(entries, SortOrder.ASC)[0] is entries[0]

    def test_summary_totals(self, entries) -> None:
        summary = audit.summarize(entries)
        assert summary.total_entries == 3
        assert sum(summary.action_counts.values()) == len(entries)
        assert set(summary.action_counts) == {str(a) for a in AuditAction}
        assert summary.action_counts["bulk_renew"] == 0
        assert summary.administrator_counts == {"System Administrator (admin@company.com)": 3}
        assert summary.product_counts == {"Customer Analytics": 2, "Sensitive HR Records": 1}
        assert summary.date_range.start == entries[0].timestamp
        assert summary.date_range.end == entries[-1].timestamp

    def test_empty_summary_range_collapses_to_now(self, now) -> None:
        summary = audit.summarize([], now)
        assert summary.total_entries == 0
        assert summary.date_range == DateRange(start=now, end=now)


class TestReports:
    def test_report_defaults(self, entries, now) -> None:
        report = audit.create_report(entries, AuditReportFilters(), "Admin (a@b.c)", now=now)
        assert report.title == "Audit Report - 3/15/2024"
        assert report.id.startswith("report-")
        assert report.export_format == ExportFormat.JSON
        assert report.entries[0] is entries[-1]
        assert report.summary.total_entries == 3

    def test_explicit_range_becomes_report_range(self, entries, now) -> None:
        date_range = DateRange(start=now - timedelta(days=7), end=now + timedelta(days=1))
        report = audit.create_report(
            entries, AuditReportFilters(date_range=date_range), "Admin", "Weekly", now=now
        )
        assert report.title == "Weekly"
        assert report.date_range == date_range

    def test_csv_shape(self, entries, now) -> None:
        report = audit.create_report(entries, AuditReportFilters(), "Admin", now=now)
        content = audit.export_csv(report)
        lines = content.split("\n")

        assert lines[0] == ",".join(audit.CSV_HEADERS)
        assert len(lines) == 1 + len(entries)
        assert not content.endswith("\n")
        for line in lines[1:]:
            assert line.startswith('"') and line.endswith('"')
            (row,) = list(csv.reader(io.StringIO(line)))
            assert len(row) == 10

    def test_csv_escapes_embedded_quotes(self, admin, make_request, now) -> None:
        entry = audit.create_decline_entry(make_request(), admin, 'Use the "gold" dataset', now=now)
        report = audit.create_report([entry], AuditReportFilters(), "Admin", now=now)
        content = audit.export_csv(report)
        (row,) = list(csv.reader(io.StringIO(content.split("\n", 1)[1])))
        assert json.loads(row[7])["reason"] == 'Use the "gold" dataset'

    def test_csv_empty_report_is_header_only(self, now) -> None:
        report = audit.create_report([], AuditReportFilters(), "Admin", now=now)
        assert audit.export_csv(report) == ",".join(audit.CSV_HEADERS)

    def test_json_export(self, entries, now) -> None:
        report = audit.create_report(entries, AuditReportFilters(), "Admin", now=now)
        data = json.loads(audit.export_json(report))
        assert data["id"] == report.id
        assert len(data["entries"]) == 3
        assert data["summary"]["total_entries"] == 3


class TestValidationAndDisplay:
    def test_complete_entry_valid(self, entries) -> None:
        assert audit.validate_entry(entries[0]) == []

    def test_missing_fields_reported(self) -> None:
        errors = audit.validate_entry({"administrator_id": "admin-001", "action": "renew"})
        assert "Administrator name is required" in errors
        assert "Product ID is required" in errors
        assert "Administrator ID is required" not in errors
        assert len(errors) == 7

    def test_display_descriptions(self, entries) -> None:
        approval, renewal, force = (audit.format_for_display(e) for e in entries)
        assert approval["description"] == 'Approved access request with comment: "Looks fine"'
        assert approval["action"] == "APPROVE"
        assert renewal["description"].startswith("Renewed access until 3/15/2025")
        assert force["action"] == "FORCE REVOKE"
        assert force["description"] == "Immediately revoked access - Reason: Security incident"
        assert force["product"] == "Sensitive HR Records"
