"""Decline-comment templates offered to administrators.

When declining an access request an administrator can start from a
canned comment. Templates are grouped by category and carry ``{variable}``
placeholders rendered with ``access_governance.core.templating``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from access_governance.core.dates import format_locale_datetime, format_short_date, utcnow


class CommentTemplateCategory(StrEnum):
    SECURITY = "security"
    POLICY = "policy"
    JUSTIFICATION = "justification"
    TECHNICAL = "technical"
    OTHER = "other"


@dataclass(frozen=True)
class CommentTemplate:
    id: str
    category: CommentTemplateCategory
    title: str
    content: str
    variables: tuple[str, ...] | None = None


@dataclass(frozen=True)
class SuggestionContext:
    product_name: str | None = None
    requester_name: str | None = None
    business_justification: str | None = None


DEFAULT_COMMENT_TEMPLATES: tuple[CommentTemplate, ...] = (
    CommentTemplate(
        id="template-001",
        category=CommentTemplateCategory.SECURITY,
        title="Security Clearance Required",
        content=(
            "Access denied due to insufficient security clearance. The requested data "
            "contains sensitive information that requires additional security approval "
            "from the Information Security team."
        ),
        variables=("productName", "requesterName"),
    ),
    CommentTemplate(
        id="template-002",
        category=CommentTemplateCategory.SECURITY,
        title="PII Data Access Restriction",
        content=(
            "Access to {productName} cannot be granted as it contains Personally "
            "Identifiable Information (PII). Please complete the PII handling training "
            "and obtain appropriate data handling certification before resubmitting "
            "your request."
        ),
        variables=("productName", "requesterName"),
    ),
    CommentTemplate(
        id="template-003",
        category=CommentTemplateCategory.SECURITY,
        title="Regulatory Compliance Issue",
        content=(
            "Your request for access to {productName} has been declined due to "
            "regulatory compliance requirements. This dataset is subject to "
            "{regulationType} regulations and requires additional compliance approval."
        ),
        variables=("productName", "requesterName", "regulationType"),
    ),
    CommentTemplate(
        id="template-004",
        category=CommentTemplateCategory.POLICY,
        title="Data Governance Policy Violation",
        content=(
            "Request declined as it violates company data governance policy section "
            "{policySection}. Please review the data governance guidelines at "
            "{policyUrl} and resubmit with proper justification."
        ),
        variables=("productName", "policySection", "policyUrl"),
    ),
    CommentTemplate(
        id="template-005",
        category=CommentTemplateCategory.POLICY,
        title="Data Classification Restriction",
        content=(
            "Access to {productName} is restricted due to its {dataClassification} "
            "classification level. Please contact the data steward {dataSteward} for "
            "alternative access options or data anonymization services."
        ),
        variables=("productName", "dataClassification", "dataSteward"),
    ),
    CommentTemplate(
        id="template-006",
        category=CommentTemplateCategory.POLICY,
        title="Cross-Department Access Restriction",
        content=(
            "Access to {productName} is restricted to {authorizedDepartments} "
            "departments only. As a member of {requesterDepartment}, you do not have "
            "authorization to access this dataset. Please contact your department head "
            "for escalation if business-critical."
        ),
        variables=("productName", "authorizedDepartments", "requesterDepartment"),
    ),
    CommentTemplate(
        id="template-007",
        category=CommentTemplateCategory.JUSTIFICATION,
        title="Insufficient Business Justification",
        content=(
            "The business justification provided is insufficient for granting access "
            "to {productName}. Please provide more detailed information about: "
            "1) Specific use case and business objectives, 2) Expected outcomes and "
            "success metrics, 3) Data retention and usage timeline, 4) Alternative "
            "data sources considered."
        ),
        variables=("productName", "requesterName"),
    ),
    CommentTemplate(
        id="template-008",
        category=CommentTemplateCategory.JUSTIFICATION,
        title="Vague Use Case Description",
        content=(
            "Your request for {productName} access has been declined due to vague use "
            "case description. Please resubmit with specific details about how the "
            "data will be used, what analysis will be performed, and how it aligns "
            "with your team's objectives."
        ),
        variables=("productName", "requesterName"),
    ),
    CommentTemplate(
        id="template-009",
        category=CommentTemplateCategory.JUSTIFICATION,
        title="Alternative Data Source Available",
        content=(
            "Access to {productName} is declined as there are alternative data sources "
            "available that better suit your stated use case. Please consider using "
            "{alternativeDataSource} which provides similar data with appropriate "
            "access controls for your requirements."
        ),
        variables=("productName", "alternativeDataSource", "requesterName"),
    ),
    CommentTemplate(
        id="template-010",
        category=CommentTemplateCategory.TECHNICAL,
        title="Technical Requirements Not Met",
        content=(
            "Access cannot be granted due to unmet technical requirements. Please "
            "ensure your environment meets: 1) {technicalRequirements}, 2) Network "
            "security standards, 3) Data encryption capabilities. Contact IT support "
            "for assistance with setup."
        ),
        variables=("productName", "technicalRequirements"),
    ),
    CommentTemplate(
        id="template-011",
        category=CommentTemplateCategory.TECHNICAL,
        title="Infrastructure Compatibility Issue",
        content=(
            "Your request for {productName} access cannot be approved due to "
            "infrastructure compatibility issues. The dataset requires "
            "{requiredInfrastructure} which is not available in your current "
            "environment. Please work with the Infrastructure team to resolve these "
            "requirements."
        ),
        variables=("productName", "requiredInfrastructure", "requesterName"),
    ),
    CommentTemplate(
        id="template-012",
        category=CommentTemplateCategory.TECHNICAL,
        title="Data Format Incompatibility",
        content=(
            "Access to {productName} is declined due to data format incompatibility "
            "with your stated tools and systems. The dataset is available in "
            "{dataFormat} format, which may not be suitable for your {requesterTools}. "
            "Please consider data transformation services or alternative tools."
        ),
        variables=("productName", "dataFormat", "requesterTools"),
    ),
)

_PREVIEW_CHARS = 100


def filter_by_category(
    templates: Iterable[CommentTemplate],
    category: CommentTemplateCategory,
) -> list[CommentTemplate]:
    return [t for t in templates if t.category == category]


def get_categories(templates: Iterable[CommentTemplate]) -> list[CommentTemplateCategory]:
    """Distinct categories present in *templates*, sorted by name."""
    return sorted({t.category for t in templates})


def search(templates: Iterable[CommentTemplate], term: str) -> list[CommentTemplate]:
    """Case-insensitive substring search over title and content."""
    needle = term.lower()
    return [t for t in templates if needle in t.title.lower() or needle in t.content.lower()]


def suggest(
    templates: Sequence[CommentTemplate],
    context: SuggestionContext | None = None,
) -> list[CommentTemplate]:
    """Rank templates by how well they fit the request being declined.

    Without context the first three templates are returned. With context,
    templates are scored by simple keyword heuristics and the top five are
    returned; ties keep catalog order.
    """
    if context is None:
        return list(templates[:3])

    justification = context.business_justification or ""
    product = (context.product_name or "").lower()

    def _score(template: CommentTemplate) -> int:
        score = 0
        if template.category == CommentTemplateCategory.SECURITY and "sensitive" in product:
            score += 2
        if (
            template.category == CommentTemplateCategory.JUSTIFICATION
            and justification
            and len(justification) < 50
        ):
            score += 2
        if template.category == CommentTemplateCategory.POLICY and "policy" in justification.lower():
            score += 1
        return score

    # sorted() is stable, so equal scores keep their catalog position
    return sorted(templates, key=_score, reverse=True)[:5]


def format_for_display(template: CommentTemplate) -> dict[str, Any]:
    content = template.content
    preview = f"{content[:_PREVIEW_CHARS]}..." if len(content) > _PREVIEW_CHARS else content
    return {
        "id": template.id,
        "label": template.title,
        "value": content,
        "category": template.category.value,
        "preview": preview,
    }


def common_variables(
    *,
    product_name: str | None = None,
    requester_name: str | None = None,
    requester_email: str | None = None,
    bdac: str | None = None,
    business_justification: str | None = None,
    now: datetime | None = None,
) -> dict[str, str]:
    """Standard variable map for access-request comments.

    Missing context values become bracketed placeholders so the rendered
    comment still reads sensibly.
    """
    now = now or utcnow()
    return {
        "productName": product_name or "[Product Name]",
        "requesterName": requester_name or "[Requester Name]",
        "requesterEmail": requester_email or "[Requester Email]",
        "bdac": bdac or "[BDAC]",
        "businessJustification": business_justification or "[Business Justification]",
        "currentDate": format_short_date(now),
        "currentDateTime": format_locale_datetime(now),
    }
