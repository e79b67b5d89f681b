"""Notification template catalog.

A fixed table of message templates for access lifecycle events:

- Expiration tiers: 30 / 7 / 1 days before expiry
- Revocation tiers: scheduled (30 days) / 7 days / 1 day before revocation
- Renewal confirmation
- Force revocation, keyed by cause (security, policy, administrative)

Tier selection maps a day count onto the most specific template. A day
count below one has no template: ``process_batch`` raises
``TemplateSelectionError`` rather than silently dropping the notification,
because a missing notification usually means a scheduling bug upstream.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import structlog

from access_governance.core.dates import days_until, format_long_date
from access_governance.core.templating import substitute
from access_governance.notifications.models import (
    BatchNotificationRequest,
    BatchTarget,
    NotificationTemplate,
    RenderedNotification,
    TemplateCategory,
    TemplateType,
    UrgencyLevel,
)

log = structlog.get_logger(__name__)

# Dates in notification copy read "March 15, 2024".
format_notification_date = format_long_date

__all__ = [
    "NOTIFICATION_TEMPLATES",
    "TemplateSelectionError",
    "days_until",
    "expiration_template_for",
    "force_revocation_template_for",
    "format_notification_date",
    "get_template",
    "get_templates_by_category",
    "get_templates_by_type",
    "get_templates_by_urgency",
    "populate",
    "process_batch",
    "render_force_revocation",
    "render_request",
    "render_template",
    "require_template",
    "revocation_template_for",
]


class TemplateSelectionError(LookupError):
    """Raised when no catalog tier matches a notification request."""


NOTIFICATION_TEMPLATES: tuple[NotificationTemplate, ...] = (
    # Expiration
    NotificationTemplate(
        id="expiring-30-days",
        type=TemplateType.ACCESS_EXPIRING_SOON,
        title="Access Expiring in 30 Days",
        message_template=(
            "Your access to {productName} will expire in 30 days on {expirationDate}. "
            "Please request renewal if you need continued access to avoid interruption."
        ),
        variables=("productName", "expirationDate"),
        urgency_level=UrgencyLevel.LOW,
        category=TemplateCategory.EXPIRATION,
    ),
    NotificationTemplate(
        id="expiring-7-days",
        type=TemplateType.ACCESS_EXPIRING_SOON,
        title="Access Expiring in 7 Days",
        message_template=(
            "Your access to {productName} will expire in 7 days on {expirationDate}. "
            "Please request renewal immediately if you need continued access."
        ),
        variables=("productName", "expirationDate"),
        urgency_level=UrgencyLevel.MEDIUM,
        category=TemplateCategory.EXPIRATION,
    ),
    NotificationTemplate(
        id="expiring-1-day",
        type=TemplateType.ACCESS_EXPIRING_SOON,
        title="Access Expiring Tomorrow",
        message_template=(
            "⚠️ URGENT: Your access to {productName} will expire tomorrow on "
            "{expirationDate}. This is your final reminder. Contact your administrator "
            "immediately if you need to extend access."
        ),
        variables=("productName", "expirationDate"),
        urgency_level=UrgencyLevel.CRITICAL,
        category=TemplateCategory.EXPIRATION,
    ),
    # Revocation
    NotificationTemplate(
        id="revocation-scheduled",
        type=TemplateType.ACCESS_REVOCATION_SCHEDULED,
        title="Access Revocation Scheduled",
        message_template=(
            "Your access to {productName} is scheduled for revocation on "
            "{revocationDate}. You have 30 days to complete your work or request "
            "renewal. Contact your administrator if you need to extend access."
        ),
        variables=("productName", "revocationDate"),
        urgency_level=UrgencyLevel.MEDIUM,
        category=TemplateCategory.REVOCATION,
    ),
    NotificationTemplate(
        id="revocation-7-days",
        type=TemplateType.ACCESS_REVOCATION_IMMINENT,
        title="Access Revocation in 7 Days",
        message_template=(
            "⚠️ Your access to {productName} will be revoked in 7 days on "
            "{revocationDate}. Please complete your work or contact your administrator "
            "to request an extension."
        ),
        variables=("productName", "revocationDate"),
        urgency_level=UrgencyLevel.HIGH,
        category=TemplateCategory.REVOCATION,
    ),
    NotificationTemplate(
        id="revocation-1-day",
        type=TemplateType.ACCESS_REVOCATION_IMMINENT,
        title="Access Revocation Imminent",
        message_template=(
            "🚫 URGENT: Your access to {productName} will be revoked tomorrow on "
            "{revocationDate}. This is your final notice. Contact your administrator "
            "immediately if you need to extend access."
        ),
        variables=("productName", "revocationDate"),
        urgency_level=UrgencyLevel.CRITICAL,
        category=TemplateCategory.REVOCATION,
    ),
    # Renewal
    NotificationTemplate(
        id="access-renewed",
        type=TemplateType.ACCESS_RENEWED,
        title="Access Renewed Successfully",
        message_template=(
            "✅ Your access to {productName} has been renewed and will now expire on "
            "{newExpirationDate}. You can continue using this data product."
        ),
        variables=("productName", "newExpirationDate"),
        urgency_level=UrgencyLevel.LOW,
        category=TemplateCategory.RENEWAL,
    ),
    # Administrative
    NotificationTemplate(
        id="force-revoked-security",
        type=TemplateType.ACCESS_FORCE_REVOKED,
        title="Access Revoked - Security Violation",
        message_template=(
            "🚫 Your access to {productName} has been immediately revoked due to a "
            "security violation. Reason: {reason}. Contact your system administrator "
            "immediately if you believe this is an error."
        ),
        variables=("productName", "reason"),
        urgency_level=UrgencyLevel.CRITICAL,
        category=TemplateCategory.ADMINISTRATIVE,
    ),
    NotificationTemplate(
        id="force-revoked-policy",
        type=TemplateType.ACCESS_FORCE_REVOKED,
        title="Access Revoked - Policy Violation",
        message_template=(
            "🚫 Your access to {productName} has been immediately revoked due to a "
            "policy violation. Reason: {reason}. Please review the data governance "
            "policies and contact your administrator for clarification."
        ),
        variables=("productName", "reason"),
        urgency_level=UrgencyLevel.CRITICAL,
        category=TemplateCategory.ADMINISTRATIVE,
    ),
    NotificationTemplate(
        id="force-revoked-administrative",
        type=TemplateType.ACCESS_FORCE_REVOKED,
        title="Access Immediately Revoked",
        message_template=(
            "🚫 Your access to {productName} has been immediately revoked by an "
            "administrator.{reason} If you believe this is an error, please contact "
            "your system administrator immediately."
        ),
        variables=("productName", "reason"),
        urgency_level=UrgencyLevel.CRITICAL,
        category=TemplateCategory.ADMINISTRATIVE,
    ),
)

_BY_ID: dict[str, NotificationTemplate] = {t.id: t for t in NOTIFICATION_TEMPLATES}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def get_template(template_id: str) -> NotificationTemplate | None:
    return _BY_ID.get(template_id)


def require_template(template_id: str) -> NotificationTemplate:
    """Like ``get_template`` but raises KeyError for an unknown id."""
    return _BY_ID[template_id]


def get_templates_by_type(template_type: TemplateType) -> list[NotificationTemplate]:
    return [t for t in NOTIFICATION_TEMPLATES if t.type == template_type]


def get_templates_by_category(category: TemplateCategory) -> list[NotificationTemplate]:
    return [t for t in NOTIFICATION_TEMPLATES if t.category == category]


def get_templates_by_urgency(urgency: UrgencyLevel) -> list[NotificationTemplate]:
    return [t for t in NOTIFICATION_TEMPLATES if t.urgency_level == urgency]


# ---------------------------------------------------------------------------
# Tier selection
# ---------------------------------------------------------------------------


def _tier(days: int, thirty: str, seven: str, one: str) -> NotificationTemplate | None:
    if days >= 30:
        return _BY_ID[thirty]
    if days >= 7:
        return _BY_ID[seven]
    if days >= 1:
        return _BY_ID[one]
    return None


def expiration_template_for(days_until: int) -> NotificationTemplate | None:
    """Pick the expiration tier for *days_until* (None below one day)."""
    return _tier(days_until, "expiring-30-days", "expiring-7-days", "expiring-1-day")


def revocation_template_for(days_until: int) -> NotificationTemplate | None:
    """Pick the revocation tier for *days_until* (None below one day)."""
    return _tier(days_until, "revocation-scheduled", "revocation-7-days", "revocation-1-day")


def force_revocation_template_for(reason: str | None) -> NotificationTemplate:
    """Pick the force-revocation template from the wording of *reason*."""
    lowered = (reason or "").lower()
    if "security" in lowered:
        return _BY_ID["force-revoked-security"]
    if "policy" in lowered:
        return _BY_ID["force-revoked-policy"]
    return _BY_ID["force-revoked-administrative"]


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def populate(template: NotificationTemplate, variables: Mapping[str, str]) -> tuple[str, str]:
    """Render *template* into ``(title, message)``.

    Only the template's declared variables are substituted; a declared
    variable with no value stays as its literal ``{name}`` placeholder.
    """
    values = {name: variables[name] for name in template.variables if variables.get(name)}
    return template.title, substitute(template.message_template, values)


def render_request(request: BatchNotificationRequest) -> RenderedNotification:
    """Render one batch request with its tier template.

    Raises:
        TemplateSelectionError: If no tier matches ``days_until_target``.
    """
    if request.notification_type == BatchTarget.EXPIRATION:
        template = expiration_template_for(request.days_until_target)
    else:
        template = revocation_template_for(request.days_until_target)

    if template is None:
        raise TemplateSelectionError(
            f"No template found for {request.notification_type} "
            f"with {request.days_until_target} days"
        )

    formatted = format_notification_date(request.target_date)
    return render_template(
        template,
        {
            "productName": request.product_name,
            "expirationDate": formatted,
            "revocationDate": formatted,
            "newExpirationDate": formatted,
        },
        user_id=request.user_id,
        user_name=request.user_name,
        user_email=request.user_email,
        product_id=request.product_id,
        product_name=request.product_name,
    )


def process_batch(requests: Iterable[BatchNotificationRequest]) -> list[RenderedNotification]:
    """Render every request, failing fast on the first unmatched tier.

    Callers that need per-item tolerance should call ``render_request``
    themselves and handle ``TemplateSelectionError`` for each item.
    """
    rendered = [render_request(request) for request in requests]
    log.debug("notification_templates.batch_rendered", count=len(rendered))
    return rendered


def render_template(
    template: NotificationTemplate,
    variables: Mapping[str, str],
    *,
    user_id: str | None = None,
    user_name: str | None = None,
    user_email: str | None = None,
    product_id: str | None = None,
    product_name: str | None = None,
) -> RenderedNotification:
    """Render a specific catalog template for one recipient."""
    title, message = populate(template, variables)
    return RenderedNotification(
        user_id=user_id,
        user_name=user_name,
        user_email=user_email,
        product_id=product_id,
        product_name=product_name,
        title=title,
        message=message,
        urgency_level=template.urgency_level,
        type=template.type,
    )


def render_force_revocation(
    *,
    product_name: str,
    reason: str | None,
    user_id: str | None = None,
    user_name: str | None = None,
    user_email: str | None = None,
    product_id: str | None = None,
) -> RenderedNotification:
    """Render the force-revocation notice matching *reason*.

    The administrative template embeds the reason as an optional trailing
    sentence, so an absent reason renders as nothing rather than a
    placeholder.
    """
    template = force_revocation_template_for(reason)
    if template.id == "force-revoked-administrative":
        suffix = f" Reason: {reason.rstrip('.')}." if reason else ""
        message = substitute(
            template.message_template,
            {"productName": product_name, "reason": suffix},
        )
        title = template.title
    else:
        title, message = populate(template, {"productName": product_name, "reason": reason or ""})
    return RenderedNotification(
        user_id=user_id,
        user_name=user_name,
        user_email=user_email,
        product_id=product_id,
        product_name=product_name,
        title=title,
        message=message,
        urgency_level=template.urgency_level,
        type=template.type,
    )
