"""Placeholder substitution for message templates.

Templates reference variables as ``{name}``. Two rendering modes exist:

- ``substitute``: fills known variables and leaves unknown placeholders
  verbatim. Never raises, so partially-known context can be rendered.
- ``preview``: fills known variables and shows each *required* variable
  that has no value as ``[name]``. This is the human-facing preview.

``validate`` reports which required variables are missing so callers can
block submission; it never raises either.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

_PLACEHOLDER = re.compile(r"\{([^}]+)\}")


@dataclass(frozen=True)
class TemplateValidation:
    """Result of checking a variable map against required names."""

    is_valid: bool
    missing_variables: list[str] = field(default_factory=list)


def extract_variables(content: str) -> list[str]:
    """Return placeholder names in first-occurrence order, without duplicates."""
    names: list[str] = []
    for match in _PLACEHOLDER.finditer(content):
        name = match.group(1)
        if name not in names:
            names.append(name)
    return names


def substitute(content: str, variables: Mapping[str, str]) -> str:
    """Replace every ``{name}`` that has an entry in *variables*.

    Placeholders without a matching key are left untouched.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        return match.group(0)

    return _PLACEHOLDER.sub(_replace, content)


def _required(content: str, required: Sequence[str] | None) -> Sequence[str]:
    return extract_variables(content) if required is None else required


def validate(
    content: str,
    variables: Mapping[str, str],
    required: Sequence[str] | None = None,
) -> TemplateValidation:
    """Check that every required variable has a truthy value.

    Args:
        content: Template text, used to derive the required names when the
            template does not declare its own list.
        variables: Candidate values.
        required: Explicit required names, if the template declares them.

    Returns:
        TemplateValidation with the missing names in declaration order.
    """
    missing = [name for name in _required(content, required) if not variables.get(name)]
    return TemplateValidation(is_valid=not missing, missing_variables=missing)


def preview(
    content: str,
    variables: Mapping[str, str] | None = None,
    required: Sequence[str] | None = None,
) -> str:
    """Render *content* for display, bracketing required variables without a value."""
    values = variables or {}
    rendered = content
    for name in _required(content, required):
        rendered = rendered.replace("{" + name + "}", values.get(name) or f"[{name}]")
    return rendered
