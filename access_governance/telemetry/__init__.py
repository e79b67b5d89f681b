"""Telemetry package: structured logging setup and context helpers."""

from __future__ import annotations

from access_governance.telemetry.logging import (
    bind_admin_context,
    clear_context,
    configure_logging,
)

__all__ = [
    "bind_admin_context",
    "clear_context",
    "configure_logging",
]
