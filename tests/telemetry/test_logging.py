"""Tests for structured logging setup and context binding."""

from __future__ import annotations

import structlog

from access_governance.telemetry.logging import (
    bind_admin_context,
    clear_context,
    configure_logging,
)


class TestContextBinding:
    def test_bind_and_clear_admin_context(self) -> None:
        clear_context()
        bind_admin_context("admin-007")
        assert structlog.contextvars.get_contextvars() == {"administrator_id": "admin-007"}
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}


class TestConfigureLogging:
    def test_json_renderer_selected(self) -> None:
        configure_logging(json_logs=True, log_level="INFO")
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_console_renderer_selected(self) -> None:
        configure_logging(json_logs=False, log_level="INFO")
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
