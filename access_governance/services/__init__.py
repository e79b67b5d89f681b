"""Stateful orchestration over the pure access, notification and audit cores."""
