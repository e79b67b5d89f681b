"""Shared helpers: placeholder templating, decline comment templates, dates."""
