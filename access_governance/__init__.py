"""Access governance engine: notification scheduling and audit logging for data product access."""

__version__ = "0.1.0"
