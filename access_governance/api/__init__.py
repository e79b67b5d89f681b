"""HTTP surface for the admin service."""
