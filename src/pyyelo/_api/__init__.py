"""Endpoint modules for the Yelo REST API (internal)."""
