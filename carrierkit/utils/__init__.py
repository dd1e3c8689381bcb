"""Shared utilities: secret redaction and bounded logging."""
