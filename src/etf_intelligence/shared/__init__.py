"""Shared enums and value types."""
