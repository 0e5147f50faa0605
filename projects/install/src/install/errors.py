"""Errors raised by the installer."""

from schema.errors import SchemaError, ValidationError, flatten_errors

__all__ = [
    "AlreadyInstalledError",
    "SchemaError",
    "ValidationError",
    "flatten_errors",
]


class AlreadyInstalledError(Exception):
    """The target store is already installed."""
