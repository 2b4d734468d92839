"""Exception hierarchy for agmanager."""

from __future__ import annotations


class AgManagerError(Exception):
    """Base exception for all agmanager errors."""


class SerializerClosedError(AgManagerError):
    """Raised when a write is submitted to a closed serializer."""
