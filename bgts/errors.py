"""
Domain exceptions.

The HTTP layer maps each of these to a status code in main.py. Only the
store raises them; the penalty calculator and the source classifier are
total functions.
"""

from __future__ import annotations

from typing import Iterable, Optional


class GiftError(Exception):
    """Base exception for gift declaration errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GiftError):
    """Raised when required fields are missing or malformed."""

    def __init__(self, message: str, fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.fields = list(fields or [])

    @classmethod
    def missing(cls, fields: Iterable[str]) -> "ValidationError":
        fields = list(fields)
        return cls(f"Missing required fields: {', '.join(fields)}", fields)


class InvalidTransitionError(ValidationError):
    """Raised when a review decision is applied to a record that is not pending."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot move a declaration from '{current}' to '{requested}'",
            fields=["decision"],
        )
        self.current = current
        self.requested = requested


class NotFoundError(GiftError):
    """Raised when a lookup by id or reference finds nothing."""


class StorageError(GiftError):
    """Raised when the backing files cannot be read or written.

    The message is safe to show to callers: it never contains file paths.
    """
