"""Error types raised by the contact store and editing sessions."""
from __future__ import annotations

from typing import Iterable, Optional


class ContactBookError(RuntimeError):
    """Base class for recoverable contact book errors."""


class ValidationError(ContactBookError):
    """Raised when required fields are missing or malformed."""

    def __init__(self, fields: Iterable[str], message: Optional[str] = None) -> None:
        self.fields = list(fields)
        super().__init__(message or f"Invalid or missing fields: {', '.join(self.fields)}")


class NotFoundError(ContactBookError):
    """Raised when a contact identifier no longer exists."""

    def __init__(self, contact_id: str) -> None:
        self.contact_id = contact_id
        super().__init__(f"Contact {contact_id} not found.")


class PayloadTooLarge(ContactBookError):
    """Raised when a selected image exceeds the upload limit."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"Image size {size} bytes exceeds {limit // (1024 * 1024)}MB limit.")


class TransientStoreFailure(ContactBookError):
    """Raised when a store call fails for reasons other than a missing record."""


class UploadFailure(ContactBookError):
    """Raised when image bytes could not be pushed to storage."""


class LinkFailure(ContactBookError):
    """Raised when an uploaded image could not be attached to its contact."""
