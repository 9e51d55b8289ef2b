"""Contact add/edit sessions."""

from .session import (
    DATE_FIELDS,
    MAX_IMAGE_BYTES,
    ContactFormSession,
    Draft,
    FieldErrors,
    LocalImage,
    SessionState,
    validate_draft,
)

__all__ = [
    "DATE_FIELDS",
    "MAX_IMAGE_BYTES",
    "ContactFormSession",
    "Draft",
    "FieldErrors",
    "LocalImage",
    "SessionState",
    "validate_draft",
]
