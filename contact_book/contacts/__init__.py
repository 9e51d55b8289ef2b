"""Contact records and their persistence backends."""

from .errors import (
    ContactBookError,
    LinkFailure,
    NotFoundError,
    PayloadTooLarge,
    TransientStoreFailure,
    UploadFailure,
    ValidationError,
)
from .models import (
    Contact,
    ContactFields,
    ContactPatch,
    is_iso_date,
    is_valid_email,
    parse_contact_date,
    today_iso,
)
from .store import ContactStore, UploadSlot, get_contact_store
from .file_store import FileContactStore

__all__ = [
    # Records
    "Contact",
    "ContactFields",
    "ContactPatch",
    "is_iso_date",
    "is_valid_email",
    "parse_contact_date",
    "today_iso",
    # Storage
    "ContactStore",
    "FileContactStore",
    "UploadSlot",
    "get_contact_store",
    # Errors
    "ContactBookError",
    "LinkFailure",
    "NotFoundError",
    "PayloadTooLarge",
    "TransientStoreFailure",
    "UploadFailure",
    "ValidationError",
]
