"""Contact store contract shared by the Firestore and file backends."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List

from ..config import Settings
from .errors import ValidationError
from .models import Contact, ContactFields, ContactPatch

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class UploadSlot:
    """One-time destination for an image payload."""

    upload_url: str
    storage_id: str


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ContactStore(ABC):
    """Authoritative persistence for contacts and their images.

    Subclasses implement the raw document operations; field validation and
    the exclusion of ``id``/``image`` from generic writes happen here.
    """

    def create(self, fields: ContactFields) -> str:
        """Persist a new contact and return its identifier."""
        errors = fields.errors()
        if errors:
            raise ValidationError(errors)
        document = fields.to_dict()
        document["image"] = None
        document["createdAt"] = _now()
        contact_id = self._insert(document)
        logger.info("Created contact %s", contact_id)
        return contact_id

    def update(self, contact_id: str, patch: ContactPatch) -> bool:
        """Apply ``patch`` to an existing contact."""
        errors = patch.errors()
        if errors:
            raise ValidationError(errors)
        self._patch(contact_id, patch.to_updates())
        logger.info("Updated contact %s", contact_id)
        return True

    @abstractmethod
    def list(self) -> List[Contact]:
        """Return all contacts in store order with images resolved to URLs."""

    @abstractmethod
    def get(self, contact_id: str) -> Contact:
        """Return one contact with its image resolved, or raise NotFoundError."""

    @abstractmethod
    def delete(self, contact_id: str) -> bool:
        """Remove a contact; raises NotFoundError when it is already gone."""

    @abstractmethod
    def request_upload_slot(self) -> UploadSlot:
        ...

    @abstractmethod
    def send_bytes(self, slot: UploadSlot, data: bytes, content_type: str) -> str:
        """Upload ``data`` to ``slot`` and return the storage reference."""

    @abstractmethod
    def link_image(self, contact_id: str, storage_id: str) -> bool:
        """Attach (or replace) the image reference on a contact."""

    @abstractmethod
    def _insert(self, document: Dict[str, Any]) -> str:
        ...

    @abstractmethod
    def _patch(self, contact_id: str, updates: Dict[str, Any]) -> None:
        ...


def get_contact_store(settings: Settings) -> ContactStore:
    """Build the store backend selected by ``settings``."""

    if settings.force_file:
        from .file_store import FileContactStore

        return FileContactStore(settings.data_dir)

    from ..firestore import get_firestore_client, get_storage_bucket
    from .firestore_store import FirestoreContactStore

    return FirestoreContactStore(
        get_firestore_client(),
        get_storage_bucket(settings.storage_bucket),
        collection=settings.collection,
        signed_url_minutes=settings.signed_url_minutes,
    )
