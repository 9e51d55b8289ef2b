"""Local JSON-file contact store for development and tests.

Layout under the data directory:
- contacts/{contact_id}.json: one document per contact
- media/{storage_id}: uploaded image payloads
"""
from __future__ import annotations

import json
import logging
import re
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from .errors import LinkFailure, NotFoundError, TransientStoreFailure, UploadFailure
from .models import Contact
from .store import ContactStore, UploadSlot

logger = logging.getLogger(__name__)

# request_upload_slot hands out uuid4 hex names only
STORAGE_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


class FileContactStore(ContactStore):
    """Contact store backed by JSON documents on the local filesystem."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self._open_slots: Set[str] = set()

    @property
    def contacts_dir(self) -> Path:
        return self._ensure_dir("contacts")

    @property
    def media_dir(self) -> Path:
        return self._ensure_dir("media")

    def _ensure_dir(self, name: str) -> Path:
        directory = self.data_dir / name
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise TransientStoreFailure(f"Could not create {directory}: {exc}") from exc
        return directory

    # --- Contact documents ---

    def list(self) -> List[Contact]:
        documents = []
        for filepath in self.contacts_dir.glob("*.json"):
            try:
                documents.append(self._read(filepath))
            except (json.JSONDecodeError, IOError) as exc:
                logger.warning("Skipping unreadable contact file %s: %s", filepath, exc)
        documents.sort(key=lambda doc: doc.get("createdAt", ""))
        return [self._to_contact(doc) for doc in documents]

    def get(self, contact_id: str) -> Contact:
        return self._to_contact(self._load(contact_id))

    def delete(self, contact_id: str) -> bool:
        filepath = self._contact_file(contact_id)
        if not filepath.exists():
            raise NotFoundError(contact_id)
        try:
            filepath.unlink()
        except FileNotFoundError as exc:
            raise NotFoundError(contact_id) from exc
        except OSError as exc:
            logger.warning("Deleting contact file %s failed: %s", filepath, exc)
            raise TransientStoreFailure(f"Could not delete contact {contact_id}: {exc}") from exc
        logger.info("Deleted contact %s", contact_id)
        return True

    def _insert(self, document: Dict[str, Any]) -> str:
        contact_id = uuid.uuid4().hex
        document["id"] = contact_id
        self._write(contact_id, document)
        return contact_id

    def _patch(self, contact_id: str, updates: Dict[str, Any]) -> None:
        document = self._load(contact_id)
        document.update(updates)
        self._write(contact_id, document)

    # --- Images ---

    def request_upload_slot(self) -> UploadSlot:
        storage_id = uuid.uuid4().hex
        self._open_slots.add(storage_id)
        return UploadSlot(
            upload_url=(self.media_dir / storage_id).as_uri(),
            storage_id=storage_id,
        )

    def send_bytes(self, slot: UploadSlot, data: bytes, content_type: str) -> str:
        if slot.storage_id not in self._open_slots:
            raise UploadFailure(f"Upload slot {slot.storage_id} is unknown or already used.")
        try:
            (self.media_dir / slot.storage_id).write_bytes(data)
        except OSError as exc:
            logger.warning("Image upload to %s failed: %s", slot.upload_url, exc)
            raise UploadFailure(str(exc)) from exc
        self._open_slots.discard(slot.storage_id)
        logger.debug("Stored %d bytes (%s) as %s", len(data), content_type, slot.storage_id)
        return slot.storage_id

    def link_image(self, contact_id: str, storage_id: str) -> bool:
        document = self._load(contact_id)
        media_file = self._media_file(storage_id)
        if media_file is None or not media_file.exists():
            raise LinkFailure(f"No uploaded image with reference {storage_id}.")
        document["image"] = storage_id
        try:
            self._write(contact_id, document)
        except TransientStoreFailure as exc:
            raise LinkFailure(str(exc)) from exc
        logger.info("Linked image %s to contact %s", storage_id, contact_id)
        return True

    def _resolve_image(self, storage_id: Optional[str]) -> Optional[str]:
        if not storage_id:
            return None
        path = self._media_file(storage_id)
        return path.as_uri() if path is not None and path.exists() else None

    def _media_file(self, storage_id: str) -> Optional[Path]:
        """Path for a reference handed out by request_upload_slot, else None."""
        if not STORAGE_ID_PATTERN.match(storage_id):
            return None
        return self.media_dir / storage_id

    # --- File helpers ---

    def _contact_file(self, contact_id: str) -> Path:
        safe_id = contact_id.replace("/", "_").replace("\\", "_")
        return self.contacts_dir / f"{safe_id}.json"

    def _load(self, contact_id: str) -> Dict[str, Any]:
        filepath = self._contact_file(contact_id)
        if not filepath.exists():
            raise NotFoundError(contact_id)
        try:
            return self._read(filepath)
        except (json.JSONDecodeError, IOError) as exc:
            raise TransientStoreFailure(f"Could not read contact {contact_id}: {exc}") from exc

    @staticmethod
    def _read(filepath: Path) -> Dict[str, Any]:
        with open(filepath, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, contact_id: str, document: Dict[str, Any]) -> None:
        filepath = self._contact_file(contact_id)
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
        except OSError as exc:
            raise TransientStoreFailure(f"Could not write contact {contact_id}: {exc}") from exc

    def _to_contact(self, document: Dict[str, Any]) -> Contact:
        contact = Contact.from_dict(document)
        return contact.with_image(self._resolve_image(document.get("image")))
