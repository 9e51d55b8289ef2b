"""Firestore + Cloud Storage contact store.

Architecture:
- Firestore path: {collection}/{contact_id}
- Images: Cloud Storage blobs under ``contact-images/``; the contact document
  keeps the blob name and reads resolve it to a short-lived signed URL.
"""
from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional

import requests

from .errors import LinkFailure, NotFoundError, TransientStoreFailure, UploadFailure
from .models import Contact
from .store import ContactStore, UploadSlot

logger = logging.getLogger(__name__)

IMAGE_PREFIX = "contact-images/"
UPLOAD_TIMEOUT_SECONDS = 30


class FirestoreContactStore(ContactStore):
    """Contact store backed by a Firestore collection and a storage bucket."""

    def __init__(
        self,
        db: Any,
        bucket: Any,
        *,
        collection: str = "contacts",
        signed_url_minutes: int = 15,
        http: Optional[requests.Session] = None,
    ) -> None:
        self._db = db
        self._bucket = bucket
        self._collection_name = collection
        self._expiration = timedelta(minutes=signed_url_minutes)
        self._http = http or requests.Session()

    def _collection(self) -> Any:
        return self._db.collection(self._collection_name)

    def _existing_ref(self, contact_id: str) -> Any:
        doc_ref = self._collection().document(contact_id)
        try:
            doc = doc_ref.get()
        except Exception as exc:
            logger.warning("Firestore read of contact %s failed: %s", contact_id, exc)
            raise TransientStoreFailure(str(exc)) from exc
        if not doc.exists:
            raise NotFoundError(contact_id)
        return doc_ref

    # --- Contact documents ---

    def list(self) -> List[Contact]:
        try:
            docs = list(self._collection().order_by("createdAt").stream())
        except Exception as exc:
            logger.warning("Firestore list failed: %s", exc)
            raise TransientStoreFailure(str(exc)) from exc
        return [self._to_contact(doc.id, doc.to_dict()) for doc in docs]

    def get(self, contact_id: str) -> Contact:
        try:
            doc = self._collection().document(contact_id).get()
        except Exception as exc:
            logger.warning("Firestore read of contact %s failed: %s", contact_id, exc)
            raise TransientStoreFailure(str(exc)) from exc
        if not doc.exists:
            raise NotFoundError(contact_id)
        return self._to_contact(doc.id, doc.to_dict())

    def delete(self, contact_id: str) -> bool:
        doc_ref = self._existing_ref(contact_id)
        try:
            doc_ref.delete()
        except Exception as exc:
            logger.warning("Firestore delete of contact %s failed: %s", contact_id, exc)
            raise TransientStoreFailure(str(exc)) from exc
        logger.info("Deleted contact %s", contact_id)
        return True

    def _insert(self, document: Dict[str, Any]) -> str:
        doc_ref = self._collection().document()
        try:
            doc_ref.set(document)
        except Exception as exc:
            logger.warning("Firestore write failed: %s", exc)
            raise TransientStoreFailure(str(exc)) from exc
        return doc_ref.id

    def _patch(self, contact_id: str, updates: Dict[str, Any]) -> None:
        doc_ref = self._existing_ref(contact_id)
        if not updates:
            return
        try:
            doc_ref.update(updates)
        except Exception as exc:
            logger.warning("Firestore update of contact %s failed: %s", contact_id, exc)
            raise TransientStoreFailure(str(exc)) from exc

    # --- Images ---

    def request_upload_slot(self) -> UploadSlot:
        blob = self._bucket.blob(f"{IMAGE_PREFIX}{uuid.uuid4().hex}")
        try:
            url = blob.generate_signed_url(
                version="v4",
                expiration=self._expiration,
                method="PUT",
            )
        except Exception as exc:
            logger.warning("Could not sign upload URL: %s", exc)
            raise TransientStoreFailure(str(exc)) from exc
        return UploadSlot(upload_url=url, storage_id=blob.name)

    def send_bytes(self, slot: UploadSlot, data: bytes, content_type: str) -> str:
        try:
            response = self._http.put(
                slot.upload_url,
                data=data,
                headers={"Content-Type": content_type},
                timeout=UPLOAD_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning("Image upload for %s failed: %s", slot.storage_id, exc)
            raise UploadFailure(str(exc)) from exc
        return slot.storage_id

    def link_image(self, contact_id: str, storage_id: str) -> bool:
        doc_ref = self._existing_ref(contact_id)
        try:
            doc_ref.update({"image": storage_id})
        except Exception as exc:
            logger.warning("Linking image to contact %s failed: %s", contact_id, exc)
            raise LinkFailure(str(exc)) from exc
        logger.info("Linked image %s to contact %s", storage_id, contact_id)
        return True

    def _resolve_image(self, storage_id: Optional[str]) -> Optional[str]:
        if not storage_id:
            return None
        try:
            return self._bucket.blob(storage_id).generate_signed_url(
                version="v4",
                expiration=self._expiration,
                method="GET",
            )
        except Exception as exc:
            logger.warning("Could not resolve image %s: %s", storage_id, exc)
            return None

    def _to_contact(self, contact_id: str, document: Dict[str, Any]) -> Contact:
        contact = Contact.from_dict(document, contact_id=contact_id)
        return contact.with_image(self._resolve_image(document.get("image")))
