"""Shared Firebase client helpers."""
from __future__ import annotations

from typing import Optional

_firestore_client = None
_bucket_cache: dict = {}


def _ensure_app(storage_bucket: Optional[str] = None) -> None:
    try:
        import firebase_admin
    except ModuleNotFoundError as exc:  # pragma: no cover
        raise RuntimeError(
            "firebase-admin is required for the Firestore contact store. "
            "Install dependencies or set CONTACTS_FORCE_FILE=1."
        ) from exc

    if not firebase_admin._apps:
        options = {"storageBucket": storage_bucket} if storage_bucket else None
        firebase_admin.initialize_app(options=options)


def get_firestore_client():
    """Return a cached Firestore client instance."""

    global _firestore_client
    if _firestore_client is not None:
        return _firestore_client

    _ensure_app()
    from firebase_admin import firestore

    _firestore_client = firestore.client()
    return _firestore_client


def get_storage_bucket(name: str):
    """Return a cached Cloud Storage bucket handle for ``name``."""

    if name in _bucket_cache:
        return _bucket_cache[name]

    _ensure_app(name)
    from firebase_admin import storage

    bucket = storage.bucket(name)
    _bucket_cache[name] = bucket
    return bucket
