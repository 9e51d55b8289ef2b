"""Media Router - direct image uploads.

Two-step flow for clients that push bytes themselves:
1. POST /media/upload-url returns a one-time destination and its storage id
2. the client uploads to that destination, then calls
   POST /contacts/{id}/photo with the storage id
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_store
from api.models import UploadUrlResponse
from contact_book.contacts import ContactStore, TransientStoreFailure

router = APIRouter()


@router.post("/upload-url", response_model=UploadUrlResponse)
def create_upload_url(store: ContactStore = Depends(get_store)) -> UploadUrlResponse:
    try:
        slot = store.request_upload_slot()
    except TransientStoreFailure as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return UploadUrlResponse(upload_url=slot.upload_url, storage_id=slot.storage_id)
