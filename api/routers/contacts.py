"""Contacts Router - list, search, add, edit, delete and photo upload.

Writes go through ``ContactFormSession`` so the API applies the same
validation and submit ordering as any other client of the core.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_store, outcome_response, serialize_contact
from api.models import ContactWriteRequest, LinkImageRequest
from contact_book.contacts import (
    ContactBookError,
    ContactStore,
    LinkFailure,
    NotFoundError,
    PayloadTooLarge,
    TransientStoreFailure,
)
from contact_book.contacts.models import WIRE_NAMES
from contact_book.forms import DATE_FIELDS, ContactFormSession
from contact_book.outcomes import Outcome, OutcomeKind
from contact_book.view import ContactsController, SortDirection, ViewQuery, derive

logger = logging.getLogger(__name__)

router = APIRouter()


def _load_contact(store: ContactStore, contact_id: str):
    try:
        return store.get(contact_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except TransientStoreFailure as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def _apply_field(session: ContactFormSession, name: str, value: str) -> None:
    if name in DATE_FIELDS:
        try:
            session.on_date_selected(name, value)
        except ValueError as exc:
            outcome = Outcome(OutcomeKind.INVALID, str(exc), errors={WIRE_NAMES[name]: True})
            raise HTTPException(status_code=422, detail=outcome.to_dict()) from exc
    else:
        session.set_field(name, value)


def _submit(session: ContactFormSession, store: ContactStore):
    outcome = session.submit()
    contact = None
    if outcome.contact_id and outcome.kind in (
        OutcomeKind.ADDED, OutcomeKind.UPDATED, OutcomeKind.DEGRADED
    ):
        try:
            contact = store.get(outcome.contact_id)
        except ContactBookError as exc:
            logger.warning("Could not reload contact %s: %s", outcome.contact_id, exc)
    return outcome_response(outcome, contact)


# =============================================================================
# Query Endpoints
# =============================================================================

@router.get("")
def list_contacts(
    q: str = Query("", description="Case-insensitive search over name, email, company, occupation."),
    sort: SortDirection = Query(SortDirection.NONE),
    store: ContactStore = Depends(get_store),
) -> dict:
    """List contacts filtered by ``q`` and ordered by last contact date."""
    try:
        contacts = store.list()
    except TransientStoreFailure as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    view = derive(contacts, ViewQuery(search=q, sort=sort))
    return {
        "contacts": [serialize_contact(contact) for contact in view],
        "count": len(view),
        "total": len(contacts),
    }


@router.get("/{contact_id}")
def get_contact(contact_id: str, store: ContactStore = Depends(get_store)) -> dict:
    return serialize_contact(_load_contact(store, contact_id))


# =============================================================================
# Mutation Endpoints
# =============================================================================

@router.post("")
def create_contact(request: ContactWriteRequest, store: ContactStore = Depends(get_store)):
    """Create a contact. Missing ``lastContact`` defaults to today."""
    session = ContactFormSession(store)
    session.reset()
    for name, value in request.provided_fields().items():
        if value is not None:
            _apply_field(session, name, value)
    return _submit(session, store)


@router.patch("/{contact_id}")
def update_contact(
    contact_id: str,
    request: ContactWriteRequest,
    store: ContactStore = Depends(get_store),
):
    """Apply the supplied fields to an existing contact."""
    session = ContactFormSession(store)
    session.initialize_from(_load_contact(store, contact_id))
    for name, value in request.provided_fields().items():
        _apply_field(session, name, value if value is not None else "")
    return _submit(session, store)


@router.delete("/{contact_id}")
def delete_contact(contact_id: str, store: ContactStore = Depends(get_store)):
    controller = ContactsController(store)
    return outcome_response(controller.delete_contact(contact_id))


@router.post("/{contact_id}/image")
async def upload_contact_image(
    contact_id: str,
    request: Request,
    store: ContactStore = Depends(get_store),
):
    """Replace a contact's photo with the raw request body."""
    content_type = request.headers.get("content-type") or "application/octet-stream"
    data = await request.body()
    return await run_in_threadpool(_attach_image, store, contact_id, data, content_type)


def _attach_image(store: ContactStore, contact_id: str, data: bytes, content_type: str):
    session = ContactFormSession(store)
    session.initialize_from(_load_contact(store, contact_id))
    try:
        session.set_local_image(data, content_type)
    except PayloadTooLarge as exc:
        raise HTTPException(status_code=413, detail=str(exc)) from exc
    return _submit(session, store)


@router.post("/{contact_id}/photo")
def link_photo(
    contact_id: str,
    request: LinkImageRequest,
    store: ContactStore = Depends(get_store),
) -> dict:
    """Attach an image already uploaded through ``/media/upload-url``."""
    try:
        store.link_image(contact_id, request.storage_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (LinkFailure, TransientStoreFailure) as exc:
        return {"success": False, "message": str(exc)}
    return {"success": True}
