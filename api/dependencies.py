"""Shared dependencies and helper functions for API routers.

Usage in routers:
    from api.dependencies import get_store, serialize_contact, outcome_response
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import HTTPException
from fastapi.responses import JSONResponse

from contact_book.config import ConfigError, Settings, load_settings
from contact_book.contacts import Contact, ContactStore, get_contact_store
from contact_book.outcomes import Outcome, OutcomeKind

load_dotenv()


# =============================================================================
# Configuration Constants
# =============================================================================

ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    os.getenv("CONTACTS_ALLOWED_FRONTEND", "").strip(),
]

# Outcome kind -> HTTP status for session and delete results
OUTCOME_STATUS = {
    OutcomeKind.ADDED: 201,
    OutcomeKind.UPDATED: 200,
    OutcomeKind.DELETED: 200,
    OutcomeKind.DEGRADED: 207,
    OutcomeKind.INVALID: 422,
    OutcomeKind.NOT_FOUND: 404,
    OutcomeKind.IGNORED: 409,
    OutcomeKind.FAILED: 503,
}


# =============================================================================
# Cached Functions
# =============================================================================

@lru_cache
def get_settings() -> Settings:
    """Get application settings (cached)."""
    try:
        return load_settings()
    except ConfigError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@lru_cache
def _build_store() -> ContactStore:
    return get_contact_store(get_settings())


def get_store() -> ContactStore:
    """FastAPI dependency returning the configured contact store."""
    return _build_store()


# =============================================================================
# Serialization Helpers
# =============================================================================

def serialize_contact(contact: Contact) -> Dict[str, Any]:
    """Serialize a Contact to the API response format."""
    return contact.to_dict()


def outcome_response(outcome: Outcome, contact: Optional[Contact] = None) -> JSONResponse:
    """Render a session/delete outcome, raising for the non-success kinds."""
    status_code = OUTCOME_STATUS[outcome.kind]
    if status_code >= 400:
        raise HTTPException(status_code=status_code, detail=outcome.to_dict())
    return JSONResponse(
        status_code=status_code,
        content={
            "outcome": outcome.to_dict(),
            "contact": serialize_contact(contact) if contact else None,
        },
    )
