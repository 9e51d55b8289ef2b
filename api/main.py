"""FastAPI service for Contact Book."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import ALLOWED_ORIGINS, get_settings
from api.routers import contacts_router, media_router
from contact_book import __version__
from contact_book.config import Settings

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Contact Book API",
    version=__version__,
    description="REST interface for managing personal contacts and their photos.",
)

origins = [origin for origin in ALLOWED_ORIGINS if origin]

if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(contacts_router, prefix="/contacts", tags=["contacts"])
app.include_router(media_router, prefix="/media", tags=["media"])


@app.get("/health")
def health_check(settings: Settings = Depends(get_settings)) -> dict:
    """Health check endpoint with store configuration status."""
    return {
        "status": "ok",
        "time": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "backend": settings.backend,
    }
