"""API Routers Package.

Routers:
- contacts.py: contact list/search/sort, CRUD and photo upload
- media.py: upload URLs for direct image uploads

Usage in main.py:
    from api.routers import contacts_router, media_router

    app.include_router(contacts_router, prefix="/contacts", tags=["contacts"])
    app.include_router(media_router, prefix="/media", tags=["media"])
"""

from .contacts import router as contacts_router
from .media import router as media_router

__all__ = [
    "contacts_router",
    "media_router",
]
