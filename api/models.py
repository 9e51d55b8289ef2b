"""Shared Pydantic models for API routers.

Usage in routers:
    from api.models import ContactWriteRequest, LinkImageRequest
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Contact Models
# =============================================================================

class ContactWriteRequest(BaseModel):
    """Request body for creating or patching a contact.

    Fields left out of a PATCH body keep their stored values. ``id`` and
    ``image`` are not accepted here; images go through the image endpoints.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: Optional[str] = None
    last_contact: Optional[str] = Field(
        None, alias="lastContact", description="Last contact date in YYYY-MM-DD format."
    )
    phone: Optional[str] = None
    company: Optional[str] = None
    occupation: Optional[str] = None
    birthday: Optional[str] = Field(None, description="Birthday in YYYY-MM-DD format.")
    notes: Optional[str] = None

    def provided_fields(self) -> Dict[str, Any]:
        """Attribute names and values that were present in the request."""
        return self.model_dump(exclude_unset=True, by_alias=False)


# =============================================================================
# Media Models
# =============================================================================

class UploadUrlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    upload_url: str = Field(..., alias="uploadUrl")
    storage_id: str = Field(..., alias="storageId")


class LinkImageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    storage_id: str = Field(..., alias="storageId")
