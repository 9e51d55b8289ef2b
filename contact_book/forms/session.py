"""Add/edit session for a single contact draft.

A session owns one ``Draft`` exclusively. ``submit`` writes it through the
store in a fixed order: the record write (create or update) first, then, only
if that succeeded and an image is pending, upload slot -> bytes -> link.
Every path returns an ``Outcome``; the draft survives any failure so the user
can retry without re-entering data.
"""
from __future__ import annotations

import base64
import logging
import threading
from dataclasses import dataclass, field, fields as dataclass_fields
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from ..contacts.errors import (
    ContactBookError,
    NotFoundError,
    PayloadTooLarge,
    ValidationError,
)
from ..contacts.models import (
    ATTRIBUTE_NAMES,
    WIRE_NAMES,
    Contact,
    ContactFields,
    ContactPatch,
    is_iso_date,
    is_valid_email,
    today_iso,
)
from ..contacts.store import ContactStore
from ..outcomes import Outcome, OutcomeKind

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
DATE_FIELDS = ("birthday", "last_contact")
FIELD_LABELS = {
    "first_name": "First Name",
    "last_name": "Last Name",
    "email": "Email",
    "last_contact": "Last Contact",
}


class SessionState(str, Enum):
    EMPTY = "empty"
    EDITING = "editing"
    VALIDATING = "validating"
    INVALID = "invalid"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"


@dataclass(slots=True)
class LocalImage:
    """Image bytes chosen locally but not uploaded yet."""

    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    def preview_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"


@dataclass(slots=True)
class Draft:
    """Editable copy of a contact's fields."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    last_contact: str = field(default_factory=today_iso)
    phone: str = ""
    company: str = ""
    occupation: str = ""
    birthday: str = ""
    notes: str = ""
    contact_id: Optional[str] = None
    image_preview: Optional[str] = None
    pending_image: Optional[LocalImage] = None
    dirty: bool = False
    # attribute names changed through set_field since the draft was seeded
    edited: Set[str] = field(default_factory=set)

    @classmethod
    def from_contact(cls, contact: Contact) -> "Draft":
        return cls(
            first_name=contact.first_name or "",
            last_name=contact.last_name or "",
            email=contact.email or "",
            last_contact=contact.last_contact or today_iso(),
            phone=contact.phone or "",
            company=contact.company or "",
            occupation=contact.occupation or "",
            birthday=contact.birthday or "",
            notes=contact.notes or "",
            contact_id=contact.id,
            image_preview=contact.image,
        )

    def to_fields(self) -> ContactFields:
        """Fields for a create call; blank optional fields are left out."""
        return ContactFields(
            first_name=self.first_name.strip(),
            last_name=self.last_name.strip(),
            email=self.email.strip(),
            last_contact=self.last_contact.strip(),
            phone=self.phone or None,
            company=self.company or None,
            occupation=self.occupation or None,
            birthday=self.birthday or None,
            notes=self.notes or None,
        )

    def to_patch(self, only: Optional[Iterable[str]] = None) -> ContactPatch:
        """Editable fields as a patch; blanks clear previously stored values.

        With ``only``, fields outside that set are left out of the patch.
        """
        values = {
            "first_name": self.first_name.strip(),
            "last_name": self.last_name.strip(),
            "email": self.email.strip(),
            "last_contact": self.last_contact.strip(),
            "phone": self.phone,
            "company": self.company,
            "occupation": self.occupation,
            "birthday": self.birthday,
            "notes": self.notes,
        }
        if only is not None:
            keep = set(only)
            values = {name: value for name, value in values.items() if name in keep}
        return ContactPatch(**values)


@dataclass(slots=True)
class FieldErrors:
    """One flag per required field; True means the field failed validation."""

    first_name: bool = False
    last_name: bool = False
    email: bool = False
    last_contact: bool = False

    def any(self) -> bool:
        return any(getattr(self, f.name) for f in dataclass_fields(self))

    def failed(self) -> List[str]:
        return [f.name for f in dataclass_fields(self) if getattr(self, f.name)]

    def clear(self, name: str) -> None:
        if hasattr(self, name):
            setattr(self, name, False)

    def to_dict(self) -> Dict[str, bool]:
        return {WIRE_NAMES[f.name]: getattr(self, f.name) for f in dataclass_fields(self)}

    def missing_fields_message(self) -> str:
        labels = [FIELD_LABELS[name] for name in self.failed()]
        if not labels:
            return ""
        verb = "are" if len(labels) > 1 else "is"
        return f"{', '.join(labels)} {verb} required"


def validate_draft(draft: Draft) -> FieldErrors:
    return FieldErrors(
        first_name=not draft.first_name.strip(),
        last_name=not draft.last_name.strip(),
        email=not is_valid_email(draft.email.strip()),
        last_contact=not is_iso_date(draft.last_contact.strip()),
    )


def _attribute_name(name: str) -> str:
    attr = ATTRIBUTE_NAMES.get(name, name)
    if attr not in WIRE_NAMES:
        raise KeyError(f"Unknown contact field: {name}")
    return attr


class ContactFormSession:
    """Draft editing and the submit protocol for one add/edit dialog."""

    def __init__(self, store: ContactStore) -> None:
        self.store = store
        self.draft = Draft()
        self.errors = FieldErrors()
        self.state = SessionState.EMPTY
        self._submit_lock = threading.Lock()
        # id of a record this session already wrote, so a retry after a
        # failed image step updates it instead of creating a duplicate
        self._written_id: Optional[str] = None
        # states visited by the most recent submit, in order
        self.submit_path: List[SessionState] = []

    @property
    def is_edit_mode(self) -> bool:
        return self.draft.contact_id is not None

    @property
    def is_submitting(self) -> bool:
        return self.state is SessionState.SUBMITTING

    # --- Draft lifecycle ---

    def reset(self) -> None:
        """Start a blank add-mode draft with last contact set to today."""
        self.draft = Draft()
        self.errors = FieldErrors()
        self.state = SessionState.EMPTY
        self._written_id = None

    def initialize_from(self, contact: Contact) -> None:
        """Seed the draft from an existing contact for edit mode."""
        self.draft = Draft.from_contact(contact)
        self.errors = FieldErrors()
        self.state = SessionState.EDITING
        self._written_id = contact.id

    def set_field(self, name: str, value: str) -> None:
        """Update one field by attribute or stored name and mark the draft dirty."""
        attr = _attribute_name(name)
        setattr(self.draft, attr, value if value is not None else "")
        self.errors.clear(attr)
        self.draft.edited.add(attr)
        self.draft.dirty = True
        self.state = SessionState.EDITING

    def on_date_selected(self, field_name: str, iso_date: str) -> None:
        attr = _attribute_name(field_name)
        if attr not in DATE_FIELDS:
            raise KeyError(f"{field_name} is not a date field")
        if iso_date and not is_iso_date(iso_date):
            raise ValueError(f"Expected YYYY-MM-DD date, got {iso_date!r}")
        self.set_field(attr, iso_date)

    def set_local_image(self, data: bytes, content_type: str) -> None:
        """Hold an image for upload on submit.

        Raises:
            PayloadTooLarge: if ``data`` exceeds 5 MiB; the draft is untouched.
        """
        if len(data) > MAX_IMAGE_BYTES:
            raise PayloadTooLarge(len(data), MAX_IMAGE_BYTES)
        image = LocalImage(data=data, content_type=content_type)
        self.draft.pending_image = image
        self.draft.image_preview = image.preview_uri()
        self.draft.dirty = True
        self.state = SessionState.EDITING

    def validate(self) -> FieldErrors:
        self.errors = validate_draft(self.draft)
        return self.errors

    # --- Submit protocol ---

    def submit(self) -> Outcome:
        """Validate and persist the draft, then upload and link any pending image."""
        if not self._submit_lock.acquire(blocking=False):
            return Outcome(OutcomeKind.IGNORED, "A submission is already in progress")
        try:
            if self.state is SessionState.SUBMITTED:
                return Outcome(
                    OutcomeKind.IGNORED,
                    "This contact has already been submitted",
                    contact_id=self._written_id,
                )
            return self._submit()
        finally:
            self._submit_lock.release()

    def _submit(self) -> Outcome:
        self.submit_path = []
        self._enter(SessionState.VALIDATING)
        errors = self.validate()
        if errors.any():
            self._settle(SessionState.INVALID)
            return Outcome(
                OutcomeKind.INVALID,
                errors.missing_fields_message(),
                contact_id=self.draft.contact_id,
                errors=errors.to_dict(),
            )

        self._enter(SessionState.SUBMITTING)
        try:
            contact_id, kind = self._write_record()
        except ValidationError as exc:
            for name in exc.fields:
                if hasattr(self.errors, name):
                    setattr(self.errors, name, True)
            self._settle(SessionState.INVALID)
            return Outcome(
                OutcomeKind.INVALID,
                self.errors.missing_fields_message() or str(exc),
                contact_id=self._written_id,
                errors=self.errors.to_dict(),
                error=exc,
            )
        except NotFoundError as exc:
            self._settle(SessionState.FAILED)
            return Outcome(
                OutcomeKind.NOT_FOUND,
                "Contact no longer exists",
                contact_id=exc.contact_id,
                error=exc,
            )
        except ContactBookError as exc:
            logger.warning("Saving contact failed: %s", exc)
            self._settle(SessionState.FAILED)
            return Outcome(
                OutcomeKind.FAILED,
                "Contact could not be saved",
                contact_id=self._written_id,
                error=exc,
            )
        except Exception:
            self._settle(SessionState.FAILED)
            raise

        if self.draft.pending_image is not None:
            try:
                self._send_image(contact_id, self.draft.pending_image)
            except ContactBookError as exc:
                logger.warning("Image step failed for contact %s: %s", contact_id, exc)
                self._settle(SessionState.FAILED)
                return Outcome(
                    OutcomeKind.DEGRADED,
                    f"Contact has been {kind.value}, but the image could not be saved",
                    contact_id=contact_id,
                    error=exc,
                )
            except Exception:
                self._settle(SessionState.FAILED)
                raise

        self._enter(SessionState.SUBMITTED)
        self.draft = Draft()
        return Outcome(
            kind,
            f"Contact has been {kind.value} successfully",
            contact_id=contact_id,
        )

    def _enter(self, state: SessionState) -> None:
        self.state = state
        self.submit_path.append(state)
        logger.debug("Contact session -> %s", state.value)

    def _settle(self, state: SessionState) -> None:
        """Record a non-terminal result, then hand the draft back for editing."""
        self._enter(state)
        self._enter(SessionState.EDITING)

    def _write_record(self) -> tuple[str, OutcomeKind]:
        if self.is_edit_mode:
            # seeded values, including a defaulted lastContact, are not rewritten
            patch = self.draft.to_patch(only=self.draft.edited)
            self.store.update(self.draft.contact_id, patch)
            return self.draft.contact_id, OutcomeKind.UPDATED
        if self._written_id is not None:
            # an earlier attempt created the record but failed on the image
            self.store.update(self._written_id, self.draft.to_patch())
            return self._written_id, OutcomeKind.ADDED
        contact_id = self.store.create(self.draft.to_fields())
        self._written_id = contact_id
        logger.debug("Draft persisted as contact %s", contact_id)
        return contact_id, OutcomeKind.ADDED

    def _send_image(self, contact_id: str, image: LocalImage) -> None:
        slot = self.store.request_upload_slot()
        reference = self.store.send_bytes(slot, image.data, image.content_type)
        self.store.link_image(contact_id, reference)
        logger.info("Attached %d-byte image to contact %s", image.size, contact_id)
