"""Contact record types and field validation."""
from __future__ import annotations

import re
from dataclasses import dataclass, fields as dataclass_fields, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional


# Same loose shape check as the web form: something@something.tld
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# python attribute -> stored document key
WIRE_NAMES: Dict[str, str] = {
    "first_name": "firstName",
    "last_name": "lastName",
    "email": "email",
    "last_contact": "lastContact",
    "phone": "phone",
    "company": "company",
    "occupation": "occupation",
    "birthday": "birthday",
    "notes": "notes",
}
ATTRIBUTE_NAMES: Dict[str, str] = {wire: attr for attr, wire in WIRE_NAMES.items()}

REQUIRED_FIELDS = ("first_name", "last_name", "email", "last_contact")
OPTIONAL_FIELDS = ("phone", "company", "occupation", "birthday", "notes")

_EPOCH_FLOOR = datetime.min.replace(tzinfo=timezone.utc)


def today_iso() -> str:
    """Return today's local calendar date as ``YYYY-MM-DD``."""
    return date.today().isoformat()


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and EMAIL_PATTERN.match(value) is not None


def is_iso_date(value: Optional[str]) -> bool:
    """Return True for a real calendar date written as ``YYYY-MM-DD``."""
    if not value or not ISO_DATE_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_contact_date(value: Optional[str]) -> datetime:
    """Parse a stored date string into a comparable UTC instant.

    Plain dates are read as UTC midnight. Missing or unparseable values map
    to the earliest representable instant so sorting never raises.
    """
    if not value:
        return _EPOCH_FLOOR
    try:
        parsed_date = date.fromisoformat(value)
    except ValueError:
        pass
    else:
        return datetime(parsed_date.year, parsed_date.month, parsed_date.day, tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH_FLOOR
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _field_errors(values: Dict[str, Any], *, partial: bool) -> List[str]:
    """Return attribute names whose values fail the required-field checks.

    With ``partial`` set, only fields present (not None) in ``values`` are
    checked. A birthday is optional but must be an ISO date when given.
    """
    failed: List[str] = []
    for name in REQUIRED_FIELDS:
        value = values.get(name)
        if partial and value is None:
            continue
        if name == "email":
            ok = is_valid_email(value)
        elif name == "last_contact":
            ok = is_iso_date(value)
        else:
            ok = bool(value and value.strip())
        if not ok:
            failed.append(name)
    birthday = values.get("birthday")
    if birthday and not is_iso_date(birthday):
        failed.append("birthday")
    return failed


@dataclass(slots=True)
class ContactFields:
    """Writable fields of a contact, as accepted by ``ContactStore.create``."""

    first_name: str
    last_name: str
    email: str
    last_contact: str = ""
    phone: Optional[str] = None
    company: Optional[str] = None
    occupation: Optional[str] = None
    birthday: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.last_contact:
            self.last_contact = today_iso()

    def errors(self) -> List[str]:
        return _field_errors(_attr_dict(self), partial=False)

    def to_dict(self) -> Dict[str, Any]:
        """Return stored document keys, omitting unset optional fields."""
        data: Dict[str, Any] = {}
        for attr, wire in WIRE_NAMES.items():
            value = getattr(self, attr)
            if value is None and attr in OPTIONAL_FIELDS:
                continue
            data[wire] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContactFields":
        values = _attrs_from_wire(data)
        return cls(
            first_name=values.get("first_name") or "",
            last_name=values.get("last_name") or "",
            email=values.get("email") or "",
            last_contact=values.get("last_contact") or "",
            phone=values.get("phone"),
            company=values.get("company"),
            occupation=values.get("occupation"),
            birthday=values.get("birthday"),
            notes=values.get("notes"),
        )


@dataclass(slots=True)
class ContactPatch:
    """A partial update. Every field is optional; None means "leave as is".

    The identifier and image reference are not part of this type, so a patch
    can never carry them to the store.
    """

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    last_contact: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    occupation: Optional[str] = None
    birthday: Optional[str] = None
    notes: Optional[str] = None

    def errors(self) -> List[str]:
        return _field_errors(_attr_dict(self), partial=True)

    def is_empty(self) -> bool:
        return not self.to_updates()

    def to_updates(self) -> Dict[str, Any]:
        """Return stored document keys for the fields that were set."""
        return {
            wire: getattr(self, attr)
            for attr, wire in WIRE_NAMES.items()
            if getattr(self, attr) is not None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContactPatch":
        """Build a patch from stored keys or attribute names; others are dropped."""
        return cls(**_attrs_from_wire(data))


@dataclass(slots=True)
class Contact:
    """A persisted contact as returned by the store."""

    id: str
    first_name: str
    last_name: str
    email: str
    last_contact: str
    phone: Optional[str] = None
    company: Optional[str] = None
    occupation: Optional[str] = None
    birthday: Optional[str] = None
    notes: Optional[str] = None
    image: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def fields(self) -> ContactFields:
        return ContactFields(**{name: getattr(self, name) for name in WIRE_NAMES})

    def with_image(self, image: Optional[str]) -> "Contact":
        return replace(self, image=image)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id}
        for attr, wire in WIRE_NAMES.items():
            data[wire] = getattr(self, attr)
        data["image"] = self.image
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, contact_id: Optional[str] = None) -> "Contact":
        values = _attrs_from_wire(data)
        return cls(
            id=contact_id or data.get("id", ""),
            first_name=values.get("first_name") or "",
            last_name=values.get("last_name") or "",
            email=values.get("email") or "",
            last_contact=values.get("last_contact") or "",
            phone=values.get("phone"),
            company=values.get("company"),
            occupation=values.get("occupation"),
            birthday=values.get("birthday"),
            notes=values.get("notes"),
            image=data.get("image"),
        )


def _attr_dict(obj: Any) -> Dict[str, Any]:
    return {f.name: getattr(obj, f.name) for f in dataclass_fields(obj)}


def _attrs_from_wire(data: Dict[str, Any]) -> Dict[str, Any]:
    """Map stored keys (or attribute names) onto writable attribute names."""
    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key in ATTRIBUTE_NAMES:
            values[ATTRIBUTE_NAMES[key]] = value
        elif key in WIRE_NAMES:
            values[key] = value
    return values
