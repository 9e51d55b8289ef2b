"""Search filtering and last-contact ordering for the contact list."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from ..contacts.models import Contact, parse_contact_date


class SortDirection(str, Enum):
    """Ordering applied to the filtered list by last-contact date."""

    NONE = "none"
    ASC = "asc"  # oldest first
    DESC = "desc"  # newest first


@dataclass(slots=True, frozen=True)
class ViewQuery:
    search: str = ""
    sort: SortDirection = SortDirection.NONE


def _searchable_values(contact: Contact) -> Iterable[str]:
    yield contact.full_name
    for value in (contact.email, contact.company, contact.occupation):
        if value:
            yield value


def matches(contact: Contact, search: str) -> bool:
    """Return True when ``search`` appears in the contact's name, email, company or occupation."""
    if not search:
        return True
    needle = search.lower()
    return any(needle in value.lower() for value in _searchable_values(contact))


def derive(contacts: Sequence[Contact], query: Optional[ViewQuery] = None) -> List[Contact]:
    """Return the filtered and ordered view of ``contacts``.

    The input sequence is never modified. Sorting is stable, so contacts with
    equal last-contact dates keep their store order.
    """
    query = query or ViewQuery()
    filtered = [contact for contact in contacts if matches(contact, query.search)]

    direction = SortDirection(query.sort)
    if direction is SortDirection.NONE:
        return filtered

    return sorted(
        filtered,
        key=lambda contact: parse_contact_date(contact.last_contact),
        reverse=direction is SortDirection.DESC,
    )
