"""List state container: contacts, search, sort, selection and modal mode.

State transitions go through ``contacts_reducer``, a pure function of the
current state and an action. ``ContactsController`` pairs that state with a
store so a presentation layer can refresh, query and delete without holding
any globals.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple, Union

from ..contacts.errors import ContactBookError, NotFoundError
from ..contacts.models import Contact
from ..contacts.store import ContactStore
from ..outcomes import Outcome, OutcomeKind
from .derive import SortDirection, ViewQuery, derive

logger = logging.getLogger(__name__)


class ModalMode(str, Enum):
    ADD = "add"
    EDIT = "edit"


@dataclass(slots=True, frozen=True)
class ContactsState:
    contacts: Tuple[Contact, ...] = ()
    search_query: str = ""
    sort_direction: SortDirection = SortDirection.NONE
    selected_contact: Optional[Contact] = None
    modal_mode: ModalMode = ModalMode.ADD

    @property
    def query(self) -> ViewQuery:
        return ViewQuery(search=self.search_query, sort=self.sort_direction)


@dataclass(slots=True, frozen=True)
class SetContacts:
    contacts: Tuple[Contact, ...]


@dataclass(slots=True, frozen=True)
class SetSearchQuery:
    query: str


@dataclass(slots=True, frozen=True)
class SetSortDirection:
    direction: SortDirection


@dataclass(slots=True, frozen=True)
class SelectContact:
    contact: Optional[Contact]


@dataclass(slots=True, frozen=True)
class SetModalMode:
    mode: ModalMode


@dataclass(slots=True, frozen=True)
class ContactDeleted:
    contact_id: str


Action = Union[
    SetContacts, SetSearchQuery, SetSortDirection, SelectContact, SetModalMode, ContactDeleted
]


def contacts_reducer(state: ContactsState, action: Action) -> ContactsState:
    """Return the state that results from applying ``action`` to ``state``."""
    if isinstance(action, SetContacts):
        return replace(state, contacts=tuple(action.contacts))
    if isinstance(action, SetSearchQuery):
        return replace(state, search_query=action.query)
    if isinstance(action, SetSortDirection):
        return replace(state, sort_direction=SortDirection(action.direction))
    if isinstance(action, SelectContact):
        return replace(state, selected_contact=action.contact)
    if isinstance(action, SetModalMode):
        return replace(state, modal_mode=ModalMode(action.mode))
    if isinstance(action, ContactDeleted):
        selected = state.selected_contact
        if selected is not None and selected.id == action.contact_id:
            selected = None
        return replace(
            state,
            contacts=tuple(c for c in state.contacts if c.id != action.contact_id),
            selected_contact=selected,
        )
    return state


class ContactsController:
    """Holds list state for one presentation context and talks to the store."""

    def __init__(self, store: ContactStore, state: Optional[ContactsState] = None) -> None:
        self.store = store
        self.state = state or ContactsState()

    def dispatch(self, action: Action) -> ContactsState:
        self.state = contacts_reducer(self.state, action)
        return self.state

    @property
    def enriched_list(self) -> List[Contact]:
        return derive(self.state.contacts, self.state.query)

    def refresh(self) -> List[Contact]:
        """Reload contacts from the store and return the derived view."""
        self.dispatch(SetContacts(tuple(self.store.list())))
        return self.enriched_list

    def update_search_query(self, query: str) -> List[Contact]:
        self.dispatch(SetSearchQuery(query))
        return self.enriched_list

    def update_sort_direction(self, direction: Union[SortDirection, str]) -> List[Contact]:
        self.dispatch(SetSortDirection(SortDirection(direction)))
        return self.enriched_list

    def select_contact(self, contact: Optional[Contact]) -> None:
        self.dispatch(SelectContact(contact))

    def set_modal_mode(self, mode: Union[ModalMode, str]) -> None:
        self.dispatch(SetModalMode(ModalMode(mode)))

    def delete_contact(self, contact_id: str) -> Outcome:
        try:
            self.store.delete(contact_id)
        except NotFoundError as exc:
            self.dispatch(ContactDeleted(contact_id))
            return Outcome(
                OutcomeKind.NOT_FOUND,
                "Contact no longer exists",
                contact_id=contact_id,
                error=exc,
            )
        except ContactBookError as exc:
            logger.warning("Deleting contact %s failed: %s", contact_id, exc)
            return Outcome(
                OutcomeKind.FAILED,
                "Contact deletion failed",
                contact_id=contact_id,
                error=exc,
            )
        self.dispatch(ContactDeleted(contact_id))
        return Outcome(
            OutcomeKind.DELETED,
            "Contact has been deleted successfully",
            contact_id=contact_id,
        )
