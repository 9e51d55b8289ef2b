"""Derived contact list view and its state container."""

from .derive import SortDirection, ViewQuery, derive, matches
from .state import (
    ContactDeleted,
    ContactsController,
    ContactsState,
    ModalMode,
    SelectContact,
    SetContacts,
    SetModalMode,
    SetSearchQuery,
    SetSortDirection,
    contacts_reducer,
)

__all__ = [
    "SortDirection",
    "ViewQuery",
    "derive",
    "matches",
    "ContactDeleted",
    "ContactsController",
    "ContactsState",
    "ModalMode",
    "SelectContact",
    "SetContacts",
    "SetModalMode",
    "SetSearchQuery",
    "SetSortDirection",
    "contacts_reducer",
]
