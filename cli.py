#!/usr/bin/env python3
"""Contact Book CLI."""
from __future__ import annotations

import argparse
import mimetypes
import sys
from pathlib import Path
from typing import Iterable, Optional

from dotenv import load_dotenv

from contact_book.config import ConfigError, load_settings
from contact_book.contacts import (
    Contact,
    ContactBookError,
    ContactStore,
    NotFoundError,
    PayloadTooLarge,
    get_contact_store,
)
from contact_book.forms import ContactFormSession
from contact_book.outcomes import Outcome
from contact_book.view import ContactsController, SortDirection

FIELD_OPTIONS = (
    ("first_name", "--first-name", "First name."),
    ("last_name", "--last-name", "Last name."),
    ("email", "--email", "Email address."),
    ("last_contact", "--last-contact", "Last contact date (YYYY-MM-DD, defaults to today)."),
    ("phone", "--phone", "Phone number."),
    ("company", "--company", "Company name."),
    ("occupation", "--occupation", "Occupation or role."),
    ("birthday", "--birthday", "Birthday (YYYY-MM-DD)."),
    ("notes", "--notes", "Free-text notes."),
)


def _add_field_arguments(parser: argparse.ArgumentParser) -> None:
    for dest, flag, help_text in FIELD_OPTIONS:
        parser.add_argument(flag, dest=dest, help=help_text)
    parser.add_argument(
        "--image",
        type=Path,
        help="Path to a profile photo (max 5MB).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contact-book",
        description="Manage personal contacts stored in Firestore or local files.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List contacts.")
    list_parser.add_argument(
        "--query",
        default="",
        help="Filter by name, email, company or occupation.",
    )
    list_parser.add_argument(
        "--sort",
        choices=[direction.value for direction in SortDirection],
        default=SortDirection.NONE.value,
        help="Order by last contact date: none, asc (oldest first), desc (newest first).",
    )

    show_parser = subparsers.add_parser("show", help="Show one contact.")
    show_parser.add_argument("contact_id")

    add_parser = subparsers.add_parser("add", help="Add a new contact.")
    _add_field_arguments(add_parser)

    edit_parser = subparsers.add_parser("edit", help="Edit an existing contact.")
    edit_parser.add_argument("contact_id")
    _add_field_arguments(edit_parser)

    delete_parser = subparsers.add_parser("delete", help="Delete a contact.")
    delete_parser.add_argument("contact_id")

    subparsers.add_parser(
        "check-config",
        help="Validate the store configuration in the environment.",
    )

    return parser


def format_contact_rows(contacts: Iterable[Contact]) -> str:
    rows = [f"{'ID':<34} {'Name':<28} {'Email':<32} {'Last contact':<12}"]
    for contact in contacts:
        rows.append(
            f"{contact.id:<34} {contact.full_name[:28]:<28} "
            f"{contact.email[:32]:<32} {contact.last_contact:<12}"
        )
    return "\n".join(rows)


def _print_contact(contact: Contact) -> None:
    print(f"{contact.full_name} <{contact.email}>")
    for label, value in (
        ("Phone", contact.phone),
        ("Company", contact.company),
        ("Occupation", contact.occupation),
        ("Birthday", contact.birthday),
        ("Last contact", contact.last_contact),
        ("Notes", contact.notes),
        ("Image", contact.image),
    ):
        if value:
            print(f"  {label}: {value}")


def _report(outcome: Outcome) -> int:
    stream = sys.stdout if outcome.ok else sys.stderr
    print(outcome.message, file=stream)
    if outcome.error and not outcome.ok:
        print(f"  ({outcome.error})", file=stream)
    if outcome.contact_id and outcome.ok:
        print(f"Contact ID: {outcome.contact_id}", file=stream)
    return 0 if outcome.ok else 1


def _cmd_list(store: ContactStore, query: str, sort: str) -> int:
    controller = ContactsController(store)
    try:
        controller.refresh()
    except ContactBookError as exc:
        print(f"List failed: {exc}", file=sys.stderr)
        return 1
    controller.update_search_query(query)
    contacts = controller.update_sort_direction(sort)
    if not contacts:
        print("No contacts found.")
        return 0
    print(format_contact_rows(contacts))
    return 0


def _cmd_show(store: ContactStore, contact_id: str) -> int:
    try:
        contact = store.get(contact_id)
    except ContactBookError as exc:
        print(exc, file=sys.stderr)
        return 1
    _print_contact(contact)
    return 0


def _apply_arguments(session: ContactFormSession, args: argparse.Namespace) -> Optional[int]:
    for dest, _flag, _help in FIELD_OPTIONS:
        value = getattr(args, dest, None)
        if value is None:
            continue
        if dest in ("birthday", "last_contact"):
            try:
                session.on_date_selected(dest, value)
            except ValueError as exc:
                print(exc, file=sys.stderr)
                return 1
        else:
            session.set_field(dest, value)

    image_path: Optional[Path] = getattr(args, "image", None)
    if image_path is not None:
        content_type = mimetypes.guess_type(image_path.name)[0] or "application/octet-stream"
        try:
            session.set_local_image(image_path.read_bytes(), content_type)
        except PayloadTooLarge:
            print("Image size exceeds 5MB", file=sys.stderr)
            return 1
        except OSError as exc:
            print(f"Could not read image: {exc}", file=sys.stderr)
            return 1
    return None


def _cmd_add(store: ContactStore, args: argparse.Namespace) -> int:
    session = ContactFormSession(store)
    session.reset()
    failed = _apply_arguments(session, args)
    if failed is not None:
        return failed
    return _report(session.submit())


def _cmd_edit(store: ContactStore, args: argparse.Namespace) -> int:
    try:
        contact = store.get(args.contact_id)
    except NotFoundError as exc:
        print(exc, file=sys.stderr)
        return 1
    except ContactBookError as exc:
        print(f"Edit failed: {exc}", file=sys.stderr)
        return 1
    session = ContactFormSession(store)
    session.initialize_from(contact)
    failed = _apply_arguments(session, args)
    if failed is not None:
        return failed
    if not session.draft.dirty:
        print("Nothing to update.")
        return 0
    return _report(session.submit())


def _cmd_delete(store: ContactStore, contact_id: str) -> int:
    return _report(ContactsController(store).delete_contact(contact_id))


def _cmd_check_config() -> int:
    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Config check failed: {exc}", file=sys.stderr)
        return 1

    location = settings.data_dir if settings.force_file else settings.storage_bucket
    print(
        "Store is configured",
        f"backend={settings.backend}",
        f"location={location}",
        f"environment={settings.environment}",
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "check-config":
        return _cmd_check_config()

    try:
        store = get_contact_store(load_settings())
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        return 1

    if args.command == "list":
        return _cmd_list(store, query=args.query, sort=args.sort)
    if args.command == "show":
        return _cmd_show(store, args.contact_id)
    if args.command == "add":
        return _cmd_add(store, args)
    if args.command == "edit":
        return _cmd_edit(store, args)
    if args.command == "delete":
        return _cmd_delete(store, args.contact_id)

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
