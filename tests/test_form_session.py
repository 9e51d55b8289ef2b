"""Tests for the add/edit contact session and its submit protocol."""
from __future__ import annotations

import threading
from datetime import date
from unittest.mock import MagicMock

import pytest

from contact_book.contacts import (
    Contact,
    ContactFields,
    ContactStore,
    FileContactStore,
    LinkFailure,
    NotFoundError,
    PayloadTooLarge,
    TransientStoreFailure,
    UploadFailure,
    UploadSlot,
    ValidationError,
)
from contact_book.forms import MAX_IMAGE_BYTES, ContactFormSession, SessionState
from contact_book.outcomes import OutcomeKind


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def mock_store():
    store = MagicMock(spec=ContactStore)
    store.create.return_value = "new-id"
    store.update.return_value = True
    store.request_upload_slot.return_value = UploadSlot(
        upload_url="https://upload.example.com/slot", storage_id="blob-1"
    )
    store.send_bytes.return_value = "blob-1"
    store.link_image.return_value = True
    return store


@pytest.fixture
def existing_contact():
    return Contact(
        id="c-1",
        first_name="Jane",
        last_name="Smith",
        email="jane@example.com",
        last_contact="2023-10-15",
        company="Acme",
        image="https://cdn.example.com/jane.png",
    )


def _fill_valid(session: ContactFormSession) -> None:
    session.set_field("firstName", "Lee")
    session.set_field("lastName", "Park")
    session.set_field("email", "lee@x.com")


def _call_names(store) -> list:
    return [call[0] for call in store.mock_calls]


# =============================================================================
# Draft lifecycle
# =============================================================================

class TestDraftLifecycle:
    def test_reset_prefills_today_and_is_clean(self, mock_store):
        session = ContactFormSession(mock_store)
        session.reset()
        assert session.state is SessionState.EMPTY
        assert session.draft.last_contact == date.today().isoformat()
        assert session.draft.dirty is False
        assert not session.is_edit_mode

    def test_initialize_from_seeds_fields_clean(self, mock_store, existing_contact):
        session = ContactFormSession(mock_store)
        session.initialize_from(existing_contact)
        assert session.is_edit_mode
        assert session.draft.first_name == "Jane"
        assert session.draft.company == "Acme"
        assert session.draft.phone == ""
        assert session.draft.image_preview == existing_contact.image
        assert session.draft.dirty is False

    def test_set_field_marks_dirty_and_clears_error(self, mock_store):
        session = ContactFormSession(mock_store)
        session.reset()
        session.validate()
        assert session.errors.first_name is True
        session.set_field("first_name", "Ann")
        assert session.errors.first_name is False
        assert session.errors.last_name is True
        assert session.draft.dirty is True
        assert session.state is SessionState.EDITING

    def test_set_unknown_field_raises(self, mock_store):
        session = ContactFormSession(mock_store)
        with pytest.raises(KeyError):
            session.set_field("image", "x")
        with pytest.raises(KeyError):
            session.set_field("id", "x")

    def test_on_date_selected(self, mock_store):
        session = ContactFormSession(mock_store)
        session.on_date_selected("birthday", "1990-02-14")
        assert session.draft.birthday == "1990-02-14"
        with pytest.raises(ValueError):
            session.on_date_selected("lastContact", "02/14/1990")
        with pytest.raises(KeyError):
            session.on_date_selected("email", "1990-02-14")


# =============================================================================
# Image selection
# =============================================================================

class TestLocalImage:
    def test_accepts_image_without_touching_store(self, mock_store):
        session = ContactFormSession(mock_store)
        session.set_local_image(b"abc", "image/png")
        assert session.draft.pending_image.data == b"abc"
        assert session.draft.image_preview == "data:image/png;base64,YWJj"
        assert mock_store.mock_calls == []

    def test_exactly_five_mib_is_allowed(self, mock_store):
        session = ContactFormSession(mock_store)
        session.set_local_image(b"\0" * MAX_IMAGE_BYTES, "image/jpeg")
        assert session.draft.pending_image.size == MAX_IMAGE_BYTES

    def test_rejects_oversized_and_keeps_draft(self, mock_store):
        session = ContactFormSession(mock_store)
        session.set_field("firstName", "Lee")
        with pytest.raises(PayloadTooLarge):
            session.set_local_image(b"\0" * (MAX_IMAGE_BYTES + 1), "image/jpeg")
        assert session.draft.pending_image is None
        assert session.draft.first_name == "Lee"


# =============================================================================
# Validation
# =============================================================================

class TestValidation:
    def test_error_set_is_complete(self, mock_store):
        session = ContactFormSession(mock_store)
        session.reset()
        errors = session.validate()
        assert errors.to_dict() == {
            "firstName": True,
            "lastName": True,
            "email": True,
            "lastContact": False,
        }

    def test_empty_first_name_always_flagged(self, mock_store):
        session = ContactFormSession(mock_store)
        _fill_valid(session)
        session.set_field("firstName", "   ")
        assert session.validate().first_name is True
        assert session.validate().failed() == ["first_name"]

    def test_missing_fields_message(self, mock_store):
        session = ContactFormSession(mock_store)
        session.set_field("email", "lee@x.com")
        session.set_field("lastContact", "")
        assert session.validate().missing_fields_message() == (
            "First Name, Last Name, Last Contact are required"
        )
        session.set_field("firstName", "Lee")
        session.set_field("lastName", "Park")
        assert session.validate().missing_fields_message() == "Last Contact is required"

    def test_invalid_submit_never_reaches_store(self, mock_store):
        session = ContactFormSession(mock_store)
        session.reset()
        session.set_field("firstName", "")
        session.set_field("lastName", "Lee")
        session.set_field("email", "lee@x.com")

        outcome = session.submit()

        assert outcome.kind is OutcomeKind.INVALID
        assert outcome.errors["firstName"] is True
        assert session.errors.first_name is True
        assert session.submit_path == [
            SessionState.VALIDATING,
            SessionState.INVALID,
            SessionState.EDITING,
        ]
        assert session.state is SessionState.EDITING
        mock_store.create.assert_not_called()
        assert mock_store.mock_calls == []

    def test_malformed_last_contact_is_flagged(self, mock_store):
        session = ContactFormSession(mock_store)
        _fill_valid(session)
        session.set_field("lastContact", "yesterday")

        outcome = session.submit()

        assert outcome.kind is OutcomeKind.INVALID
        assert outcome.errors["lastContact"] is True
        assert mock_store.mock_calls == []

    def test_malformed_birthday_rejected_by_store(self, tmp_path):
        store = FileContactStore(tmp_path)
        session = ContactFormSession(store)
        _fill_valid(session)
        session.set_field("birthday", "31/12/1990")

        outcome = session.submit()

        assert outcome.kind is OutcomeKind.INVALID
        assert "birthday" in outcome.message
        assert session.state is SessionState.EDITING
        assert store.list() == []


# =============================================================================
# Submit protocol
# =============================================================================

class TestSubmit:
    def test_add_without_image(self, mock_store):
        session = ContactFormSession(mock_store)
        session.reset()
        _fill_valid(session)

        outcome = session.submit()

        assert outcome.kind is OutcomeKind.ADDED
        assert outcome.message == "Contact has been added successfully"
        assert outcome.contact_id == "new-id"
        assert session.state is SessionState.SUBMITTED
        fields = mock_store.create.call_args[0][0]
        assert isinstance(fields, ContactFields)
        assert fields.first_name == "Lee"
        assert fields.phone is None
        assert _call_names(mock_store) == ["create"]

    def test_add_with_image_links_after_create(self, mock_store):
        session = ContactFormSession(mock_store)
        session.reset()
        _fill_valid(session)
        session.set_local_image(b"png-bytes", "image/png")

        outcome = session.submit()

        assert outcome.kind is OutcomeKind.ADDED
        assert _call_names(mock_store) == [
            "create",
            "request_upload_slot",
            "send_bytes",
            "link_image",
        ]
        slot = mock_store.request_upload_slot.return_value
        mock_store.send_bytes.assert_called_once_with(slot, b"png-bytes", "image/png")
        mock_store.link_image.assert_called_once_with("new-id", "blob-1")

    def test_edit_updates_without_id_or_image(self, mock_store, existing_contact):
        session = ContactFormSession(mock_store)
        session.initialize_from(existing_contact)
        session.set_field("occupation", "Designer")

        outcome = session.submit()

        assert outcome.kind is OutcomeKind.UPDATED
        assert outcome.message == "Contact has been updated successfully"
        contact_id, patch = mock_store.update.call_args[0]
        assert contact_id == "c-1"
        updates = patch.to_updates()
        assert updates["occupation"] == "Designer"
        assert "image" not in updates
        assert "id" not in updates
        mock_store.create.assert_not_called()

    def test_edit_with_image_links_after_update(self, mock_store, existing_contact):
        session = ContactFormSession(mock_store)
        session.initialize_from(existing_contact)
        session.set_local_image(b"jpg", "image/jpeg")

        session.submit()

        assert _call_names(mock_store) == [
            "update",
            "request_upload_slot",
            "send_bytes",
            "link_image",
        ]

    def test_image_only_edit_keeps_seeded_fields(self, mock_store):
        undated = Contact(
            id="c-2",
            first_name="Ana",
            last_name="Ruiz",
            email="ana@example.com",
            last_contact="",
        )
        session = ContactFormSession(mock_store)
        session.initialize_from(undated)
        assert session.draft.last_contact == date.today().isoformat()
        session.set_local_image(b"jpg", "image/jpeg")

        outcome = session.submit()

        assert outcome.kind is OutcomeKind.UPDATED
        contact_id, patch = mock_store.update.call_args[0]
        assert contact_id == "c-2"
        assert patch.to_updates() == {}

    def test_edit_sends_only_changed_fields(self, mock_store, existing_contact):
        session = ContactFormSession(mock_store)
        session.initialize_from(existing_contact)
        session.set_field("company", "")

        session.submit()

        patch = mock_store.update.call_args[0][1]
        assert patch.to_updates() == {"company": ""}

    def test_create_failure_keeps_draft_and_skips_image(self, mock_store):
        mock_store.create.side_effect = TransientStoreFailure("offline")
        session = ContactFormSession(mock_store)
        session.reset()
        _fill_valid(session)
        session.set_local_image(b"png", "image/png")

        outcome = session.submit()

        assert outcome.kind is OutcomeKind.FAILED
        assert outcome.level == "error"
        assert session.submit_path[-2:] == [SessionState.FAILED, SessionState.EDITING]
        assert session.state is SessionState.EDITING
        assert session.draft.first_name == "Lee"
        assert session.draft.pending_image is not None
        mock_store.request_upload_slot.assert_not_called()
        mock_store.link_image.assert_not_called()

    def test_retry_after_failure(self, mock_store):
        mock_store.create.side_effect = [TransientStoreFailure("offline"), "new-id"]
        session = ContactFormSession(mock_store)
        _fill_valid(session)

        assert session.submit().kind is OutcomeKind.FAILED
        outcome = session.submit()

        assert outcome.kind is OutcomeKind.ADDED
        assert mock_store.create.call_count == 2

    def test_update_not_found(self, mock_store, existing_contact):
        mock_store.update.side_effect = NotFoundError("c-1")
        session = ContactFormSession(mock_store)
        session.initialize_from(existing_contact)
        session.set_field("notes", "hello")

        outcome = session.submit()

        assert outcome.kind is OutcomeKind.NOT_FOUND
        assert SessionState.FAILED in session.submit_path
        assert session.state is SessionState.EDITING
        assert session.draft.notes == "hello"

    def test_store_side_validation_error_flags_fields(self, mock_store):
        mock_store.create.side_effect = ValidationError(["email"])
        session = ContactFormSession(mock_store)
        _fill_valid(session)

        outcome = session.submit()

        assert outcome.kind is OutcomeKind.INVALID
        assert outcome.errors["email"] is True

    @pytest.mark.parametrize(
        "step, error",
        [
            ("request_upload_slot", TransientStoreFailure("no slot")),
            ("send_bytes", UploadFailure("network")),
            ("link_image", LinkFailure("patch failed")),
        ],
    )
    def test_image_step_failure_is_degraded(self, mock_store, step, error):
        getattr(mock_store, step).side_effect = error
        session = ContactFormSession(mock_store)
        _fill_valid(session)
        session.set_local_image(b"png", "image/png")

        outcome = session.submit()

        assert outcome.kind is OutcomeKind.DEGRADED
        assert outcome.contact_id == "new-id"
        assert outcome.error is error
        assert outcome.level == "warning"
        assert session.draft.pending_image is not None

    def test_retry_after_degraded_add_does_not_duplicate(self, mock_store):
        mock_store.send_bytes.side_effect = [UploadFailure("network"), "blob-1"]
        session = ContactFormSession(mock_store)
        _fill_valid(session)
        session.set_local_image(b"png", "image/png")

        assert session.submit().kind is OutcomeKind.DEGRADED
        outcome = session.submit()

        assert outcome.kind is OutcomeKind.ADDED
        mock_store.create.assert_called_once()
        mock_store.update.assert_called_once()
        assert mock_store.update.call_args[0][0] == "new-id"
        mock_store.link_image.assert_called_once_with("new-id", "blob-1")

    def test_submitted_session_ignores_resubmit(self, mock_store):
        session = ContactFormSession(mock_store)
        _fill_valid(session)
        session.submit()

        outcome = session.submit()

        assert outcome.kind is OutcomeKind.IGNORED
        mock_store.create.assert_called_once()

    def test_concurrent_submit_is_ignored(self, mock_store):
        entered = threading.Event()
        release = threading.Event()

        def slow_create(fields):
            entered.set()
            release.wait(timeout=5)
            return "new-id"

        mock_store.create.side_effect = slow_create
        session = ContactFormSession(mock_store)
        _fill_valid(session)

        results = []
        worker = threading.Thread(target=lambda: results.append(session.submit()))
        worker.start()
        assert entered.wait(timeout=5)
        assert session.is_submitting

        second = session.submit()
        release.set()
        worker.join(timeout=5)

        assert second.kind is OutcomeKind.IGNORED
        assert results[0].kind is OutcomeKind.ADDED
        mock_store.create.assert_called_once()


# =============================================================================
# End-to-end against the file store
# =============================================================================

def test_degraded_edit_keeps_field_update(tmp_path, monkeypatch):
    store = FileContactStore(tmp_path)
    contact_id = store.create(
        ContactFields(
            first_name="Jane",
            last_name="Smith",
            email="jane@example.com",
            last_contact="2023-10-15",
        )
    )

    def failing_send(slot, data, content_type):
        raise UploadFailure("connection reset")

    monkeypatch.setattr(store, "send_bytes", failing_send)

    session = ContactFormSession(store)
    session.initialize_from(store.get(contact_id))
    session.set_field("company", "Globex")
    session.set_local_image(b"png", "image/png")

    outcome = session.submit()

    assert outcome.kind is OutcomeKind.DEGRADED
    [contact] = store.list()
    assert contact.company == "Globex"
    assert contact.image is None
