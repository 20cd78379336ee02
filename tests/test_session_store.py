"""Tests for the upload session store and its status machine."""
import pytest

from xlsmart.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from xlsmart.models.upload_session import SessionStatus, can_transition
from xlsmart.services.session_store import SessionStore


def test_create_initializes_progress(db):
    """A new session starts with zeroed counters."""
    session = SessionStore(db).create("Q3 upload", ["roles.xlsx"], total_rows=12, created_by="user-1")

    assert session.status == "uploading"
    assert session.progress == {"processed": 0, "errors": 0, "total": 12}
    assert session.file_names == ["roles.xlsx"]
    assert session.created_by == "user-1"


@pytest.mark.parametrize(
    "name,file_names,total_rows",
    [("", ["a.xlsx"], 1), ("Upload", [], 1), ("Upload", ["a.xlsx"], -1)],
)
def test_create_rejects_invalid_input(db, name, file_names, total_rows):
    with pytest.raises(ValidationError):
        SessionStore(db).create(name, file_names, total_rows=total_rows)


def test_create_rejects_terminal_status(db):
    with pytest.raises(InvalidTransitionError):
        SessionStore(db).create("Upload", ["a.xlsx"], 1, status=SessionStatus.COMPLETED)


def test_read_unknown_session(db):
    with pytest.raises(NotFoundError):
        SessionStore(db).read("does-not-exist")


def test_status_moves_forward_only(db):
    """Forward skips are allowed; going back is not."""
    store = SessionStore(db)
    session = store.create("Upload", ["a.xlsx"], 3)

    store.update_status(session.id, SessionStatus.ASSIGNING_ROLES)
    with pytest.raises(InvalidTransitionError):
        store.update_status(session.id, SessionStatus.ANALYZING)

    store.update_status(session.id, SessionStatus.ASSIGNING_ROLES)
    assert store.read(session.id).status == "assigning_roles"


def test_terminal_session_is_frozen(db):
    """Once completed, neither status nor progress can change."""
    store = SessionStore(db)
    session = store.create("Upload", ["a.xlsx"], 2)
    store.finish(session.id, SessionStatus.COMPLETED, {"processed": 2, "assigned": 2})

    with pytest.raises(InvalidTransitionError):
        store.update_progress(session.id, {"processed": 1})
    with pytest.raises(InvalidTransitionError):
        store.update_status(session.id, SessionStatus.FAILED)

    assert store.read(session.id).progress["processed"] == 2


def test_progress_cannot_exceed_total(db):
    store = SessionStore(db)
    session = store.create("Upload", ["a.xlsx"], 5)

    with pytest.raises(ValidationError):
        store.update_progress(session.id, {"processed": 6})

    assert store.read(session.id).progress["processed"] == 0


def test_update_progress_merges(db):
    """Updates merge into the stored blob, keeping unrelated keys."""
    store = SessionStore(db)
    session = store.create("Upload", ["a.xlsx"], 5)
    store.update_progress(session.id, {"processed": 2, "note": "first"})
    store.update_progress(session.id, {"processed": 4})

    progress = store.read(session.id).progress
    assert progress["processed"] == 4
    assert progress["note"] == "first"
    assert progress["total"] == 5


def test_fail_records_message_once(db):
    """A second failure does not overwrite a terminal session."""
    store = SessionStore(db)
    session = store.create("Upload", ["a.xlsx"], 5)

    store.fail(session.id, "LLM proxy unreachable")
    store.fail(session.id, "second failure", status=SessionStatus.ERROR)

    session = store.read(session.id)
    assert session.status == "failed"
    assert session.error_message == "LLM proxy unreachable"


def test_fail_unknown_session_is_noop(db):
    assert SessionStore(db).fail("missing", "boom") is None


def test_publisher_sees_every_write(db):
    published = []
    store = SessionStore(db, publisher=lambda s: published.append((s.status, dict(s.progress))))

    session = store.create("Upload", ["a.xlsx"], 2)
    store.start_run(session.id, SessionStatus.ASSIGNING_ROLES, 2, "assigned")
    store.update_progress(session.id, {"processed": 2, "assigned": 1})
    store.finish(session.id, SessionStatus.COMPLETED)

    assert [status for status, _ in published] == [
        "uploading", "assigning_roles", "assigning_roles", "completed",
    ]
    assert published[1][1]["assigned"] == 0


def test_can_transition_table():
    assert can_transition(SessionStatus.UPLOADING, SessionStatus.COMPLETED)
    assert can_transition(SessionStatus.STANDARDIZING, SessionStatus.ERROR)
    assert not can_transition(SessionStatus.ROLES_ASSIGNED, SessionStatus.ASSIGNING_ROLES)
    assert not can_transition(SessionStatus.FAILED, SessionStatus.COMPLETED)
    assert can_transition(SessionStatus.COMPLETED, SessionStatus.COMPLETED)
