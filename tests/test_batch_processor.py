"""Tests for the batch processor."""
import asyncio

import pytest

from xlsmart.exceptions import BatchProcessingError
from xlsmart.models.upload_session import SessionStatus
from xlsmart.services.batch_processor import BatchConfig, BatchProcessor
from xlsmart.services.session_store import SessionStore


class CountingStore(SessionStore):
    """Session store that remembers every progress write."""

    def __init__(self, db):
        super().__init__(db)
        self.progress_writes = []

    def update_progress(self, session_id, updates):
        self.progress_writes.append(dict(updates))
        return super().update_progress(session_id, updates)


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def run(processor, session_id, records, operation, **kwargs):
    kwargs.setdefault("running_status", SessionStatus.ASSIGNING_ROLES)
    return asyncio.run(processor.run(session_id, records, operation, **kwargs))


async def succeed(record):
    return True


def test_progress_written_once_per_batch(db):
    """25 records in batches of 10 produce exactly three progress writes."""
    store = CountingStore(db)
    session = store.create("Upload", ["a.xlsx"], 25)
    sleep = RecordingSleep()
    processor = BatchProcessor(store, BatchConfig(batch_size=10, delay_seconds=1.0), sleep=sleep)

    result = run(processor, session.id, list(range(25)), succeed)

    assert [w["processed"] for w in store.progress_writes] == [10, 20, 25]
    assert sleep.delays == [1.0, 1.0]
    assert result.processed == 25
    assert result.succeeded == 25
    assert store.read(session.id).status == "completed"


def test_failing_records_are_counted(db):
    """N records with K failures complete with errors == K."""
    store = SessionStore(db)
    session = store.create("Upload", ["a.xlsx"], 12)
    processor = BatchProcessor(store, BatchConfig(batch_size=5, delay_seconds=0))

    async def operation(record):
        if record % 4 == 0:
            raise RuntimeError(f"record {record} exploded")
        return record % 2 == 1

    result = run(processor, session.id, list(range(12)), operation, describe=lambda r: f"row-{r}")

    progress = store.read(session.id).progress
    assert result.errors == 3
    assert progress["errors"] == 3
    assert progress["processed"] == 12
    assert progress["assigned"] == 6
    assert progress["total"] == 12
    assert "completion_time" in progress
    assert progress["error_details"][0] == "row-0: record 0 exploded"
    assert store.read(session.id).status == "completed"


def test_error_details_are_capped(db):
    store = SessionStore(db)
    session = store.create("Upload", ["a.xlsx"], 30)
    processor = BatchProcessor(store, BatchConfig(batch_size=10, delay_seconds=0))

    async def fail(record):
        raise ValueError("bad row")

    result = run(processor, session.id, list(range(30)), fail)

    assert len(store.read(session.id).progress["error_details"]) == 10
    assert len(result.to_dict()["error_details"]) == 5
    assert result.errors == 30


def test_intermediate_final_statuses(db):
    """The assignment path passes through roles_assigned before completing."""
    statuses = []
    store = SessionStore(db, publisher=lambda s: statuses.append(s.status))
    session = store.create("Upload", ["a.xlsx"], 1)
    processor = BatchProcessor(store, BatchConfig(delay_seconds=0))

    run(
        processor, session.id, [1], succeed,
        final_statuses=(SessionStatus.ROLES_ASSIGNED, SessionStatus.COMPLETED),
    )

    assert statuses[-2:] == ["roles_assigned", "completed"]


def test_custom_counter_name(db):
    store = SessionStore(db)
    session = store.create("Assessment", ["all"], 2)
    processor = BatchProcessor(store, BatchConfig(delay_seconds=0))

    result = run(
        processor, session.id, [1, 2], succeed,
        running_status=SessionStatus.ANALYZING, counter_name="completed",
    )

    assert store.read(session.id).progress["completed"] == 2
    assert result.to_dict()["completed"] == 2


def test_empty_run_completes(db):
    store = CountingStore(db)
    session = store.create("Upload", ["a.xlsx"], 0)

    result = run(BatchProcessor(store), session.id, [], succeed)

    assert result.processed == 0
    assert store.progress_writes == []
    assert store.read(session.id).status == "completed"


def test_aborted_run_marks_session_failed(db):
    """A failure outside per-record handling fails the session."""

    class BrokenStore(SessionStore):
        def update_progress(self, session_id, updates):
            raise RuntimeError("database went away")

    store = BrokenStore(db)
    session = store.create("Upload", ["a.xlsx"], 3)
    processor = BatchProcessor(store, BatchConfig(delay_seconds=0))

    with pytest.raises(BatchProcessingError):
        run(processor, session.id, [1, 2, 3], succeed, failure_status=SessionStatus.ERROR)

    session = store.read(session.id)
    assert session.status == "error"
    assert "database went away" in session.error_message


def test_batch_config_validation():
    with pytest.raises(ValueError):
        BatchConfig(batch_size=0)
    with pytest.raises(ValueError):
        BatchConfig(delay_seconds=-1)
