"""Batch processor: runs a per-record AI operation over records with progress tracking."""
import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from xlsmart.config import Settings
from xlsmart.exceptions import BatchProcessingError
from xlsmart.models.upload_session import SessionStatus
from xlsmart.services.session_store import SessionStore, utc_now_iso

BATCH_SIZE = 10
BATCH_DELAY_SECONDS = 1.0
ERROR_DETAILS_KEPT = 10
ERROR_DETAILS_RETURNED = 5

logger = logging.getLogger(__name__)

RecordOperation = Callable[[Any], Awaitable[Any]]


@dataclass(frozen=True)
class BatchConfig:
    batch_size: int = BATCH_SIZE
    delay_seconds: float = BATCH_DELAY_SECONDS

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> "BatchConfig":
        return cls(batch_size=settings.batch_size, delay_seconds=settings.batch_delay_seconds)


@dataclass
class BatchResult:
    session_id: str
    status: str
    total: int
    processed: int = 0
    succeeded: int = 0
    errors: int = 0
    counter_name: str = "assigned"
    error_details: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "status": self.status,
            "processed": self.processed,
            self.counter_name: self.succeeded,
            "errors": self.errors,
            "total": self.total,
            "error_details": self.error_details[:ERROR_DETAILS_RETURNED],
        }


class BatchProcessor:
    """
    Applies ``operation`` to every record in fixed-size batches.

    Records inside a batch run concurrently and the whole batch settles before
    the next one starts, so at most ``batch_size`` operations are in flight.
    Progress is written once per batch. A failing record is counted and
    skipped; anything that escapes the loop itself fails the session.
    """

    def __init__(
        self,
        store: SessionStore,
        config: Optional[BatchConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.store = store
        self.config = config or BatchConfig()
        self._sleep = sleep

    async def run(
        self,
        session_id: str,
        records: Sequence[Any],
        operation: RecordOperation,
        *,
        running_status: SessionStatus,
        final_statuses: Sequence[SessionStatus] = (SessionStatus.COMPLETED,),
        failure_status: SessionStatus = SessionStatus.FAILED,
        counter_name: str = "assigned",
        describe: Callable[[Any], str] = str,
        extra_progress: Optional[Dict[str, Any]] = None,
    ) -> BatchResult:
        """
        Process ``records`` for ``session_id``.

        Args:
            session_id: Upload session receiving progress
            records: Records in processing order
            operation: Async callable; a truthy return counts toward ``counter_name``
            running_status: Session status while batches run
            final_statuses: Statuses written after the last batch, ending terminal
            failure_status: Status written if the run aborts
            counter_name: Progress key for successful records ("assigned", "completed")
            describe: Label for a record in error details
            extra_progress: Diagnostic fields kept in the progress blob

        Returns:
            BatchResult with final counters and the first few error details

        Raises:
            BatchProcessingError: the run aborted; the session is marked failed
        """
        if not final_statuses or not final_statuses[-1].is_terminal:
            raise ValueError("final_statuses must end with a terminal status")

        extra = dict(extra_progress or {})
        result = BatchResult(
            session_id=session_id,
            status=running_status.value,
            total=len(records),
            counter_name=counter_name,
        )
        batch_size = self.config.batch_size
        batch_count = math.ceil(len(records) / batch_size)

        try:
            self.store.start_run(session_id, running_status, result.total, counter_name, extra)
            logger.info(
                f"Session {session_id}: processing {result.total} records "
                f"in {batch_count} batches of {batch_size}"
            )

            for index, start in enumerate(range(0, len(records), batch_size), start=1):
                batch = records[start:start + batch_size]
                logger.info(f"Session {session_id}: batch {index}/{batch_count} ({len(batch)} records)")

                outcomes = await asyncio.gather(
                    *(operation(record) for record in batch), return_exceptions=True
                )
                for record, outcome in zip(batch, outcomes):
                    if isinstance(outcome, BaseException):
                        result.errors += 1
                        label = describe(record)
                        logger.warning(f"Session {session_id}: record {label} failed: {outcome}")
                        result.error_details.append(f"{label}: {outcome}")
                    elif outcome:
                        result.succeeded += 1
                result.processed += len(batch)

                self.store.update_progress(session_id, self._progress(result, extra))
                logger.info(
                    f"Session {session_id}: {result.processed}/{result.total} processed, "
                    f"{result.succeeded} {counter_name}, {result.errors} errors"
                )

                if start + batch_size < len(records):
                    await self._sleep(self.config.delay_seconds)

            for status in final_statuses[:-1]:
                self.store.update_status(session_id, status)
            final = self._progress(result, extra)
            final["completion_time"] = utc_now_iso()
            self.store.finish(session_id, final_statuses[-1], final)
            result.status = final_statuses[-1].value

        except Exception as e:
            logger.error(f"Batch run for session {session_id} aborted: {e}", exc_info=True)
            self.store.fail(session_id, str(e), status=failure_status)
            result.status = failure_status.value
            raise BatchProcessingError(f"Batch run for session {session_id} aborted: {e}") from e

        logger.info(
            f"Session {session_id} finished: {result.succeeded} {counter_name}, "
            f"{result.errors} errors out of {result.processed}"
        )
        return result

    @staticmethod
    def _progress(result: BatchResult, extra: Dict[str, Any]) -> Dict[str, Any]:
        progress = dict(extra)
        progress.update({
            "processed": result.processed,
            result.counter_name: result.succeeded,
            "errors": result.errors,
            "total": result.total,
            "error_details": result.error_details[-ERROR_DETAILS_KEPT:],
        })
        return progress
