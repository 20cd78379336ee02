"""Upload session store: the durable record of one processing run."""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from xlsmart.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from xlsmart.models.upload_session import (
    FAILURE_STATUSES,
    SessionStatus,
    UploadSession,
    can_transition,
)

logger = logging.getLogger(__name__)

Publisher = Callable[[UploadSession], None]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionStore:
    """
    Reads and writes ``UploadSession`` rows.

    Every write is committed immediately and, when a publisher is configured,
    pushed to subscribers. Status changes go through the transition table in
    ``xlsmart.models.upload_session``; progress is frozen once a session is
    terminal.
    """

    def __init__(self, db: Session, publisher: Optional[Publisher] = None):
        self.db = db
        self.publisher = publisher

    def create(
        self,
        name: str,
        file_names: Iterable[str],
        total_rows: int,
        created_by: Optional[str] = None,
        status: SessionStatus = SessionStatus.UPLOADING,
        source_data: Optional[Any] = None,
    ) -> UploadSession:
        file_names = [str(f) for f in (file_names or []) if str(f).strip()]
        if not name or not name.strip():
            raise ValidationError("Session name is required")
        if not file_names:
            raise ValidationError("At least one file name is required")
        if total_rows is None or total_rows < 0:
            raise ValidationError("total_rows must be a non-negative integer")
        if status.is_terminal:
            raise InvalidTransitionError(f"Cannot create a session in terminal status '{status.value}'")

        session = UploadSession(
            session_name=name.strip(),
            file_names=file_names,
            total_rows=total_rows,
            status=status.value,
            progress={"processed": 0, "errors": 0, "total": total_rows},
            source_data=source_data,
            created_by=created_by,
        )
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        logger.info(f"Created upload session {session.id} '{session.session_name}' ({total_rows} rows)")
        self._publish(session)
        return session

    def read(self, session_id: str) -> UploadSession:
        session = self.db.query(UploadSession).filter(UploadSession.id == session_id).first()
        if not session:
            raise NotFoundError(f"Upload session {session_id} not found")
        return session

    def update_status(self, session_id: str, new_status: SessionStatus) -> UploadSession:
        session = self.read(session_id)
        self._apply_status(session, new_status)
        self.db.commit()
        self._publish(session)
        return session

    def start_run(
        self,
        session_id: str,
        running_status: SessionStatus,
        total: int,
        counter_name: str,
        extra: Optional[Dict[str, Any]] = None,
    ) -> UploadSession:
        """Move to ``running_status`` and reset the counters in one write."""
        session = self.read(session_id)
        self._ensure_open(session)
        self._apply_status(session, running_status)
        progress = dict(extra or {})
        progress.update({"processed": 0, counter_name: 0, "errors": 0, "total": total})
        session.progress = progress
        session.total_rows = total
        self.db.commit()
        self._publish(session)
        return session

    def update_progress(self, session_id: str, updates: Dict[str, Any]) -> UploadSession:
        """Merge ``updates`` into the stored progress blob (last write wins)."""
        session = self.read(session_id)
        self._ensure_open(session)
        session.progress = self._merged_progress(session, updates)
        self.db.commit()
        self._publish(session)
        return session

    def finish(
        self,
        session_id: str,
        status: SessionStatus = SessionStatus.COMPLETED,
        progress: Optional[Dict[str, Any]] = None,
    ) -> UploadSession:
        """Write final counters and move to a terminal status in one write."""
        if not status.is_terminal:
            raise InvalidTransitionError(f"'{status.value}' is not a terminal status")
        session = self.read(session_id)
        self._ensure_open(session)
        if progress:
            session.progress = self._merged_progress(session, progress)
        self._apply_status(session, status)
        self.db.commit()
        logger.info(f"Upload session {session_id} finished with status '{status.value}'")
        self._publish(session)
        return session

    def fail(
        self,
        session_id: str,
        message: str,
        status: SessionStatus = SessionStatus.FAILED,
    ) -> Optional[UploadSession]:
        """Mark the session failed; a no-op if it already reached a terminal status."""
        if status not in FAILURE_STATUSES:
            raise InvalidTransitionError(f"'{status.value}' is not a failure status")
        # A failed flush leaves the unit of work unusable until rolled back
        self.db.rollback()
        session = self.db.query(UploadSession).filter(UploadSession.id == session_id).first()
        if not session:
            logger.error(f"Cannot mark missing session {session_id} as failed: {message}")
            return None
        if session.status_enum.is_terminal:
            logger.warning(
                f"Session {session_id} already '{session.status}', not recording failure: {message}"
            )
            return session
        session.status = status.value
        session.error_message = message
        self.db.commit()
        logger.error(f"Upload session {session_id} marked '{status.value}': {message}")
        self._publish(session)
        return session

    def _apply_status(self, session: UploadSession, new_status: SessionStatus) -> None:
        current = session.status_enum
        if not can_transition(current, new_status):
            raise InvalidTransitionError(
                f"Cannot move session {session.id} from '{current.value}' to '{new_status.value}'"
            )
        if current != new_status:
            logger.info(f"Session {session.id}: {current.value} -> {new_status.value}")
            session.status = new_status.value

    @staticmethod
    def _ensure_open(session: UploadSession) -> None:
        if session.status_enum.is_terminal:
            raise InvalidTransitionError(
                f"Session {session.id} is '{session.status}' and can no longer change"
            )

    @staticmethod
    def _merged_progress(session: UploadSession, updates: Dict[str, Any]) -> Dict[str, Any]:
        # Assign a fresh dict: in-place JSON mutation is not tracked by SQLAlchemy
        progress = dict(session.progress or {})
        progress.update(updates)
        processed = progress.get("processed", 0)
        total = progress.get("total", session.total_rows)
        if processed > total:
            raise ValidationError(
                f"Progress for session {session.id} would exceed total ({processed} > {total})"
            )
        return progress

    def _publish(self, session: UploadSession) -> None:
        if self.publisher is not None:
            self.publisher(session)
