"""Upload session model for tracking bulk upload and AI processing runs."""
import enum
import uuid

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from xlsmart.database import Base


class SessionStatus(str, enum.Enum):
    """Lifecycle of an upload session, in pipeline order."""

    UPLOADING = "uploading"
    ANALYZING = "analyzing"
    STANDARDIZING = "standardizing"
    ASSIGNING_ROLES = "assigning_roles"
    ROLES_ASSIGNED = "roles_assigned"
    COMPLETED = "completed"
    FAILED = "failed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.FAILED, SessionStatus.ERROR}
)

FAILURE_STATUSES = frozenset({SessionStatus.FAILED, SessionStatus.ERROR})

# Position in the happy path. Entry points may skip forward, never back.
_STATUS_ORDER = {
    SessionStatus.UPLOADING: 0,
    SessionStatus.ANALYZING: 1,
    SessionStatus.STANDARDIZING: 2,
    SessionStatus.ASSIGNING_ROLES: 3,
    SessionStatus.ROLES_ASSIGNED: 4,
    SessionStatus.COMPLETED: 5,
}


def can_transition(current: SessionStatus, new: SessionStatus) -> bool:
    """Return True if a session may move from ``current`` to ``new``."""
    if current == new:
        return True
    if current.is_terminal:
        return False
    if new in FAILURE_STATUSES:
        return True
    return _STATUS_ORDER[new] > _STATUS_ORDER[current]


class UploadSession(Base):
    """Model for tracking one bulk upload / standardization / assessment run."""

    __tablename__ = "xlsmart_upload_sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_name = Column(String(500), nullable=False)
    file_names = Column(JSON, nullable=False, default=list)
    total_rows = Column(Integer, default=0, nullable=False)
    status = Column(
        String(50), nullable=False, default=SessionStatus.UPLOADING.value
    )
    progress = Column(JSON, nullable=False, default=dict)
    # Raw uploaded sheets for role uploads, run parameters for assessments
    source_data = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @property
    def status_enum(self) -> SessionStatus:
        return SessionStatus(self.status)

    def __repr__(self):
        return f"<UploadSession(id={self.id}, name='{self.session_name}', status='{self.status}')>"
