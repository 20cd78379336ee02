"""Employee model."""
import enum
import uuid
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func

from xlsmart.database import Base


class RoleAssignmentStatus(str, enum.Enum):
    PENDING = "pending"
    AI_SUGGESTED = "ai_suggested"
    ASSIGNED = "assigned"
    AI_NO_MATCH = "ai_no_match"


class Employee(Base):
    """Employee uploaded from one of the source companies."""

    __tablename__ = "xlsmart_employees"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    employee_number = Column(String(100), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=True)
    source_company = Column(String(100), nullable=True)

    current_position = Column(String(500), nullable=False)
    current_department = Column(String(255), nullable=True)
    current_level = Column(String(100), nullable=True)
    years_of_experience = Column(Integer, nullable=True)
    performance_rating = Column(Float, nullable=True)
    skills = Column(JSON, nullable=False, default=list)
    certifications = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)

    standard_role_id = Column(
        String(36), ForeignKey("xlsmart_standard_roles.id"), nullable=True
    )
    ai_suggested_role_id = Column(
        String(36), ForeignKey("xlsmart_standard_roles.id"), nullable=True
    )
    role_assignment_status = Column(
        String(50), nullable=False, default=RoleAssignmentStatus.PENDING.value
    )
    assignment_notes = Column(Text, nullable=True)
    assigned_by = Column(String(36), nullable=True)

    upload_session_id = Column(
        String(36), ForeignKey("xlsmart_upload_sessions.id"), nullable=True
    )
    uploaded_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index("idx_employees_assignment_status", role_assignment_status),
        Index("idx_employees_upload_session", upload_session_id),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def assign_role(self, role_id: str, assigned_by: Optional[str] = None,
                    notes: str = "Assigned by AI") -> None:
        """Make ``role_id`` the employee's standard role."""
        if not role_id:
            raise ValueError("role_id is required to assign a role")
        self.standard_role_id = role_id
        self.ai_suggested_role_id = role_id
        self.role_assignment_status = RoleAssignmentStatus.ASSIGNED.value
        self.assigned_by = assigned_by
        self.assignment_notes = notes

    def suggest_role(self, role_id: str, notes: str = "Suggested by AI") -> None:
        """Record an AI suggestion without assigning it."""
        if not role_id:
            raise ValueError("role_id is required to suggest a role")
        self.ai_suggested_role_id = role_id
        self.standard_role_id = None
        self.role_assignment_status = RoleAssignmentStatus.AI_SUGGESTED.value
        self.assignment_notes = notes

    def mark_no_match(self, notes: str = "AI could not find suitable role match") -> None:
        self.ai_suggested_role_id = None
        self.standard_role_id = None
        self.role_assignment_status = RoleAssignmentStatus.AI_NO_MATCH.value
        self.assignment_notes = notes

    def __repr__(self):
        return f"<Employee(id={self.id}, number='{self.employee_number}', name='{self.full_name}')>"
