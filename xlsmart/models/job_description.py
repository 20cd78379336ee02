"""Job description model."""
import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.sql import func

from xlsmart.database import Base


class JobDescription(Base):
    """AI-generated job description, optionally tied to a standard role."""

    __tablename__ = "xlsmart_job_descriptions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    standard_role_id = Column(
        String(36), ForeignKey("xlsmart_standard_roles.id"), nullable=True
    )
    title = Column(String(500), nullable=False)
    department = Column(String(255), nullable=True)
    level = Column(String(100), nullable=True)
    summary = Column(Text, nullable=True)
    responsibilities = Column(JSON, nullable=False, default=list)
    required_qualifications = Column(JSON, nullable=False, default=list)
    required_skills = Column(JSON, nullable=False, default=list)
    experience_level = Column(String(100), nullable=True)
    status = Column(String(50), nullable=False, default="draft")
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )
