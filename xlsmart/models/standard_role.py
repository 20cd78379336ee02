"""Standard role model: the canonical roles employees are matched against."""
import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from xlsmart.database import Base


class StandardRole(Base):
    """Canonical job role definition."""

    __tablename__ = "xlsmart_standard_roles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    role_title = Column(String(500), nullable=False)
    department = Column(String(255), nullable=False, default="")
    job_family = Column(String(255), nullable=False, default="")
    role_level = Column(String(100), nullable=False, default="")
    role_category = Column(String(255), nullable=False, default="Technical")
    standard_description = Column(Text, nullable=True)
    required_skills = Column(JSON, nullable=False, default=list)
    core_responsibilities = Column(JSON, nullable=False, default=list)
    keywords = Column(JSON, nullable=False, default=list)
    experience_range_min = Column(Integer, nullable=True)
    experience_range_max = Column(Integer, nullable=True)
    industry_alignment = Column(String(255), nullable=True, default="Telecommunications")
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self):
        return f"<StandardRole(id={self.id}, title='{self.role_title}')>"
