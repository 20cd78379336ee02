"""Skill assessment results produced by bulk assessment runs."""
import uuid

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.sql import func

from xlsmart.database import Base


class SkillAssessment(Base):
    __tablename__ = "xlsmart_skill_assessments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    employee_id = Column(
        String(36), ForeignKey("xlsmart_employees.id"), nullable=False, index=True
    )
    job_description_id = Column(
        String(36), ForeignKey("xlsmart_job_descriptions.id"), nullable=True
    )
    upload_session_id = Column(
        String(36), ForeignKey("xlsmart_upload_sessions.id"), nullable=True
    )
    overall_match_percentage = Column(Float, nullable=False, default=0.0)
    skill_gaps = Column(JSON, nullable=False, default=list)
    recommendations = Column(Text, nullable=True)
    next_role_recommendations = Column(JSON, nullable=False, default=list)
    assessed_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
