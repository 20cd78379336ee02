"""Role mapping model linking an uploaded role to a standard role."""
import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, String
from sqlalchemy.sql import func

from xlsmart.database import Base


class RoleMapping(Base):
    """Mapping of one original (source company) role to a standard role."""

    __tablename__ = "xlsmart_role_mappings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    upload_session_id = Column(
        String(36), ForeignKey("xlsmart_upload_sessions.id"), nullable=False, index=True
    )
    original_role_title = Column(String(500), nullable=False)
    original_department = Column(String(255), nullable=True)
    original_level = Column(String(100), nullable=True)
    source_file = Column(String(500), nullable=True)

    standard_role_id = Column(
        String(36), ForeignKey("xlsmart_standard_roles.id"), nullable=True
    )
    standardized_role_title = Column(String(500), nullable=True)
    standardized_department = Column(String(255), nullable=True)
    standardized_level = Column(String(100), nullable=True)
    job_family = Column(String(255), nullable=True)
    mapping_confidence = Column(Float, nullable=False, default=0.0)  # 0-100
    mapping_status = Column(String(50), nullable=False, default="auto_mapped")
    requires_manual_review = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
