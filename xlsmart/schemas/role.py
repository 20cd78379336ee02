"""Standard role, role mapping and role upload schemas."""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class UploadedSheet(BaseModel):
    """One parsed worksheet as sent by a client that reads Excel itself."""

    file_name: str = Field(..., min_length=1, alias="fileName")
    sheet_name: str = Field("", alias="sheetName")
    headers: List[str]
    rows: List[List[Any]]

    class Config:
        populate_by_name = True


class RoleUploadRequest(BaseModel):
    session_name: str = Field(..., min_length=1, max_length=500, alias="sessionName")
    excel_data: List[UploadedSheet] = Field(..., min_length=1, alias="excelData")

    class Config:
        populate_by_name = True


class StandardizeRequest(BaseModel):
    session_id: str = Field(..., min_length=1, alias="sessionId")

    class Config:
        populate_by_name = True


class StandardRoleResponse(BaseModel):
    id: str
    role_title: str
    department: str
    job_family: str
    role_level: str
    role_category: str
    standard_description: Optional[str] = None
    required_skills: List[str] = []
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RoleMappingResponse(BaseModel):
    id: str
    upload_session_id: str
    original_role_title: str
    original_department: Optional[str] = None
    original_level: Optional[str] = None
    standard_role_id: Optional[str] = None
    standardized_role_title: Optional[str] = None
    mapping_confidence: float
    mapping_status: str
    requires_manual_review: bool

    class Config:
        from_attributes = True
