"""Employee schemas for API requests and responses."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class EmployeeUploadRequest(BaseModel):
    """JSON alternative to the multipart employee upload."""

    session_name: str = Field(..., min_length=1, max_length=500, alias="sessionName")
    employees: List[Dict[str, Any]] = Field(..., min_length=1)
    file_name: str = Field("employees.json", alias="fileName")

    class Config:
        populate_by_name = True


class RoleAssignmentRequest(BaseModel):
    """Trigger AI role assignment for a session or an explicit set of employees."""

    session_id: Optional[str] = Field(None, alias="sessionId")
    employee_ids: Optional[List[str]] = Field(None, alias="employeeIds")
    assign_immediately: bool = Field(True, alias="assignImmediately")

    class Config:
        populate_by_name = True


class EmployeeResponse(BaseModel):
    id: str
    employee_number: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    source_company: Optional[str] = None
    current_position: str
    current_department: Optional[str] = None
    current_level: Optional[str] = None
    years_of_experience: Optional[int] = None
    skills: List[str] = []
    certifications: List[str] = []
    standard_role_id: Optional[str] = None
    ai_suggested_role_id: Optional[str] = None
    role_assignment_status: str
    assignment_notes: Optional[str] = None
    upload_session_id: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EmployeeListResponse(BaseModel):
    success: bool = True
    items: List[EmployeeResponse]
    total: int
    page: int
    page_size: int
    pages: int
