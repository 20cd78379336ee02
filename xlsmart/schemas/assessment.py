"""Bulk skills assessment and job description schemas."""
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class BulkAssessmentRequest(BaseModel):
    assessment_type: Literal["company", "department", "role", "all"] = Field(
        ..., alias="assessmentType"
    )
    identifier: Optional[str] = None
    target_job_description_id: Optional[str] = Field(None, alias="targetRoleId")
    employee_ids: Optional[List[str]] = Field(None, alias="employeeIds")

    class Config:
        populate_by_name = True


class JobDescriptionRequest(BaseModel):
    role_title: str = Field(..., min_length=1, max_length=500, alias="roleTitle")
    department: str = ""
    level: str = ""
    standard_role_id: Optional[str] = Field(None, alias="standardRoleId")
    employment_type: str = Field("full_time", alias="employmentType")
    requirements: str = ""
    custom_instructions: str = Field("", alias="customInstructions")
    tone: str = "professional"
    language: str = "en"

    class Config:
        populate_by_name = True


class JobDescriptionResponse(BaseModel):
    id: str
    standard_role_id: Optional[str] = None
    title: str
    department: Optional[str] = None
    level: Optional[str] = None
    summary: Optional[str] = None
    responsibilities: List[str] = []
    required_qualifications: List[str] = []
    required_skills: List[str] = []
    experience_level: Optional[str] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class JobDescriptionGeneratedResponse(BaseModel):
    success: bool = True
    job_description: JobDescriptionResponse


class JobDescriptionUpdateRequest(BaseModel):
    current_content: str = Field(..., min_length=1, alias="currentContent")
    update_request: str = Field(..., min_length=1, alias="updateRequest")

    class Config:
        populate_by_name = True


class JobDescriptionUpdatedResponse(BaseModel):
    success: bool = True
    updated_content: str
    message: str = "Job description updated successfully"
