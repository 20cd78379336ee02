"""Database models."""
from xlsmart.models.employee import Employee, RoleAssignmentStatus
from xlsmart.models.job_description import JobDescription
from xlsmart.models.role_mapping import RoleMapping
from xlsmart.models.skill_assessment import SkillAssessment
from xlsmart.models.standard_role import StandardRole
from xlsmart.models.upload_session import SessionStatus, UploadSession

__all__ = [
    "Employee",
    "JobDescription",
    "RoleAssignmentStatus",
    "RoleMapping",
    "SessionStatus",
    "SkillAssessment",
    "StandardRole",
    "UploadSession",
]
