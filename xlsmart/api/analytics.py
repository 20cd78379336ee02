"""Succession planning and role intelligence endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from xlsmart.api.deps import get_llm_client
from xlsmart.config import get_settings
from xlsmart.database import get_db
from xlsmart.models.employee import Employee
from xlsmart.models.job_description import JobDescription
from xlsmart.models.skill_assessment import SkillAssessment
from xlsmart.models.standard_role import StandardRole
from xlsmart.schemas.analytics import (
    AnalysisResponse,
    RoleIntelligenceRequest,
    SuccessionPlanningRequest,
)
from xlsmart.services.generators import RoleIntelligenceAnalyzer, SuccessionPlanner
from xlsmart.services.llm_client import LLMClient

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

logger = logging.getLogger(__name__)


def _active_employees(db: Session, department: Optional[str] = None):
    query = db.query(Employee).filter(Employee.is_active.is_(True))
    if department:
        query = query.filter(Employee.current_department == department)
    return query.order_by(Employee.employee_number).all()


def _active_roles(db: Session, department: Optional[str] = None):
    query = db.query(StandardRole).filter(StandardRole.is_active.is_(True))
    if department:
        query = query.filter(StandardRole.department == department)
    return query.order_by(StandardRole.role_title).all()


@router.post("/succession-planning", response_model=AnalysisResponse)
async def succession_planning(
    request: SuccessionPlanningRequest,
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    """Run one succession planning analysis over the active workforce."""
    employees = _active_employees(db, request.department_filter)
    roles = _active_roles(db)
    assessments = (
        db.query(SkillAssessment).order_by(SkillAssessment.created_at.desc()).limit(15).all()
    )
    logger.info(
        f"📊 Succession planning '{request.analysis_type}' over {len(employees)} employees"
    )

    settings = get_settings()
    planner = SuccessionPlanner(
        llm,
        temperature=settings.generation_temperature,
        max_tokens=settings.generation_max_tokens,
    )
    result = await planner.analyze(
        request.analysis_type,
        employees,
        roles,
        assessments,
        department=request.department_filter,
        position_level=request.position_level,
    )
    return AnalysisResponse(analysis_type=request.analysis_type, result=result)


@router.post("/role-intelligence", response_model=AnalysisResponse)
async def role_intelligence(
    request: RoleIntelligenceRequest,
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_llm_client),
):
    """Run one role intelligence analysis over the standard role catalog."""
    roles = _active_roles(db, request.department_filter)
    employees = _active_employees(db)
    job_descriptions = (
        db.query(JobDescription).order_by(JobDescription.created_at.desc()).limit(10).all()
    )
    logger.info(f"📊 Role intelligence '{request.analysis_type}' over {len(roles)} roles")

    settings = get_settings()
    analyzer = RoleIntelligenceAnalyzer(
        llm,
        temperature=settings.generation_temperature,
        max_tokens=settings.generation_max_tokens,
    )
    result = await analyzer.analyze(
        request.analysis_type,
        roles,
        employees,
        job_descriptions,
        department=request.department_filter,
        time_horizon=request.time_horizon,
    )
    return AnalysisResponse(analysis_type=request.analysis_type, result=result)
