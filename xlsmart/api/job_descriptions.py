"""Job description generation endpoints."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from xlsmart.api.deps import get_current_user, get_llm_client
from xlsmart.config import get_settings
from xlsmart.database import get_db
from xlsmart.exceptions import NotFoundError
from xlsmart.models.job_description import JobDescription
from xlsmart.models.standard_role import StandardRole
from xlsmart.schemas.assessment import (
    JobDescriptionGeneratedResponse,
    JobDescriptionRequest,
    JobDescriptionResponse,
    JobDescriptionUpdatedResponse,
    JobDescriptionUpdateRequest,
)
from xlsmart.services.generators import JobDescriptionWriter
from xlsmart.services.llm_client import LLMClient

router = APIRouter(prefix="/api/job-descriptions", tags=["job-descriptions"])

logger = logging.getLogger(__name__)


@router.post("/generate", response_model=JobDescriptionGeneratedResponse, status_code=201)
async def generate_job_description(
    request: JobDescriptionRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_current_user),
    llm: LLMClient = Depends(get_llm_client),
):
    """Generate a draft job description with the LLM and store it."""
    department, level = request.department, request.level
    if request.standard_role_id:
        role = db.query(StandardRole).filter(StandardRole.id == request.standard_role_id).first()
        if not role:
            raise NotFoundError(f"Standard role {request.standard_role_id} not found")
        department = department or role.department
        level = level or role.role_level

    settings = get_settings()
    writer = JobDescriptionWriter(
        llm,
        temperature=settings.generation_temperature,
        max_tokens=settings.generation_max_tokens,
    )
    generated = await writer.generate(
        request.role_title,
        department=department,
        level=level,
        employment_type=request.employment_type,
        requirements=request.requirements,
        custom_instructions=request.custom_instructions,
        tone=request.tone,
        language=request.language,
    )

    job_description = JobDescription(
        **generated,
        standard_role_id=request.standard_role_id,
        department=department or None,
        level=level or None,
        created_by=user_id,
    )
    db.add(job_description)
    db.commit()
    db.refresh(job_description)
    logger.info(f"📝 Generated job description {job_description.id}: {job_description.title}")

    return JobDescriptionGeneratedResponse(job_description=job_description)


@router.post("/update", response_model=JobDescriptionUpdatedResponse)
async def update_job_description(
    request: JobDescriptionUpdateRequest,
    llm: LLMClient = Depends(get_llm_client),
):
    """Apply a free-text change request to an existing job description text."""
    updated = await JobDescriptionWriter(llm).update(request.current_content, request.update_request)
    logger.info(f"📝 Job description updated ({len(updated)} chars)")
    return JobDescriptionUpdatedResponse(updated_content=updated)


@router.get("", response_model=List[JobDescriptionResponse])
def list_job_descriptions(
    status: Optional[str] = Query(None, description="Filter by status (draft, approved, ...)"),
    standard_role_id: Optional[str] = Query(None, description="Filter by standard role"),
    db: Session = Depends(get_db),
):
    query = db.query(JobDescription)
    if status:
        query = query.filter(JobDescription.status == status)
    if standard_role_id:
        query = query.filter(JobDescription.standard_role_id == standard_role_id)
    return query.order_by(JobDescription.created_at.desc()).all()
