"""Bulk skills assessment endpoint."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from xlsmart.api.deps import fail_session_unless_queued, get_current_user, require_llm_config
from xlsmart.database import get_db
from xlsmart.exceptions import NotFoundError, ValidationError
from xlsmart.models.job_description import JobDescription
from xlsmart.models.upload_session import SessionStatus
from xlsmart.schemas.assessment import BulkAssessmentRequest
from xlsmart.schemas.session import SessionAcceptedResponse
from xlsmart.services.pipelines import select_assessment_employees
from xlsmart.services.session_store import SessionStore
from xlsmart.tasks.pipeline_tasks import run_skills_assessment

router = APIRouter(prefix="/api/assessments", tags=["assessments"])

logger = logging.getLogger(__name__)


@router.post("/bulk", response_model=SessionAcceptedResponse)
def start_bulk_assessment(
    request: BulkAssessmentRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_current_user),
    _llm=Depends(require_llm_config),
):
    """
    Assess every selected employee's skills in the background.

    Employees are selected by ``employee_ids`` when given, otherwise by
    ``assessment_type`` (company, department or role) and ``identifier``,
    or all active employees for ``all``.
    """
    if request.assessment_type != "all" and not request.identifier and not request.employee_ids:
        raise ValidationError(f"identifier is required for a '{request.assessment_type}' assessment")

    if request.target_job_description_id:
        target = (
            db.query(JobDescription)
            .filter(JobDescription.id == request.target_job_description_id)
            .first()
        )
        if not target:
            raise NotFoundError(f"Job description {request.target_job_description_id} not found")

    employees = select_assessment_employees(
        db, request.assessment_type, request.identifier, request.employee_ids
    )
    if not employees:
        raise ValidationError(
            f"No employees found for {request.assessment_type}: {request.identifier or 'all'}"
        )

    store = SessionStore(db)
    session = store.create(
        f"Bulk assessment: {request.assessment_type} {request.identifier or ''}".strip(),
        [f"{request.assessment_type}:{request.identifier or 'all'}"],
        total_rows=len(employees),
        created_by=user_id,
        status=SessionStatus.ANALYZING,
        source_data={
            "assessment_type": request.assessment_type,
            "identifier": request.identifier,
            "employee_ids": request.employee_ids,
            "target_job_description_id": request.target_job_description_id,
        },
    )

    with fail_session_unless_queued(store, session.id, "queue skills assessment"):
        run_skills_assessment.delay(session.id)
    logger.info(f"🚀 Bulk assessment queued: session={session.id}, employees={len(employees)}")
    return SessionAcceptedResponse(
        session_id=session.id,
        status=session.status,
        total_rows=session.total_rows,
        message=f"Assessment of {len(employees)} employees started",
    )
