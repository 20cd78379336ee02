"""Employee upload and AI role assignment endpoints."""
import logging
import math
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from xlsmart.api.deps import (
    fail_session_unless_queued,
    get_current_user,
    read_uploaded_sheets,
    require_llm_config,
)
from xlsmart.database import get_db
from xlsmart.exceptions import InvalidTransitionError, ValidationError
from xlsmart.models.employee import Employee, RoleAssignmentStatus
from xlsmart.schemas.employee import (
    EmployeeListResponse,
    EmployeeUploadRequest,
    RoleAssignmentRequest,
)
from xlsmart.schemas.session import SessionAcceptedResponse
from xlsmart.services.pipelines import discard_session_employees, import_employees
from xlsmart.services.session_store import SessionStore
from xlsmart.services.spreadsheet_ingestor import normalize_employee_row
from xlsmart.tasks.pipeline_tasks import run_role_assignment

router = APIRouter(prefix="/api/employees", tags=["employees"])

logger = logging.getLogger(__name__)


def _import_and_queue(
    db: Session,
    session_name: str,
    file_names: List[str],
    records: List[Dict[str, Any]],
    created_by: Optional[str],
) -> SessionAcceptedResponse:
    rows = [row for row in (normalize_employee_row(r) for r in records) if row]
    skipped = len(records) - len(rows)
    if not rows:
        raise ValidationError("No valid employee rows found: each row needs a position and a name or id")

    store = SessionStore(db)
    session = store.create(session_name, file_names, total_rows=len(rows), created_by=created_by)
    with fail_session_unless_queued(
        store,
        session.id,
        "queue role assignment",
        cleanup=lambda: discard_session_employees(db, session.id),
    ):
        import_employees(db, session, rows, uploaded_by=created_by)
        run_role_assignment.delay(session.id)
    logger.info(
        f"🚀 Employee upload queued for role assignment: session={session.id}, "
        f"rows={len(rows)}, skipped={skipped}"
    )
    message = f"{len(rows)} employees uploaded, role assignment started"
    if skipped:
        message += f" ({skipped} rows skipped)"
    return SessionAcceptedResponse(
        session_id=session.id,
        status=session.status,
        total_rows=session.total_rows,
        message=message,
    )


@router.post("/upload", response_model=SessionAcceptedResponse)
async def upload_employees(
    session_name: str = Form(...),
    files: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_current_user),
    _llm=Depends(require_llm_config),
):
    """
    Upload employee spreadsheets and start AI role assignment.

    Rows without a position, or without both a name and an employee number,
    are skipped.
    """
    sheets = await read_uploaded_sheets(files)
    records = [record for sheet in sheets for record in sheet.records()]
    file_names = list(dict.fromkeys(s.file_name for s in sheets))
    return _import_and_queue(db, session_name, file_names, records, user_id)


@router.post("/upload/json", response_model=SessionAcceptedResponse)
def upload_employees_json(
    request: EmployeeUploadRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_current_user),
    _llm=Depends(require_llm_config),
):
    return _import_and_queue(
        db, request.session_name, [request.file_name], request.employees, user_id
    )


@router.post("/assign-roles", response_model=SessionAcceptedResponse)
def assign_roles(
    request: RoleAssignmentRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_current_user),
    _llm=Depends(require_llm_config),
):
    """
    Queue AI role assignment.

    With ``session_id`` the unassigned employees of that upload session are
    processed. With ``employee_ids`` a new session is created to track the run.
    """
    store = SessionStore(db)
    if request.session_id:
        session = store.read(request.session_id)
        if session.status_enum.is_terminal:
            raise InvalidTransitionError(f"Session {session.id} is already '{session.status}'")
    elif request.employee_ids:
        found = db.query(Employee).filter(Employee.id.in_(request.employee_ids)).count()
        if not found:
            raise ValidationError("None of the given employee ids exist")
        session = store.create(
            f"Role assignment ({len(request.employee_ids)} employees)",
            ["manual-selection"],
            total_rows=found,
            created_by=user_id,
        )
    else:
        raise ValidationError("Either session_id or employee_ids is required")

    with fail_session_unless_queued(store, session.id, "queue role assignment"):
        run_role_assignment.delay(session.id, request.employee_ids, request.assign_immediately)
    logger.info(f"🚀 Role assignment queued for session {session.id}")
    return SessionAcceptedResponse(
        session_id=session.id,
        status=session.status,
        total_rows=session.total_rows,
        message="Role assignment started",
    )


@router.get("", response_model=EmployeeListResponse)
def list_employees(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    role_assignment_status: Optional[RoleAssignmentStatus] = Query(
        None, description="Filter by role assignment status"
    ),
    upload_session_id: Optional[str] = Query(None, description="Filter by upload session"),
    db: Session = Depends(get_db),
):
    query = db.query(Employee)
    if role_assignment_status:
        query = query.filter(Employee.role_assignment_status == role_assignment_status.value)
    if upload_session_id:
        query = query.filter(Employee.upload_session_id == upload_session_id)

    total = query.count()
    offset = (page - 1) * page_size
    items = (
        query.order_by(Employee.created_at.desc(), Employee.employee_number)
        .offset(offset)
        .limit(page_size)
        .all()
    )
    pages = math.ceil(total / page_size) if total > 0 else 1

    return EmployeeListResponse(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        pages=pages,
    )
