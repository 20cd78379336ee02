"""Role catalog upload and standardization endpoints."""
import logging
from typing import List, Optional

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
from xlsmart.models.role_mapping import RoleMapping
from xlsmart.models.standard_role import StandardRole
from xlsmart.models.upload_session import SessionStatus
from xlsmart.schemas.role import (
    RoleMappingResponse,
    RoleUploadRequest,
    StandardizeRequest,
    StandardRoleResponse,
)
from xlsmart.schemas.session import SessionAcceptedResponse
from xlsmart.services.session_store import SessionStore
from xlsmart.services.spreadsheet_ingestor import SheetData, role_rows_from_sheets
from xlsmart.tasks.pipeline_tasks import run_role_standardization

router = APIRouter(prefix="/api/roles", tags=["roles"])

logger = logging.getLogger(__name__)


def _create_role_session(
    db: Session,
    session_name: str,
    sheets: List[SheetData],
    created_by: Optional[str],
) -> SessionAcceptedResponse:
    role_rows = role_rows_from_sheets(sheets)
    if not role_rows:
        raise ValidationError("No role rows found: expected a title or position column")

    file_names = list(dict.fromkeys(s.file_name for s in sheets))
    session = SessionStore(db).create(
        session_name,
        file_names,
        total_rows=len(role_rows),
        created_by=created_by,
        status=SessionStatus.ANALYZING,
        source_data={"sheets": [s.to_dict() for s in sheets]},
    )
    logger.info(f"📁 Role upload stored: session={session.id}, rows={len(role_rows)}")
    return SessionAcceptedResponse(
        session_id=session.id,
        status=session.status,
        total_rows=session.total_rows,
        message="Role data uploaded, ready for standardization",
    )


@router.post("/upload", response_model=SessionAcceptedResponse)
async def upload_roles(
    session_name: str = Form(...),
    files: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_current_user),
    _llm=Depends(require_llm_config),
):
    """Upload one or more role catalog spreadsheets (.xlsx, .xls or .csv)."""
    sheets = await read_uploaded_sheets(files)
    return _create_role_session(db, session_name, sheets, user_id)


@router.post("/upload/json", response_model=SessionAcceptedResponse)
def upload_roles_json(
    request: RoleUploadRequest,
    db: Session = Depends(get_db),
    user_id: Optional[str] = Depends(get_current_user),
    _llm=Depends(require_llm_config),
):
    """Upload role sheets already parsed by the client."""
    sheets = [SheetData.from_dict(sheet.model_dump()) for sheet in request.excel_data]
    return _create_role_session(db, request.session_name, sheets, user_id)


@router.post("/standardize", response_model=SessionAcceptedResponse)
def standardize_roles(
    request: StandardizeRequest,
    db: Session = Depends(get_db),
    _llm=Depends(require_llm_config),
):
    """Queue AI standardization of a session's uploaded role catalog."""
    store = SessionStore(db)
    session = store.read(request.session_id)
    if session.status_enum.is_terminal:
        raise InvalidTransitionError(
            f"Session {session.id} is already '{session.status}'"
        )

    with fail_session_unless_queued(store, session.id, "queue role standardization"):
        run_role_standardization.delay(session.id)
    logger.info(f"🚀 Role standardization queued for session {session.id}")
    return SessionAcceptedResponse(
        session_id=session.id,
        status=session.status,
        total_rows=session.total_rows,
        message="Role standardization started",
    )


@router.get("", response_model=List[StandardRoleResponse])
def list_standard_roles(
    include_inactive: bool = Query(False, description="Include deactivated roles"),
    db: Session = Depends(get_db),
):
    query = db.query(StandardRole)
    if not include_inactive:
        query = query.filter(StandardRole.is_active.is_(True))
    return query.order_by(StandardRole.role_title).all()


@router.get("/mappings", response_model=List[RoleMappingResponse])
def list_role_mappings(
    session_id: Optional[str] = Query(None, description="Filter by upload session"),
    requires_review: Optional[bool] = Query(None, description="Filter by manual review flag"),
    db: Session = Depends(get_db),
):
    query = db.query(RoleMapping)
    if session_id:
        query = query.filter(RoleMapping.upload_session_id == session_id)
    if requires_review is not None:
        query = query.filter(RoleMapping.requires_manual_review.is_(requires_review))
    return query.order_by(RoleMapping.created_at, RoleMapping.original_role_title).all()
