"""Pipelines: per-record strategies plugged into the batch processor.

Each ``*_for_session`` coroutine loads what its run needs, then hands the
batch processor one async operation per record. Anything that goes wrong
before the batches start marks the session failed and propagates.
"""
import logging
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from xlsmart.config import Settings, get_settings
from xlsmart.exceptions import ValidationError, XLSmartError
from xlsmart.models.employee import Employee
from xlsmart.models.job_description import JobDescription
from xlsmart.models.role_mapping import RoleMapping
from xlsmart.models.skill_assessment import SkillAssessment
from xlsmart.models.standard_role import StandardRole
from xlsmart.models.upload_session import SessionStatus, UploadSession
from xlsmart.services.batch_processor import BatchConfig, BatchProcessor, BatchResult
from xlsmart.services.classifier import Matched, RoleCandidate, RoleClassifier
from xlsmart.services.generators import RoleStandardizer, SkillsAssessor
from xlsmart.services.llm_client import LLMClient, LLMConfig
from xlsmart.services.session_store import Publisher, SessionStore
from xlsmart.services.spreadsheet_ingestor import SheetData, role_rows_from_sheets

logger = logging.getLogger(__name__)

ASSESSMENT_TYPES = ("company", "department", "role", "all")

# Confidence floor for a classifier-backed mapping
MATCHED_CONFIDENCE_FLOOR = 0.6
MANUAL_REVIEW_THRESHOLD = 80.0

_COMMON_ROLE_KEYWORDS = (
    "engineer", "manager", "analyst", "specialist", "coordinator", "lead", "senior", "junior",
)


def title_similarity(a: str, b: str) -> float:
    """Word-overlap similarity between two role titles, in [0, 1]."""
    left = (a or "").lower().strip()
    right = (b or "").lower().strip()
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0

    left_words = re.split(r"\s+", left)
    right_words = re.split(r"\s+", right)
    shared = sum(1 for word in left_words if word in right_words)
    word_score = shared / max(len(left_words), len(right_words))

    substring_bonus = 0.2 if (left in right or right in left) else 0.0
    keyword_hits = sum(1 for k in _COMMON_ROLE_KEYWORDS if k in left and k in right)
    keyword_bonus = keyword_hits / len(_COMMON_ROLE_KEYWORDS) * 0.3

    return min(word_score + substring_bonus + keyword_bonus, 0.95)


def active_role_candidates(db: Session) -> List[RoleCandidate]:
    roles = (
        db.query(StandardRole)
        .filter(StandardRole.is_active.is_(True))
        .order_by(StandardRole.role_title)
        .all()
    )
    return [RoleCandidate.from_role(role) for role in roles]


def import_employees(
    db: Session,
    session: UploadSession,
    rows: Iterable[Dict[str, Any]],
    uploaded_by: Optional[str] = None,
) -> List[Employee]:
    """Insert normalized employee rows for ``session``."""
    employees = [
        Employee(**row, upload_session_id=session.id, uploaded_by=uploaded_by)
        for row in rows
    ]
    db.add_all(employees)
    db.commit()
    logger.info(f"Imported {len(employees)} employees into session {session.id}")
    return employees


def discard_session_employees(db: Session, session_id: str) -> int:
    """Delete the employees imported for a session whose run never started."""
    db.rollback()
    deleted = (
        db.query(Employee)
        .filter(Employee.upload_session_id == session_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info(f"🧹 Discarded {deleted} employees imported into session {session_id}")
    return deleted


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


@contextmanager
def _fail_session_on_error(store: SessionStore, session_id: str):
    try:
        yield
    except XLSmartError as e:
        store.fail(session_id, e.message)
        raise
    except Exception as e:
        logger.error(f"Preparing session {session_id} failed: {e}", exc_info=True)
        store.fail(session_id, str(e))
        raise


def _build_processor(store: SessionStore, settings: Settings) -> BatchProcessor:
    return BatchProcessor(store, BatchConfig.from_settings(settings))


def _build_llm(settings: Settings, llm_client: Optional[LLMClient]) -> LLMClient:
    return llm_client or LLMClient(LLMConfig.from_settings(settings))


async def assign_roles_for_session(
    db: Session,
    session_id: str,
    *,
    employee_ids: Optional[Sequence[str]] = None,
    assign_immediately: bool = True,
    settings: Optional[Settings] = None,
    llm_client: Optional[LLMClient] = None,
    publisher: Optional[Publisher] = None,
) -> BatchResult:
    """
    Match every unassigned employee of a session (or ``employee_ids``) to a standard role.

    A match is assigned directly, or only suggested when ``assign_immediately``
    is False. A non-match marks the employee ``ai_no_match``.
    """
    settings = settings or get_settings()
    store = SessionStore(db, publisher)

    with _fail_session_on_error(store, session_id):
        session = store.read(session_id)
        llm = _build_llm(settings, llm_client)

        query = db.query(Employee).filter(
            Employee.standard_role_id.is_(None),
            Employee.is_active.is_(True),
        )
        if employee_ids:
            query = query.filter(Employee.id.in_(list(employee_ids)))
        else:
            query = query.filter(Employee.upload_session_id == session.id)
        employees = query.order_by(Employee.created_at, Employee.employee_number).all()

        candidates = active_role_candidates(db)
        if not candidates:
            raise ValidationError("No standard roles available for assignment")
        logger.info(
            f"Session {session_id}: {len(employees)} unassigned employees, "
            f"{len(candidates)} standard roles"
        )

    classifier = RoleClassifier(
        llm,
        temperature=settings.classifier_temperature,
        max_tokens=settings.classifier_max_tokens,
    )
    assigned_by = session.created_by

    async def assign(employee: Employee) -> bool:
        result = await classifier.classify_employee(employee, candidates)
        if isinstance(result, Matched):
            if assign_immediately:
                employee.assign_role(result.role_id, assigned_by=assigned_by)
            else:
                employee.suggest_role(result.role_id)
        else:
            employee.mark_no_match()
        _commit(db)
        return isinstance(result, Matched)

    return await _build_processor(store, settings).run(
        session_id,
        employees,
        assign,
        running_status=SessionStatus.ASSIGNING_ROLES,
        final_statuses=(SessionStatus.ROLES_ASSIGNED, SessionStatus.COMPLETED),
        counter_name="assigned",
        describe=lambda e: e.full_name or e.employee_number,
        extra_progress={"assign_immediately": assign_immediately},
    )


async def standardize_roles_for_session(
    db: Session,
    session_id: str,
    *,
    settings: Optional[Settings] = None,
    llm_client: Optional[LLMClient] = None,
    publisher: Optional[Publisher] = None,
) -> BatchResult:
    """
    Standardize the role catalog uploaded with a session.

    One model call proposes standard roles the catalog needs; existing titles
    are reused. Every uploaded role row is then classified against all active
    standard roles and recorded as a ``RoleMapping``.
    """
    settings = settings or get_settings()
    store = SessionStore(db, publisher)

    with _fail_session_on_error(store, session_id):
        session = store.read(session_id)
        llm = _build_llm(settings, llm_client)

        sheets = [SheetData.from_dict(s) for s in (session.source_data or {}).get("sheets", [])]
        role_rows = role_rows_from_sheets(sheets)
        if not role_rows:
            raise ValidationError(
                f"No role data found for session {session_id}. "
                "Please ensure data was uploaded correctly."
            )

        store.update_status(session_id, SessionStatus.STANDARDIZING)
        existing = active_role_candidates(db)
        standardizer = RoleStandardizer(
            llm,
            temperature=settings.generation_temperature,
            max_tokens=settings.generation_max_tokens,
        )
        proposals = await standardizer.propose(role_rows, existing)
        created = _create_standard_roles(db, proposals, existing, session.created_by)
        candidates = active_role_candidates(db)

    classifier = RoleClassifier(
        llm,
        temperature=settings.classifier_temperature,
        max_tokens=settings.classifier_max_tokens,
    )
    by_id = {c.id: c for c in candidates}

    async def map_role(row: Dict[str, Any]) -> bool:
        result = await classifier.classify_role(row, candidates)
        mapping = RoleMapping(
            upload_session_id=session_id,
            original_role_title=row["role_title"],
            original_department=row.get("department"),
            original_level=row.get("seniority_band"),
            source_file=row.get("source_file"),
        )
        if isinstance(result, Matched):
            role = by_id[result.role_id]
            similarity = title_similarity(row["role_title"], role.role_title)
            confidence = round(max(similarity, MATCHED_CONFIDENCE_FLOOR) * 100, 1)
            mapping.standard_role_id = role.id
            mapping.standardized_role_title = role.role_title
            mapping.standardized_department = role.department
            mapping.standardized_level = role.role_level
            mapping.job_family = role.job_family
            mapping.mapping_confidence = confidence
            mapping.mapping_status = "auto_mapped"
            mapping.requires_manual_review = confidence < MANUAL_REVIEW_THRESHOLD
        else:
            mapping.mapping_confidence = 0.0
            mapping.mapping_status = "manual_review"
            mapping.requires_manual_review = True
        db.add(mapping)
        _commit(db)
        return isinstance(result, Matched)

    return await _build_processor(store, settings).run(
        session_id,
        role_rows,
        map_role,
        running_status=SessionStatus.STANDARDIZING,
        counter_name="assigned",
        describe=lambda row: row["role_title"],
        extra_progress={
            "standard_roles_created": len(created),
            "created_roles": [
                {"id": r.id, "title": r.role_title, "department": r.department,
                 "level": r.role_level, "family": r.job_family}
                for r in created
            ],
        },
    )


def _create_standard_roles(
    db: Session,
    proposals: Sequence[Dict[str, Any]],
    existing: Sequence[RoleCandidate],
    created_by: Optional[str],
) -> List[StandardRole]:
    seen = {c.role_title.strip().lower() for c in existing}
    created = []
    for proposal in proposals:
        key = proposal["role_title"].strip().lower()
        if key in seen:
            logger.info(f"Standard role already exists, reusing: {proposal['role_title']}")
            continue
        seen.add(key)
        role = StandardRole(**proposal, created_by=created_by)
        db.add(role)
        created.append(role)
    db.commit()
    logger.info(f"Created {len(created)} standard roles")
    return created


def select_assessment_employees(
    db: Session,
    assessment_type: str,
    identifier: Optional[str] = None,
    employee_ids: Optional[Sequence[str]] = None,
) -> List[Employee]:
    query = db.query(Employee).filter(Employee.is_active.is_(True))
    if employee_ids:
        query = query.filter(Employee.id.in_(list(employee_ids)))
    elif assessment_type == "company":
        query = query.filter(Employee.source_company == identifier)
    elif assessment_type == "department":
        query = query.filter(Employee.current_department == identifier)
    elif assessment_type == "role":
        query = query.filter(Employee.current_position == identifier)
    elif assessment_type != "all":
        raise ValidationError(f"Invalid assessment type: {assessment_type}")
    return query.order_by(Employee.created_at, Employee.employee_number).all()


async def assess_skills_for_session(
    db: Session,
    session_id: str,
    *,
    settings: Optional[Settings] = None,
    llm_client: Optional[LLMClient] = None,
    publisher: Optional[Publisher] = None,
) -> BatchResult:
    """Run a skills assessment for the employees selected by the session's parameters."""
    settings = settings or get_settings()
    store = SessionStore(db, publisher)

    with _fail_session_on_error(store, session_id):
        session = store.read(session_id)
        llm = _build_llm(settings, llm_client)

        params = session.source_data or {}
        assessment_type = params.get("assessment_type", "all")
        identifier = params.get("identifier")
        employees = select_assessment_employees(
            db, assessment_type, identifier, params.get("employee_ids")
        )
        if not employees:
            raise ValidationError(f"No employees found for {assessment_type}: {identifier}")

        target = None
        target_id = params.get("target_job_description_id")
        if target_id:
            target = db.query(JobDescription).filter(JobDescription.id == target_id).first()
            if target is None:
                raise ValidationError(f"Target job description {target_id} not found")

    assessed_by = session.created_by
    assessor = SkillsAssessor(
        llm,
        temperature=settings.generation_temperature,
        max_tokens=min(settings.generation_max_tokens, 1000),
    )

    async def assess(employee: Employee) -> bool:
        assessment = await assessor.assess(employee, target)
        db.add(SkillAssessment(
            employee_id=employee.id,
            job_description_id=target_id,
            upload_session_id=session_id,
            overall_match_percentage=assessment["overall_match"],
            skill_gaps=assessment["skill_gaps"],
            recommendations=assessment["recommendations"],
            next_role_recommendations=assessment["next_roles"],
            assessed_by=assessed_by,
        ))
        _commit(db)
        return True

    return await _build_processor(store, settings).run(
        session_id,
        employees,
        assess,
        running_status=SessionStatus.ANALYZING,
        failure_status=SessionStatus.ERROR,
        counter_name="completed",
        describe=lambda e: e.full_name or e.employee_number,
        extra_progress={"assessment_type": assessment_type, "identifier": identifier},
    )
