"""End-to-end pipeline tests against SQLite with a scripted LLM."""
import asyncio
import json
import re
import uuid

import httpx
import pytest

from conftest import add_employees, chat_response, make_llm, prompt_of
from xlsmart.config import Settings
from xlsmart.exceptions import ConfigurationError, LLMResponseError, ValidationError
from xlsmart.models import (
    Employee,
    JobDescription,
    RoleMapping,
    SessionStatus,
    SkillAssessment,
    StandardRole,
)
from xlsmart.services.pipelines import (
    assess_skills_for_session,
    assign_roles_for_session,
    standardize_roles_for_session,
    title_similarity,
)
from xlsmart.services.session_store import SessionStore


def candidate_ids(prompt):
    """Map candidate title -> id as listed in a classifier prompt."""
    return {title.strip(): rid for rid, title in re.findall(r"- ID: (\S+)\n\s+Title: (.+)", prompt)}


def employee_classifier(choices):
    """Answer employee prompts by current position: a role title, 'NO_MATCH', 'UNKNOWN' or 'FAIL'."""

    def handler(request):
        prompt = prompt_of(request)
        position = re.search(r"- Current Position: (.+)", prompt).group(1).strip()
        choice = choices[position]
        if choice == "FAIL":
            return httpx.Response(500, text="proxy error")
        if choice == "NO_MATCH":
            return chat_response("NO_MATCH")
        if choice == "UNKNOWN":
            return chat_response(str(uuid.uuid4()))
        return chat_response(candidate_ids(prompt)[choice])

    return make_llm(handler)


def test_title_similarity():
    assert title_similarity("Network Engineer", "network engineer") == 1.0
    assert title_similarity("", "Engineer") == 0.0
    assert 0.85 < title_similarity("Senior Network Engineer", "Network Engineer") < 0.95
    assert title_similarity("Barista", "Data Analyst") == 0.0


def test_assign_roles_only_writes_candidate_ids(db, settings, standard_roles):
    """Matches are assigned, everything else ends ai_no_match with no role."""
    session = SessionStore(db).create("Employees", ["employees.xlsx"], 5)
    add_employees(
        db,
        ["Network Engineer", "Data Analyst", "Chef", "Ghost Writer", "RF Engineer"],
        upload_session_id=session.id,
    )
    llm = employee_classifier({
        "Network Engineer": "Network Engineer",
        "Data Analyst": "Data Analyst",
        "Chef": "NO_MATCH",
        "Ghost Writer": "UNKNOWN",
        "RF Engineer": "Network Engineer",
    })

    result = asyncio.run(
        assign_roles_for_session(db, session.id, settings=settings, llm_client=llm)
    )

    role_ids = {r.id for r in standard_roles}
    by_position = {e.current_position: e for e in db.query(Employee).all()}
    for position in ("Network Engineer", "Data Analyst", "RF Engineer"):
        employee = by_position[position]
        assert employee.role_assignment_status == "assigned"
        assert employee.standard_role_id in role_ids
    for position in ("Chef", "Ghost Writer"):
        employee = by_position[position]
        assert employee.role_assignment_status == "ai_no_match"
        assert employee.standard_role_id is None
        assert employee.ai_suggested_role_id is None

    session = SessionStore(db).read(session.id)
    assert session.status == "completed"
    assert session.progress["assigned"] == 3
    assert session.progress["processed"] == 5
    assert session.progress["errors"] == 0
    assert result.to_dict()["assigned"] == 3


def test_assign_roles_suggest_only(db, settings, standard_roles):
    session = SessionStore(db).create("Employees", ["employees.xlsx"], 1)
    add_employees(db, ["Data Analyst"], upload_session_id=session.id)
    llm = employee_classifier({"Data Analyst": "Data Analyst"})

    asyncio.run(assign_roles_for_session(
        db, session.id, assign_immediately=False, settings=settings, llm_client=llm
    ))

    employee = db.query(Employee).one()
    assert employee.role_assignment_status == "ai_suggested"
    assert employee.standard_role_id is None
    assert employee.ai_suggested_role_id == standard_roles[1].id


def test_assign_roles_counts_llm_failures(db, settings, standard_roles):
    """A proxy error fails one record and leaves that employee untouched."""
    session = SessionStore(db).create("Employees", ["employees.xlsx"], 2)
    add_employees(db, ["Network Engineer", "Chef"], upload_session_id=session.id)
    llm = employee_classifier({"Network Engineer": "Network Engineer", "Chef": "FAIL"})

    result = asyncio.run(
        assign_roles_for_session(db, session.id, settings=settings, llm_client=llm)
    )

    assert result.errors == 1
    assert result.status == "completed"
    chef = db.query(Employee).filter(Employee.current_position == "Chef").one()
    assert chef.role_assignment_status == "pending"


def test_assign_roles_by_employee_ids_skips_assigned(db, settings, standard_roles):
    store = SessionStore(db)
    session = store.create("Manual", ["manual-selection"], 2)
    first, second, other = add_employees(db, ["Network Engineer", "Data Analyst", "Data Analyst"])
    first.assign_role(standard_roles[0].id)
    db.commit()
    llm = employee_classifier({"Data Analyst": "Data Analyst"})

    result = asyncio.run(assign_roles_for_session(
        db, session.id, employee_ids=[first.id, second.id], settings=settings, llm_client=llm
    ))

    assert result.total == 1
    db.refresh(other)
    assert other.role_assignment_status == "pending"


def test_assign_roles_skips_inactive_employees(db, settings, standard_roles):
    session = SessionStore(db).create("Employees", ["employees.xlsx"], 2)
    active, departed = add_employees(
        db, ["Network Engineer", "Data Analyst"], upload_session_id=session.id
    )
    departed.is_active = False
    db.commit()
    llm = employee_classifier({"Network Engineer": "Network Engineer"})

    result = asyncio.run(
        assign_roles_for_session(db, session.id, settings=settings, llm_client=llm)
    )

    assert result.total == 1
    db.refresh(active)
    db.refresh(departed)
    assert active.role_assignment_status == "assigned"
    assert departed.role_assignment_status == "pending"
    assert departed.standard_role_id is None


def test_assign_roles_without_standard_roles_fails_session(db, settings):
    session = SessionStore(db).create("Employees", ["employees.xlsx"], 1)
    add_employees(db, ["Network Engineer"], upload_session_id=session.id)
    llm = employee_classifier({})

    with pytest.raises(ValidationError):
        asyncio.run(assign_roles_for_session(db, session.id, settings=settings, llm_client=llm))

    session = SessionStore(db).read(session.id)
    assert session.status == "failed"
    assert "No standard roles" in session.error_message


def test_missing_api_key_fails_session(db, standard_roles):
    settings = Settings(database_url="sqlite://", litellm_api_key=None)
    session = SessionStore(db).create("Employees", ["employees.xlsx"], 1)

    with pytest.raises(ConfigurationError):
        asyncio.run(assign_roles_for_session(db, session.id, settings=settings))

    assert SessionStore(db).read(session.id).status == "failed"


def role_session(db, rows):
    return SessionStore(db).create(
        "Role catalog",
        ["catalog.xlsx"],
        len(rows),
        status=SessionStatus.ANALYZING,
        source_data={"sheets": [{
            "file_name": "catalog.xlsx",
            "sheet_name": "Roles",
            "headers": ["Title", "Department", "Level"],
            "rows": rows,
        }]},
    )


def role_llm(proposals, matches):
    """Propose ``proposals``; classify uploaded titles via ``matches`` (title -> candidate title)."""

    def handler(request):
        prompt = prompt_of(request)
        if "newStandardRoles" in prompt:
            return chat_response(json.dumps({"analysis": "ok", "newStandardRoles": proposals}))
        uploaded = re.search(r"Uploaded Role:\n- Title: (.+)", prompt).group(1).strip()
        target = matches.get(uploaded)
        if target is None:
            return chat_response("NO_MATCH")
        return chat_response(candidate_ids(prompt)[target])

    return make_llm(handler)


def test_standardize_roles_creates_roles_and_mappings(db, settings, standard_roles):
    session = role_session(db, [
        ["Network Engineer", "Network Operations", "Mid"],
        ["Senior Network Engineer", "Network", "Senior"],
        ["Cloud Architect", "IT", "Senior"],
        ["Barista", "F&B", None],
    ])
    llm = role_llm(
        proposals=[
            {"role_title": "Cloud Architect", "job_family": "Technology", "role_level": "Senior",
             "department": "IT Infrastructure", "required_skills": "AWS, Kubernetes"},
            {"role_title": "network engineer", "job_family": "Engineering"},
        ],
        matches={
            "Network Engineer": "Network Engineer",
            "Senior Network Engineer": "Network Engineer",
            "Cloud Architect": "Cloud Architect",
        },
    )

    result = asyncio.run(
        standardize_roles_for_session(db, session.id, settings=settings, llm_client=llm)
    )

    titles = sorted(r.role_title for r in db.query(StandardRole).all())
    assert titles == ["Cloud Architect", "Data Analyst", "Network Engineer"]
    cloud = db.query(StandardRole).filter(StandardRole.role_title == "Cloud Architect").one()
    assert cloud.required_skills == ["AWS", "Kubernetes"]

    mappings = {m.original_role_title: m for m in db.query(RoleMapping).all()}
    assert len(mappings) == 4
    assert mappings["Network Engineer"].mapping_confidence == 100.0
    assert mappings["Network Engineer"].requires_manual_review is False
    assert mappings["Senior Network Engineer"].standard_role_id == standard_roles[0].id
    assert mappings["Senior Network Engineer"].mapping_status == "auto_mapped"
    assert mappings["Cloud Architect"].standard_role_id == cloud.id
    assert mappings["Barista"].standard_role_id is None
    assert mappings["Barista"].mapping_status == "manual_review"
    assert mappings["Barista"].requires_manual_review is True

    session = SessionStore(db).read(session.id)
    assert session.status == "completed"
    assert session.progress["assigned"] == 3
    assert session.progress["standard_roles_created"] == 1
    assert result.processed == 4


def test_standardize_roles_without_rows_fails_session(db, settings):
    session = role_session(db, [])
    llm = role_llm([], {})

    with pytest.raises(ValidationError):
        asyncio.run(standardize_roles_for_session(db, session.id, settings=settings, llm_client=llm))

    assert SessionStore(db).read(session.id).status == "failed"


def test_standardize_roles_bad_proposal_fails_session(db, settings, standard_roles):
    session = role_session(db, [["Network Engineer", "Network", "Mid"]])
    llm = make_llm(lambda request: chat_response('{"newStandardRoles": "none"}'))

    with pytest.raises(LLMResponseError):
        asyncio.run(standardize_roles_for_session(db, session.id, settings=settings, llm_client=llm))

    session = SessionStore(db).read(session.id)
    assert session.status == "failed"
    assert db.query(RoleMapping).count() == 0


def assessment_session(db, **params):
    return SessionStore(db).create(
        "Bulk assessment",
        ["department:Network"],
        0,
        status=SessionStatus.ANALYZING,
        source_data=params,
    )


def test_assess_skills_counts_malformed_replies_as_errors(db, settings):
    add_employees(db, ["Network Engineer", "RF Engineer"], current_department="Network")
    add_employees(db, ["Accountant"], current_department="Finance")
    session = assessment_session(db, assessment_type="department", identifier="Network")

    def handler(request):
        if "RF Engineer" in prompt_of(request):
            return chat_response("I cannot assess this employee.")
        return chat_response(json.dumps({
            "overallMatch": 140,
            "skillGaps": [{"skill": "5G", "gap": "moderate"}],
            "recommendations": "Take the 5G core course",
            "nextRoles": ["Senior Network Engineer"],
        }))

    result = asyncio.run(
        assess_skills_for_session(db, session.id, settings=settings, llm_client=make_llm(handler))
    )

    assert result.errors == 1
    assert result.succeeded == 1
    assessment = db.query(SkillAssessment).one()
    assert assessment.overall_match_percentage == 100.0
    assert assessment.next_role_recommendations == ["Senior Network Engineer"]
    assert assessment.upload_session_id == session.id

    session = SessionStore(db).read(session.id)
    assert session.status == "completed"
    assert session.progress["completed"] == 1
    assert session.progress["total"] == 2


def test_assess_skills_against_target(db, settings):
    target = JobDescription(title="Network Architect", required_skills=["SDN", "5G core"])
    db.add(target)
    db.commit()
    add_employees(db, ["Network Engineer"])
    session = assessment_session(db, assessment_type="all", target_job_description_id=target.id)
    prompts = []

    def handler(request):
        prompts.append(prompt_of(request))
        return chat_response('{"overallMatch": 55}')

    asyncio.run(
        assess_skills_for_session(db, session.id, settings=settings, llm_client=make_llm(handler))
    )

    assert "Target Role: Network Architect" in prompts[0]
    assert db.query(SkillAssessment).one().job_description_id == target.id


def test_assess_skills_with_no_employees_marks_error(db, settings):
    session = assessment_session(db, assessment_type="company", identifier="Nobody Inc")

    with pytest.raises(ValidationError):
        asyncio.run(assess_skills_for_session(
            db, session.id, settings=settings, llm_client=make_llm(lambda r: chat_response("{}"))
        ))

    assert SessionStore(db).read(session.id).status == "failed"
