"""Tests for the AI role classifier."""
import asyncio
import json
import uuid
from collections import Counter
from types import SimpleNamespace

import httpx
import pytest

from conftest import chat_response, make_llm, prompt_of
from xlsmart.exceptions import LLMError
from xlsmart.services.classifier import (
    Matched,
    NoMatch,
    RoleCandidate,
    RoleClassifier,
    parse_selection,
)

ROLE_A = str(uuid.uuid4())
ROLE_B = str(uuid.uuid4())
CANDIDATES = [
    RoleCandidate(id=ROLE_A, role_title="Network Engineer", department="Network Operations"),
    RoleCandidate(id=ROLE_B, role_title="Data Analyst", department="Business Intelligence"),
]


def employee(position="RAN Engineer"):
    return SimpleNamespace(
        employee_number="EMP0001",
        first_name="Dewi",
        last_name="Lestari",
        current_position=position,
        current_department="Network",
        current_level="Mid",
        years_of_experience=5,
        skills=["LTE", "5G"],
        certifications=[],
        performance_rating=4.2,
    )


def classify(content):
    llm = make_llm(lambda request: chat_response(content))
    return asyncio.run(RoleClassifier(llm).classify_employee(employee(), CANDIDATES))


def test_exact_candidate_id_matches():
    assert classify(ROLE_A) == Matched(ROLE_A)


def test_quoted_and_json_replies_match():
    assert classify(f'"{ROLE_B}"') == Matched(ROLE_B)
    assert classify(f'{{"role_id": "{ROLE_B}"}}') == Matched(ROLE_B)
    assert classify(f'```json\n{{"standard_role_id": "{ROLE_A}"}}\n```') == Matched(ROLE_A)


def test_no_match_reply():
    assert isinstance(classify("NO_MATCH"), NoMatch)


def test_unknown_uuid_is_no_match():
    """A well-formed id that was not offered is never accepted."""
    result = classify(str(uuid.uuid4()))
    assert isinstance(result, NoMatch)
    assert "not among candidates" in result.reason


@pytest.mark.parametrize(
    "content",
    ["", "The best role is Network Engineer", "{not json", f"{ROLE_A} or {ROLE_B}"],
)
def test_unusable_replies_are_no_match(content):
    assert isinstance(parse_selection(content, [ROLE_A, ROLE_B]), NoMatch)


def test_malformed_body_is_no_match():
    llm = make_llm(lambda request: httpx.Response(200, json={"choices": []}))
    result = asyncio.run(RoleClassifier(llm).classify_employee(employee(), CANDIDATES))
    assert isinstance(result, NoMatch)


def test_http_failure_propagates():
    llm = make_llm(lambda request: httpx.Response(503, text="upstream unavailable"))
    with pytest.raises(LLMError):
        asyncio.run(RoleClassifier(llm).classify_employee(employee(), CANDIDATES))


def test_no_candidates_skips_the_call():
    def handler(request):
        raise AssertionError("no request expected")

    result = asyncio.run(RoleClassifier(make_llm(handler)).classify_employee(employee(), []))
    assert isinstance(result, NoMatch)


def test_request_uses_low_temperature_and_lists_candidates():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        seen["prompt"] = prompt_of(request)
        return chat_response(ROLE_A)

    asyncio.run(RoleClassifier(make_llm(handler)).classify_employee(employee(), CANDIDATES))

    assert seen["temperature"] == 0.1
    assert seen["max_tokens"] == 100
    assert ROLE_A in seen["prompt"] and ROLE_B in seen["prompt"]
    assert "RAN Engineer" in seen["prompt"]


def test_repeated_classification_converges():
    """Majority vote over repeated low-temperature runs settles on one role."""
    replies = iter([ROLE_A, ROLE_A, "NO_MATCH", ROLE_A, ROLE_B])
    llm = make_llm(lambda request: chat_response(next(replies)))
    classifier = RoleClassifier(llm)

    async def vote():
        return [await classifier.classify_employee(employee(), CANDIDATES) for _ in range(5)]

    votes = Counter(r.role_id for r in asyncio.run(vote()) if isinstance(r, Matched))
    assert votes.most_common(1)[0] == (ROLE_A, 3)


def test_classify_role_row():
    llm = make_llm(lambda request: chat_response(ROLE_B))
    row = {"role_title": "BI Analyst", "department": "Analytics", "seniority_band": "Mid"}
    assert asyncio.run(RoleClassifier(llm).classify_role(row, CANDIDATES)) == Matched(ROLE_B)
