"""AI role classifier.

The LLM is treated as an untrusted text generator: whatever it returns is
checked against the candidate ids supplied for that call before it can be
used as a role assignment.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from xlsmart.exceptions import LLMResponseError
from xlsmart.services.llm_client import LLMClient, extract_json_object, strip_code_fences

logger = logging.getLogger(__name__)

NO_MATCH = "NO_MATCH"

_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)

EMPLOYEE_SYSTEM_PROMPT = (
    "You are an expert HR system that assigns employees to standard roles. "
    "Always return only a valid role UUID from the provided list, or NO_MATCH."
)

ROLE_SYSTEM_PROMPT = (
    "You are an expert in telecommunications role standardization. "
    "Always return only a valid standard role UUID from the provided list, or NO_MATCH."
)


@dataclass(frozen=True)
class RoleCandidate:
    """Snapshot of a standard role offered to the classifier."""

    id: str
    role_title: str
    department: str = ""
    job_family: str = ""
    role_level: str = ""
    role_category: str = ""
    description: str = ""
    required_skills: List[str] = field(default_factory=list)

    @classmethod
    def from_role(cls, role: Any) -> "RoleCandidate":
        return cls(
            id=str(role.id),
            role_title=role.role_title or "",
            department=role.department or "",
            job_family=role.job_family or "",
            role_level=role.role_level or "",
            role_category=role.role_category or "",
            description=role.standard_description or "",
            required_skills=list(role.required_skills or []),
        )


@dataclass(frozen=True)
class Matched:
    role_id: str


@dataclass(frozen=True)
class NoMatch:
    reason: str = "no match"


ClassificationResult = Union[Matched, NoMatch]


def is_valid_identifier(value: str) -> bool:
    return bool(_UUID_RE.match(value or ""))


def parse_selection(content: Optional[str], candidate_ids: Sequence[str]) -> ClassificationResult:
    """
    Turn raw model output into a validated classification.

    Accepts a bare id, a quoted id, or a JSON object carrying ``role_id``,
    ``standard_role_id`` or ``id``. Anything that is not exactly one of
    ``candidate_ids`` becomes ``NoMatch``.
    """
    text = strip_code_fences(content or "")
    if not text:
        return NoMatch("empty response")

    if text.startswith("{"):
        try:
            obj = extract_json_object(text)
        except LLMResponseError:
            return NoMatch("malformed JSON response")
        value = obj.get("role_id") or obj.get("standard_role_id") or obj.get("id")
        text = str(value).strip() if value is not None else ""

    text = text.strip().strip("\"'`").strip()
    if not text or text.upper() == NO_MATCH:
        return NoMatch("model returned NO_MATCH")
    if not is_valid_identifier(text):
        return NoMatch(f"not an identifier: {text[:60]!r}")
    if text not in set(candidate_ids):
        return NoMatch(f"identifier not among candidates: {text}")
    return Matched(text)


def _join(values: Any) -> str:
    if isinstance(values, (list, tuple)):
        return ", ".join(str(v) for v in values if v not in (None, ""))
    return str(values or "")


def format_candidates(candidates: Sequence[RoleCandidate]) -> str:
    return "\n\n".join(
        f"- ID: {c.id}\n"
        f"  Title: {c.role_title}\n"
        f"  Family: {c.job_family}\n"
        f"  Level: {c.role_level}\n"
        f"  Category: {c.role_category}\n"
        f"  Department: {c.department}\n"
        f"  Description: {c.description or 'N/A'}"
        for c in candidates
    )


def build_employee_prompt(employee: Any, candidates: Sequence[RoleCandidate]) -> str:
    return f"""Analyze this employee profile and find the BEST MATCHING standard role from the available options.

Employee Profile:
- Employee ID: {employee.employee_number}
- Name: {employee.first_name} {employee.last_name}
- Current Position: {employee.current_position}
- Department: {employee.current_department or 'N/A'}
- Level: {employee.current_level or 'N/A'}
- Experience: {employee.years_of_experience or 0} years
- Skills: {_join(employee.skills)}
- Certifications: {_join(employee.certifications)}
- Performance Rating: {employee.performance_rating or 'N/A'}

Available Standard Roles (YOU MUST CHOOSE FROM THESE):
{format_candidates(candidates)}

INSTRUCTIONS:
- Select ONE of the provided standard role IDs
- Consider skills, experience, current position and department
- Return ONLY the UUID of the selected role
- If truly no role fits, return "{NO_MATCH}"

Return only the UUID:"""


def build_role_prompt(role_row: Dict[str, Any], candidates: Sequence[RoleCandidate]) -> str:
    return f"""Map this role from a source company catalog to the best matching standard role.

Uploaded Role:
- Title: {role_row.get('role_title', '')}
- Department: {role_row.get('department') or 'N/A'}
- Level: {role_row.get('seniority_band') or 'N/A'}
- Source File: {role_row.get('source_file') or 'N/A'}

Available Standard Roles (YOU MUST CHOOSE FROM THESE):
{format_candidates(candidates)}

Return ONLY the UUID of the best matching standard role, or "{NO_MATCH}" if none fits:"""


class RoleClassifier:
    """Matches employees and uploaded roles to standard roles via the LLM."""

    def __init__(self, llm: LLMClient, temperature: float = 0.1, max_tokens: int = 100):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def classify_employee(
        self, employee: Any, candidates: Sequence[RoleCandidate]
    ) -> ClassificationResult:
        prompt = build_employee_prompt(employee, candidates)
        result = await self._classify(EMPLOYEE_SYSTEM_PROMPT, prompt, candidates)
        logger.info(f"Employee {employee.employee_number}: {result}")
        return result

    async def classify_role(
        self, role_row: Dict[str, Any], candidates: Sequence[RoleCandidate]
    ) -> ClassificationResult:
        prompt = build_role_prompt(role_row, candidates)
        result = await self._classify(ROLE_SYSTEM_PROMPT, prompt, candidates)
        logger.info(f"Role '{role_row.get('role_title')}': {result}")
        return result

    async def _classify(
        self, system_prompt: str, prompt: str, candidates: Sequence[RoleCandidate]
    ) -> ClassificationResult:
        if not candidates:
            return NoMatch("no candidate roles")
        try:
            content = await self.llm.chat(
                system_prompt,
                prompt,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except LLMResponseError as e:
            # Malformed body: the model gave no usable answer
            logger.warning(f"Unusable classifier response: {e}")
            return NoMatch(str(e))
        return parse_selection(content, [c.id for c in candidates])
