"""LLM-backed generators that return structured JSON documents."""
import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from xlsmart.exceptions import LLMResponseError, ValidationError
from xlsmart.services.classifier import RoleCandidate
from xlsmart.services.llm_client import LLMClient, strip_code_fences

logger = logging.getLogger(__name__)

# Role rows sent to the model in the single proposal call
MAX_PROPOSAL_ROWS = 200


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [value]


class RoleStandardizer:
    """Proposes new standard roles for an uploaded role catalog."""

    SYSTEM_PROMPT = (
        "You are an expert HR data analyst specializing in telecommunications role "
        "standardization. Analyze role data carefully and normalize against existing "
        "standards. Always respond with valid JSON."
    )

    def __init__(self, llm: LLMClient, temperature: float = 0.3, max_tokens: int = 4000):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def propose(
        self,
        role_rows: Sequence[Dict[str, Any]],
        existing: Sequence[RoleCandidate],
    ) -> List[Dict[str, Any]]:
        """
        Ask for standard roles covering ``role_rows`` that ``existing`` does not.

        Returns a list of dicts with at least ``role_title``. Proposals without
        a title are dropped.
        """
        sample = [
            {k: row.get(k) for k in ("role_title", "department", "seniority_band")}
            for row in role_rows[:MAX_PROPOSAL_ROWS]
        ]
        existing_summary = [
            {"role_title": c.role_title, "department": c.department, "job_family": c.job_family,
             "role_level": c.role_level}
            for c in existing
        ]
        prompt = f"""Analyze the uploaded role data and normalize it against existing standard roles.

UPLOADED ROLE DATA:
{json.dumps(sample, indent=2, ensure_ascii=False)}

EXISTING STANDARD ROLES:
{json.dumps(existing_summary, indent=2, ensure_ascii=False)}

Only create new standard roles when uploaded roles are genuinely different from the existing ones.
Use consistent naming and telecommunications industry categorization.

Respond with JSON:
{{
  "analysis": "Brief analysis",
  "newStandardRoles": [
    {{
      "role_title": "Network Operations Engineer",
      "job_family": "Engineering",
      "role_level": "Mid",
      "role_category": "Technical",
      "department": "Network Operations",
      "standard_description": "Clear role description",
      "core_responsibilities": ["..."],
      "required_skills": ["..."],
      "keywords": ["..."]
    }}
  ]
}}"""
        result = await self.llm.chat_json(
            self.SYSTEM_PROMPT, prompt, temperature=self.temperature, max_tokens=self.max_tokens
        )
        proposals = result.get("newStandardRoles") or result.get("standardRoles") or []
        if not isinstance(proposals, list):
            raise LLMResponseError("newStandardRoles is not a list")

        roles = []
        for item in proposals:
            if not isinstance(item, dict):
                continue
            title = str(item.get("role_title") or item.get("title") or "").strip()
            if not title:
                continue
            roles.append({
                "role_title": title,
                "job_family": str(item.get("job_family") or item.get("roleFamily") or ""),
                "role_level": str(item.get("role_level") or item.get("seniorityBand") or ""),
                "role_category": str(item.get("role_category") or "Technical"),
                "department": str(item.get("department") or ""),
                "standard_description": item.get("standard_description") or item.get("description"),
                "core_responsibilities": _as_list(item.get("core_responsibilities")),
                "required_skills": _as_list(item.get("required_skills")),
                "keywords": _as_list(item.get("keywords")),
            })
        logger.info(f"Model proposed {len(roles)} new standard roles")
        return roles


class SkillsAssessor:
    """Assesses one employee's skills, optionally against a target job description."""

    SYSTEM_PROMPT = (
        "You are an expert HR analyst specializing in skills assessment and career "
        "development. Always respond with valid JSON."
    )

    def __init__(self, llm: LLMClient, temperature: float = 0.3, max_tokens: int = 1000):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def assess(self, employee: Any, target: Optional[Any] = None) -> Dict[str, Any]:
        profile = (
            f"Employee: {employee.first_name} {employee.last_name}\n"
            f"Current Position: {employee.current_position}\n"
            f"Department: {employee.current_department or 'Not specified'}\n"
            f"Experience: {employee.years_of_experience or 0} years\n"
            f"Skills: {', '.join(map(str, employee.skills or [])) or 'Not specified'}\n"
            f"Certifications: {', '.join(map(str, employee.certifications or [])) or 'Not specified'}"
        )
        if target is not None:
            target_info = (
                f"Target Role: {target.title}\n"
                f"Required Skills: {', '.join(map(str, target.required_skills or [])) or 'Not specified'}\n"
                f"Required Qualifications: "
                f"{', '.join(map(str, target.required_qualifications or [])) or 'Not specified'}\n"
                f"Experience Level: {target.experience_level or 'Not specified'}"
            )
        else:
            target_info = "No specific target role - general assessment"

        prompt = f"""Analyze this employee's skills and provide a detailed assessment.

{profile}

{target_info}

Respond with JSON:
{{
  "overallMatch": 0-100,
  "skillGaps": [{{"skill": "", "currentLevel": "", "requiredLevel": "", "gap": ""}}],
  "recommendations": "actionable development recommendations",
  "nextRoles": ["3-5 suggested career progression roles"]
}}"""
        result = await self.llm.chat_json(
            self.SYSTEM_PROMPT, prompt, temperature=self.temperature, max_tokens=self.max_tokens
        )
        try:
            overall = float(result.get("overallMatch", 0))
        except (TypeError, ValueError) as e:
            raise LLMResponseError("overallMatch is not a number") from e

        return {
            "overall_match": max(0.0, min(100.0, overall)),
            "skill_gaps": [g for g in _as_list(result.get("skillGaps")) if isinstance(g, dict)],
            "recommendations": str(result.get("recommendations") or ""),
            "next_roles": [str(r) for r in _as_list(result.get("nextRoles"))],
        }


class JobDescriptionWriter:
    SYSTEM_PROMPT = (
        "You are an expert HR professional and job description writer for large "
        "telecommunications companies like XLSMART. Always respond with valid JSON."
    )
    UPDATE_SYSTEM_PROMPT = (
        "You are an expert HR professional. Provide clear, concise updates to job "
        "descriptions. Return only the updated content without any metadata or explanations."
    )
    # Free-text edits run warmer than the structured drafts
    UPDATE_TEMPERATURE = 0.7
    UPDATE_MAX_TOKENS = 2000

    def __init__(self, llm: LLMClient, temperature: float = 0.3, max_tokens: int = 4000):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate(
        self,
        role_title: str,
        department: str = "",
        level: str = "",
        employment_type: str = "full_time",
        requirements: str = "",
        custom_instructions: str = "",
        tone: str = "professional",
        language: str = "en",
    ) -> Dict[str, Any]:
        prompt = f"""Create a comprehensive job description for the following role.

ROLE DETAILS:
- Position: {role_title}
- Department: {department or 'Not specified'}
- Level: {level or 'Not specified'}
- Employment Type: {employment_type}

ADDITIONAL REQUIREMENTS:
{requirements or 'Standard telecommunications industry requirements'}

CUSTOM INSTRUCTIONS:
{custom_instructions or 'None'}

TONE: {tone}
LANGUAGE: {language}

Respond with JSON:
{{
  "title": "",
  "summary": "job purpose paragraph",
  "responsibilities": ["..."],
  "required_qualifications": ["..."],
  "required_skills": ["..."],
  "experience_level": ""
}}"""
        result = await self.llm.chat_json(
            self.SYSTEM_PROMPT, prompt, temperature=self.temperature, max_tokens=self.max_tokens
        )
        return {
            "title": str(result.get("title") or role_title),
            "summary": str(result.get("summary") or ""),
            "responsibilities": [str(r) for r in _as_list(result.get("responsibilities"))],
            "required_qualifications": [
                str(q) for q in _as_list(result.get("required_qualifications"))
            ],
            "required_skills": [str(s) for s in _as_list(result.get("required_skills"))],
            "experience_level": str(result.get("experience_level") or level or ""),
        }

    async def update(self, current_content: str, update_request: str) -> str:
        """Rewrite an existing job description according to ``update_request``."""
        prompt = f"""Update the following job description based on this request: "{update_request}"

Current Job Description:
{current_content}

Do not create a completely new job description, just modify the existing one based on the request.
Return the updated content in a natural, readable format suitable for a job posting."""
        content = await self.llm.chat(
            self.UPDATE_SYSTEM_PROMPT,
            prompt,
            temperature=self.UPDATE_TEMPERATURE,
            max_tokens=self.UPDATE_MAX_TOKENS,
        )
        updated = strip_code_fences(content)
        if not updated:
            raise LLMResponseError("Model returned an empty job description")
        return updated


LEADERSHIP_KEYWORDS = ("manager", "director", "lead")


def is_leadership_title(title: Optional[str]) -> bool:
    lowered = (title or "").lower()
    return any(k in lowered for k in LEADERSHIP_KEYWORDS)


def employee_brief(employee: Any) -> Dict[str, Any]:
    return {
        "id": employee.id,
        "name": f"{employee.first_name} {employee.last_name}".strip(),
        "department": employee.current_department,
        "role": employee.current_position,
        "level": employee.current_level,
        "performance": employee.performance_rating,
        "experience": employee.years_of_experience,
        "skills": employee.skills or [],
    }


def role_brief(role: Any) -> Dict[str, Any]:
    return {
        "title": role.role_title,
        "department": role.department,
        "level": role.role_level,
        "skills": role.required_skills or [],
        "responsibilities": role.core_responsibilities or [],
    }


def assessment_brief(assessment: Any) -> Dict[str, Any]:
    return {
        "employeeId": assessment.employee_id,
        "overallScore": assessment.overall_match_percentage,
        "skillGaps": [g.get("skill") for g in assessment.skill_gaps or [] if isinstance(g, dict)],
        "assessmentDate": assessment.created_at.isoformat() if assessment.created_at else None,
    }


class WorkforceAnalyzer:
    """
    Base for single-call analyses that answer in a fixed JSON shape.

    ``ANALYSES`` maps an analysis type to its expert instruction and the
    structure the model must return. Replies missing a top-level key of that
    structure are rejected.
    """

    ANALYSES: Dict[str, Tuple[str, Dict[str, Any]]] = {}

    def __init__(self, llm: LLMClient, temperature: float = 0.3, max_tokens: int = 4000):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def check_type(cls, analysis_type: str) -> None:
        if analysis_type not in cls.ANALYSES:
            raise ValidationError(
                f"Invalid analysis type '{analysis_type}', expected one of: "
                f"{', '.join(cls.ANALYSES)}"
            )

    async def _run(self, analysis_type: str, prompt: str) -> Dict[str, Any]:
        instruction, shape = self.ANALYSES[analysis_type]
        system_prompt = (
            f"{instruction}\n\nReturn a JSON object with this structure:\n"
            f"{json.dumps(shape, indent=2)}"
        )
        result = await self.llm.chat_json(
            system_prompt, prompt, temperature=self.temperature, max_tokens=self.max_tokens
        )
        missing = [key for key in shape if key not in result]
        if missing:
            raise LLMResponseError(f"{analysis_type} result is missing: {', '.join(missing)}")
        logger.info(f"🧠 {analysis_type} analysis complete")
        return result


def _dump(items: Sequence[Any]) -> str:
    return json.dumps(list(items), ensure_ascii=False, default=str)


class SuccessionPlanner(WorkforceAnalyzer):
    """Leadership pipeline and succession analyses over the employee base."""

    ANALYSES = {
        "leadership_pipeline": (
            "You are an expert in leadership development and succession planning. Analyze "
            "the leadership pipeline and identify development opportunities and gaps.",
            {
                "pipelineOverview": {
                    "totalLeadershipRoles": "number",
                    "totalPotentialSuccessors": "number",
                    "averageSuccessionDepth": "number",
                    "criticalGapsCount": "number",
                },
                "leadershipLevels": [{
                    "level": "string", "currentCount": "number", "requiredCount": "number",
                    "successorCount": "number", "gapAnalysis": "string",
                }],
                "successionChains": [{
                    "role": "string", "currentLeader": "string", "readySuccessors": ["string"],
                    "developingSuccessors": ["string"], "successionRisk": "high|medium|low",
                }],
                "developmentRecommendations": [{
                    "employee": "string", "currentRole": "string", "targetRole": "string",
                    "readinessLevel": "number", "developmentPlan": ["string"],
                    "timeToReadiness": "string",
                }],
            },
        ),
        "succession_readiness": (
            "You are an expert in succession planning and leadership readiness assessment. "
            "Evaluate employee readiness for leadership roles and succession opportunities.",
            {
                "readinessMetrics": {
                    "immediatelyReady": "number",
                    "readyWithDevelopment": "number",
                    "longerTermPotential": "number",
                    "averageReadinessScore": "number",
                },
                "readinessAssessment": [{
                    "employee": "string", "currentRole": "string", "readinessScore": "number",
                    "readinessCategory": "ready_now|ready_1_year|ready_2_3_years|not_ready",
                    "strengthAreas": ["string"], "developmentNeeds": ["string"],
                    "targetRoles": ["string"],
                }],
                "competencyGaps": [{
                    "competency": "string", "criticalityLevel": "high|medium|low",
                    "currentGapSize": "number", "affectedEmployees": "number",
                    "developmentSolutions": ["string"],
                }],
                "successionPlans": [{
                    "criticalRole": "string", "incumbentRisk": "high|medium|low",
                    "identifiedSuccessors": "number", "successionStrategy": "string",
                }],
            },
        ),
        "high_potential_identification": (
            "You are an expert in talent identification and high-potential employee "
            "assessment. Identify high-potential employees for leadership development.",
            {
                "hipoIdentification": {
                    "totalHiposCandidates": "number",
                    "confirmedHipos": "number",
                    "emergingTalent": "number",
                    "hipoRetentionRate": "number",
                },
                "hipoProfiles": [{
                    "employee": "string", "hipoCategory": "confirmed|emerging|potential",
                    "potentialScore": "number", "strengthIndicators": ["string"],
                    "leadershipReadiness": "number", "careerVelocity": "fast|moderate|slow",
                    "riskFactors": ["string"],
                }],
                "talentSegmentation": [{
                    "segment": "string", "employeeCount": "number",
                    "characteristics": ["string"], "developmentStrategy": "string",
                    "retentionPriority": "high|medium|low",
                }],
                "developmentTracking": [{
                    "employee": "string", "developmentPath": "string",
                    "progressMetrics": ["string"], "nextMilestones": ["string"],
                    "expectedPromotionTimeline": "string",
                }],
            },
        ),
        "leadership_gap_analysis": (
            "You are an expert in organizational leadership analysis and workforce planning. "
            "Analyze leadership gaps and recommend solutions for building leadership capability.",
            {
                "gapAnalysis": {
                    "totalLeadershipGaps": "number",
                    "criticalGaps": "number",
                    "averageTimeToFill": "string",
                    "gapImpactRating": "number",
                },
                "leadershipGaps": [{
                    "role": "string", "department": "string",
                    "gapSeverity": "critical|high|medium|low", "requiredCount": "number",
                    "currentCount": "number", "impactOnBusiness": "string",
                    "urgencyToFill": "immediate|3_months|6_months|1_year",
                }],
                "capabilityGaps": [{
                    "capability": "string", "currentLevel": "number", "requiredLevel": "number",
                    "affectedRoles": ["string"], "buildVsBuyRecommendation": "build|buy|hybrid",
                }],
                "closureStrategies": [{
                    "strategy": "string", "targetGaps": ["string"], "timeframe": "string",
                    "investment": "high|medium|low", "successProbability": "number",
                }],
            },
        ),
    }

    async def analyze(
        self,
        analysis_type: str,
        employees: Sequence[Any],
        roles: Sequence[Any],
        assessments: Sequence[Any] = (),
        department: Optional[str] = None,
        position_level: Optional[str] = None,
    ) -> Dict[str, Any]:
        self.check_type(analysis_type)
        leadership_roles = [role_brief(r) for r in roles if is_leadership_title(r.role_title)][:10]
        scores = [assessment_brief(a) for a in assessments[:15]]

        if analysis_type == "leadership_pipeline":
            prompt = (
                "Analyze leadership pipeline and succession planning:\n\n"
                f"Employee Data: {_dump(employee_brief(e) for e in employees[:25])}\n\n"
                f"Leadership Roles: {_dump(leadership_roles)}\n\n"
                + (f"Focus on position level: {position_level}\n\n" if position_level else "")
                + "Analyze succession readiness and create development pathways."
            )
        elif analysis_type == "succession_readiness":
            prompt = (
                "Assess succession readiness across the organization:\n\n"
                f"Employee Performance Data: {_dump(employee_brief(e) for e in employees[:20])}\n\n"
                f"Skills Assessment Results: {_dump(scores)}\n\n"
                "Evaluate readiness for advancement and create succession strategies."
            )
        elif analysis_type == "high_potential_identification":
            prompt = (
                "Identify high-potential employees and create development strategies:\n\n"
                f"Employee Profiles: {_dump(employee_brief(e) for e in employees[:25])}\n\n"
                f"Skills and Performance Data: {_dump(scores)}\n\n"
                "Identify high-potential talent and create targeted development plans."
            )
        else:
            leaders = [e for e in employees if is_leadership_title(e.current_position)][:15]
            prompt = (
                "Analyze leadership gaps and recommend closure strategies:\n\n"
                f"Current Leadership: {_dump(employee_brief(e) for e in leaders)}\n\n"
                f"Required Leadership Roles: {_dump(leadership_roles)}\n\n"
                + (f"Focus analysis on department: {department}\n\n" if department else "")
                + "Identify critical leadership gaps and recommend strategies to close them."
            )
        return await self._run(analysis_type, prompt)


class RoleIntelligenceAnalyzer(WorkforceAnalyzer):
    """Forward-looking analyses over the standard role catalog."""

    ANALYSES = {
        "role_evolution": (
            "You are an expert in workforce evolution and role transformation analysis. "
            "Analyze how roles are evolving and predict future skill requirements.",
            {
                "evolutionOverview": {
                    "rolesAnalyzed": "number",
                    "evolutionRate": "number",
                    "disruptionRisk": "high|medium|low",
                    "adaptationReadiness": "number",
                },
                "roleEvolutionTracking": [{
                    "role": "string", "evolutionStage": "emerging|evolving|mature|declining",
                    "skillShiftTrends": ["string"], "futureSkillRequirements": ["string"],
                    "transformationProbability": "number", "timeToSignificantChange": "string",
                }],
                "emergingRoles": [{
                    "roleTitle": "string", "department": "string",
                    "emergenceDrivers": ["string"], "requiredSkills": ["string"],
                    "timeToMarketNeed": "string", "preparednessLevel": "high|medium|low",
                }],
                "skillEvolution": [{
                    "skillCategory": "string", "currentImportance": "number",
                    "futureImportance": "number",
                    "evolutionTrend": "increasing|decreasing|stable",
                    "affectedRoles": ["string"],
                }],
            },
        ),
        "redundancy_analysis": (
            "You are an expert in organizational efficiency and role optimization. Analyze "
            "role redundancy and overlap to recommend restructuring opportunities.",
            {
                "redundancyOverview": {
                    "totalRolesAnalyzed": "number",
                    "redundantRolesIdentified": "number",
                    "overlapScore": "number",
                    "optimizationPotential": "number",
                },
                "roleOverlapAnalysis": [{
                    "roleGroup": ["string"], "overlapPercentage": "number",
                    "redundantFunctions": ["string"],
                    "consolidationOpportunity": "high|medium|low", "impactAssessment": "string",
                }],
                "efficiencyOpportunities": [{
                    "opportunity": "string", "affectedRoles": ["string"],
                    "potentialSavings": "number", "implementationComplexity": "high|medium|low",
                    "recommendation": "string",
                }],
                "restructuringOptions": [{
                    "option": "string", "consolidatedRoles": ["string"],
                    "newRoleStructure": "string", "benefitsExpected": ["string"],
                    "risksConsidered": ["string"],
                }],
                "optimizationPlan": [{
                    "phase": "string", "actions": ["string"], "timeline": "string",
                    "expectedOutcomes": ["string"], "successMetrics": ["string"],
                }],
            },
        ),
        "future_prediction": (
            "You are an expert in future of work analysis and role prediction. Predict future "
            "role requirements based on industry trends and technological advancement.",
            {
                "futurePrediction": {
                    "predictionConfidence": "number",
                    "disruptionLevel": "high|medium|low",
                    "newRolesExpected": "number",
                    "obsoleteRolesExpected": "number",
                },
                "futureRoles": [{
                    "predictedRole": "string", "department": "string",
                    "emergenceTimeframe": "string", "drivingFactors": ["string"],
                    "requiredSkills": ["string"], "preparationStrategy": "string",
                }],
                "roleTransformations": [{
                    "currentRole": "string", "transformedRole": "string",
                    "transformationDrivers": ["string"], "skillGaps": ["string"],
                    "transitionPlan": "string",
                }],
                "obsolescenceRisk": [{
                    "role": "string", "riskLevel": "high|medium|low",
                    "obsolescenceFactors": ["string"], "mitigationStrategies": ["string"],
                    "transitionOptions": ["string"],
                }],
                "preparationRecommendations": [{
                    "recommendation": "string", "targetArea": "string",
                    "implementationPriority": "high|medium|low", "expectedBenefit": "string",
                    "timeline": "string",
                }],
            },
        ),
        "competitiveness_scoring": (
            "You are an expert in competitive role analysis and market positioning. Analyze "
            "role competitiveness in the talent market and recommend attraction and retention "
            "strategies.",
            {
                "competitivenessOverview": {
                    "averageCompetitivenessScore": "number",
                    "marketPositioning": "leader|competitive|lagging",
                    "talentAttractionRisk": "high|medium|low",
                    "retentionAdvantage": "number",
                },
                "roleCompetitiveness": [{
                    "role": "string", "competitivenessScore": "number",
                    "marketDemand": "high|medium|low", "talentSupply": "abundant|balanced|scarce",
                    "competitiveAdvantages": ["string"], "improvementAreas": ["string"],
                }],
                "marketIntelligence": [{
                    "role": "string", "marketTrends": ["string"],
                    "salaryBenchmark": "above|at|below_market", "skillsPremium": ["string"],
                    "competitorAdvantages": ["string"],
                }],
                "talentStrategy": [{
                    "strategy": "string", "targetRoles": ["string"], "implementation": "string",
                    "expectedImpact": "high|medium|low", "investmentRequired": "high|medium|low",
                }],
                "riskMitigation": [{
                    "risk": "string", "affectedRoles": ["string"],
                    "mitigationActions": ["string"], "monitoringMetrics": ["string"],
                    "successCriteria": "string",
                }],
            },
        ),
    }

    async def analyze(
        self,
        analysis_type: str,
        roles: Sequence[Any],
        employees: Sequence[Any],
        job_descriptions: Sequence[Any] = (),
        department: Optional[str] = None,
        time_horizon: Optional[str] = None,
    ) -> Dict[str, Any]:
        self.check_type(analysis_type)

        if analysis_type == "role_evolution":
            prompt = (
                "Analyze role evolution patterns and future requirements:\n\n"
                f"Current Standard Roles: {_dump(role_brief(r) for r in roles[:20])}\n\n"
                f"Employee Role Distribution: {_dump(employee_brief(e) for e in employees[:15])}\n\n"
                f"Analysis time horizon: {time_horizon or '3 years'}\n\n"
                "Analyze role evolution trends and predict future role requirements."
            )
        elif analysis_type == "redundancy_analysis":
            prompt = (
                "Analyze role redundancy and organizational efficiency:\n\n"
                f"Standard Role Definitions: {_dump(role_brief(r) for r in roles[:20])}\n\n"
                f"Current Employee Roles: {_dump(employee_brief(e) for e in employees[:25])}\n\n"
                "Identify redundant roles and recommend optimization strategies."
            )
        elif analysis_type == "future_prediction":
            patterns = [
                {
                    "role": jd.title,
                    "requirements": jd.required_qualifications or [],
                    "responsibilities": jd.responsibilities or [],
                }
                for jd in job_descriptions[:10]
            ]
            prompt = (
                "Predict future role requirements and transformations:\n\n"
                f"Current Role Landscape: {_dump(role_brief(r) for r in roles[:15])}\n\n"
                f"Job Description Patterns: {_dump(patterns)}\n\n"
                f"Prediction timeframe: {time_horizon or '5 years'}\n\n"
                "Predict future role evolution and organizational needs."
            )
        else:
            prompt = (
                "Analyze role competitiveness and market positioning:\n\n"
                f"Standard Roles Portfolio: {_dump(role_brief(r) for r in roles[:20])}\n\n"
                f"Current Talent Profile: {_dump(employee_brief(e) for e in employees[:20])}\n\n"
                + (f"Focus analysis on department: {department}\n\n" if department else "")
                + "Assess role competitiveness and recommend talent attraction strategies."
            )
        return await self._run(analysis_type, prompt)
