"""Succession planning and role intelligence schemas."""
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class SuccessionPlanningRequest(BaseModel):
    analysis_type: Literal[
        "leadership_pipeline",
        "succession_readiness",
        "high_potential_identification",
        "leadership_gap_analysis",
    ] = Field(..., alias="analysisType")
    department_filter: Optional[str] = Field(None, alias="departmentFilter")
    position_level: Optional[str] = Field(None, alias="positionLevel")

    class Config:
        populate_by_name = True


class RoleIntelligenceRequest(BaseModel):
    analysis_type: Literal[
        "role_evolution",
        "redundancy_analysis",
        "future_prediction",
        "competitiveness_scoring",
    ] = Field(..., alias="analysisType")
    department_filter: Optional[str] = Field(None, alias="departmentFilter")
    time_horizon: Optional[str] = Field(None, alias="timeHorizon")

    class Config:
        populate_by_name = True


class AnalysisResponse(BaseModel):
    success: bool = True
    analysis_type: str
    result: Dict[str, Any]
