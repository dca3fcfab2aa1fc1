"""
Recommendation Result Models

Version: recommendations_v1
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from carematch.advisory.models import ExtractedPreferences
from carematch.scoring.models import ExclusionRecord, NearEligibleRecord
from carematch.shared.disclaimer import RECOMMENDATION_DISCLAIMER_FR


class RecommendationDetail(BaseModel):
    """One ranked professional in a run."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    professional_id: str
    rank: int = Field(ge=1)

    total_score: float = Field(description="Deterministic total plus scaled advisory adjustment")
    deterministic_score: float = Field(ge=0.0)
    motif_match_score: float = Field(ge=0.0)
    specialty_match_score: float = Field(ge=0.0)
    availability_score: float = Field(ge=0.0)
    profession_fit_score: float = Field(ge=0.0)
    experience_score: float = Field(ge=0.0)

    ai_ranking_adjustment: Optional[float] = Field(default=None, ge=-5.0, le=5.0)
    ai_reasoning_bullets: List[str] = Field(default_factory=list)

    matched_motifs: List[str] = Field(default_factory=list)
    unmatched_motifs: List[str] = Field(default_factory=list)
    matched_specialties: List[str] = Field(default_factory=list)
    available_slots_count: int = Field(default=0, ge=0)
    hours_available: float = Field(default=0.0, ge=0.0)
    next_available_slot: Optional[datetime] = None

    display_name: Optional[str] = None
    profession_titles: List[str] = Field(default_factory=list)


class RecommendationResult(BaseModel):
    """
    Full output of one matching run.

    Zero eligible candidates is still a successful run: recommendations is
    empty and exclusions/near_eligible explain why.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    demande_id: str
    config_id: Optional[str] = None
    config_key: str = "default"

    input_snapshot: Dict[str, Any] = Field(default_factory=dict)
    input_hash: Optional[str] = None

    recommendations: List[RecommendationDetail] = Field(default_factory=list)
    ai_summary_fr: Optional[str] = None
    ai_extracted_preferences: Optional[ExtractedPreferences] = None
    exclusions: List[ExclusionRecord] = Field(default_factory=list)
    near_eligible: List[NearEligibleRecord] = Field(default_factory=list)

    generated_at: datetime
    generated_by: Optional[str] = None
    model_version: Optional[str] = None
    processing_time_ms: int = Field(default=0, ge=0)
    advisory_success: bool = False

    is_current: bool = True
    superseded_at: Optional[datetime] = None
    superseded_by: Optional[str] = None

    disclaimer: str = RECOMMENDATION_DISCLAIMER_FR
    success: bool = True


class GenerateRecommendationsRequest(BaseModel):
    config_key: Optional[str] = None
    force_regenerate: bool = False
    actor_id: Optional[str] = None

    class Config:
        extra = "forbid"


class GenerateRecommendationsResponse(BaseModel):
    success: bool = True
    recommendation_id: str
    result: RecommendationResult


class ClassifyRequest(BaseModel):
    text: str = Field(default="", max_length=20000)


class RecommendationsHealthResponse(BaseModel):
    status: str
    module: str
    version: str
    advisory_available: bool
    timestamp: str
