"""
Advisory Refiner Models

The advisory input carries only aggregated, non-identifying fields. The
output is parsed from the text-generation service and validated here;
adjustments outside [-5, 5] are clamped, not rejected.

Version: advisory_refiner_v1
"""

import math
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

MAX_ADJUSTMENT = 5.0

NEUTRAL_BULLET = "Analyse IA non disponible - classement basé uniquement sur les scores déterministes."
NEUTRAL_SUMMARY = (
    "Recommandations basées uniquement sur les critères déterministes "
    "(correspondance de motifs, disponibilité, spécialités)."
)
MISSING_CANDIDATE_BULLET = "Candidat non analysé par l'IA - score déterministe conservé."


class AdvisoryError(Enum):
    ADVISORY_DISABLED = "ADVISORY_DISABLED"
    ADVISORY_NO_API_KEY = "ADVISORY_NO_API_KEY"
    ADVISORY_NO_CANDIDATES = "ADVISORY_NO_CANDIDATES"
    ADVISORY_TIMEOUT = "ADVISORY_TIMEOUT"
    ADVISORY_HTTP_ERROR = "ADVISORY_HTTP_ERROR"
    ADVISORY_INVALID_RESPONSE = "ADVISORY_INVALID_RESPONSE"


def clamp_adjustment(value: float) -> float:
    return max(-MAX_ADJUSTMENT, min(MAX_ADJUSTMENT, value))


# ============================================
# INPUT
# ============================================

class SanitizedCandidate(BaseModel):
    """Anonymised candidate summary. No names, no free text."""
    id: str
    profession_type: str
    deterministic_score: float
    matched_motif_count: int = Field(ge=0)
    available_slot_count: int = Field(ge=0)
    years_experience: float = Field(ge=0)

    class Config:
        extra = "forbid"


class HolisticSummary(BaseModel):
    score: float = 0.0
    category: str = "none"
    matched_keywords: List[str] = Field(default_factory=list)
    recommend_naturopath: bool = False
    has_clinical_override: bool = False

    class Config:
        extra = "forbid"


class AdvisoryInput(BaseModel):
    demand_type: str = "individual"
    urgency_level: str = "low"
    motif_keys: List[str] = Field(default_factory=list)
    client_text: str = ""
    has_legal_context: bool = False
    clientele_categories: List[str] = Field(default_factory=list)
    holistic_signal: HolisticSummary = Field(default_factory=HolisticSummary)
    candidates: List[SanitizedCandidate] = Field(default_factory=list)

    class Config:
        extra = "forbid"


# ============================================
# OUTPUT
# ============================================

class ExtractedPreferences(BaseModel):
    preferred_timing: Optional[str] = Field(default=None, alias="preferredTiming")
    preferred_modality: Optional[str] = Field(default=None, alias="preferredModality")
    other_constraints: List[str] = Field(default_factory=list, alias="otherConstraints")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @field_validator("other_constraints", mode="before")
    @classmethod
    def _null_constraints(cls, v):
        return v or []


class CandidateRanking(BaseModel):
    professional_id: str = Field(alias="professionalId")
    ranking_adjustment: float = Field(default=0.0, alias="rankingAdjustment")
    reasoning_bullets: List[str] = Field(default_factory=list, alias="reasoningBullets")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @field_validator("ranking_adjustment")
    @classmethod
    def _clamp(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("rankingAdjustment must be finite")
        return clamp_adjustment(v)


class AdvisoryOutput(BaseModel):
    extracted_preferences: ExtractedPreferences = Field(
        default_factory=ExtractedPreferences, alias="extractedPreferences"
    )
    rankings: List[CandidateRanking]
    summary_fr: str = Field(alias="summaryFr")

    class Config:
        populate_by_name = True
        extra = "ignore"

    @field_validator("extracted_preferences", mode="before")
    @classmethod
    def _null_preferences(cls, v):
        return v or {}

    def ranking_for(self, professional_id: str) -> Optional[CandidateRanking]:
        for ranking in self.rankings:
            if ranking.professional_id == professional_id:
                return ranking
        return None


class AdvisoryResult(BaseModel):
    """advise() always returns one of these; success False means neutral output."""
    success: bool
    output: AdvisoryOutput
    model_used: str
    processing_time_ms: int = 0
    error_code: Optional[AdvisoryError] = None
    error: Optional[str] = None

    @property
    def is_neutral(self) -> bool:
        return not self.success
