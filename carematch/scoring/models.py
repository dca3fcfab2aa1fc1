"""
Scoring Models

Exclusion and near-eligible records, score breakdowns and the pre-filter
partition.

Version: deterministic_scorer_v1
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from carematch.collector.models import CandidateData


class ExclusionReasonCode(str, Enum):
    NO_AVAILABILITY = "no_availability"
    NO_MOTIF_OVERLAP = "no_motif_overlap"
    NO_CLIENTELE_MATCH = "no_clientele_match"
    NO_DEMAND_TYPE_SPECIALTY = "no_demand_type_specialty"
    INACTIVE_STATUS = "inactive_status"


class ConstraintResult(BaseModel):
    """Outcome of one hard constraint for one candidate."""
    passed: bool
    reason_code: ExclusionReasonCode
    reason_fr: str = ""
    details: Dict[str, Any] = Field(default_factory=dict)
    skipped: bool = False


class ScoreBreakdown(BaseModel):
    """
    Five weighted components. Each lies in [0, its configured weight].
    """
    motif_match_score: float = Field(ge=0.0)
    specialty_match_score: float = Field(ge=0.0)
    availability_score: float = Field(ge=0.0)
    profession_fit_score: float = Field(ge=0.0)
    experience_score: float = Field(ge=0.0)
    total_score: float = Field(ge=0.0)

    matched_motifs: List[str] = Field(default_factory=list)
    unmatched_motifs: List[str] = Field(default_factory=list)
    matched_specialties: List[str] = Field(default_factory=list)
    profession_fit_rule: str = Field(
        default="default",
        description="Rule that set the profession-fit multiplier"
    )


class ExclusionRecord(BaseModel):
    professional_id: str
    reason_code: ExclusionReasonCode
    reason_fr: str
    details: Dict[str, Any] = Field(default_factory=dict)


class NearEligibleRecord(BaseModel):
    """A candidate failing exactly one hard constraint, scored as if eligible."""
    professional_id: str
    display_name: str
    profession_titles: List[str] = Field(default_factory=list)
    missing_constraint: ExclusionReasonCode
    reason_fr: str
    scores: ScoreBreakdown
    next_available_date: Optional[datetime] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class PreFilterResult(BaseModel):
    eligible: List[CandidateData] = Field(default_factory=list)
    exclusions: List[ExclusionRecord] = Field(default_factory=list)
    near_eligible: List[NearEligibleRecord] = Field(default_factory=list)

    @property
    def accounted_ids(self) -> List[str]:
        return [c.id for c in self.eligible] + [e.professional_id for e in self.exclusions]
