"""
Data Collector Models

Two tiers:
- *Row models mirror what the data store returns (loosely typed, extra allowed).
- DemandeData / CandidateData / RecommendationConfig are the validated
  structures handed to the constraint filter and scorer.

Version: data_collector_v1
"""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from carematch.holistic.models import HolisticSignal

logger = logging.getLogger(__name__)


DemandType = Literal["individual", "couple", "family", "group"]


class PopulationCategory(str, Enum):
    CHILDREN = "children"
    ADOLESCENTS = "adolescents"
    ADULTS = "adults"
    SENIORS = "seniors"


class ProficiencyLevel(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    FAMILIAR = "familiar"


# ============================================
# STORE ROWS
# ============================================

class ParticipantRow(BaseModel):
    client_id: Optional[str] = None
    birthday: Optional[date] = None

    class Config:
        extra = "allow"

    @field_validator("birthday", mode="before")
    @classmethod
    def _blank_birthday(cls, v):
        if v == "":
            return None
        return v


class DemandeRow(BaseModel):
    """A demande as stored, with its participants."""
    id: str
    demande_id: str = Field(description="Display id, e.g. DEM-2026-0042")
    demand_type: Optional[str] = None
    urgency: Optional[str] = None
    selected_motifs: Optional[List[str]] = None
    besoin_raison: Optional[str] = None
    motif_description: Optional[str] = None
    other_motif_text: Optional[str] = None
    notes: Optional[str] = None
    has_legal_context: Optional[str] = Field(
        default=None,
        description="'yes' | 'no' | null"
    )
    participants: List[ParticipantRow] = Field(default_factory=list)

    class Config:
        extra = "allow"


class ProfessionRow(BaseModel):
    profession_title_key: str
    label_fr: Optional[str] = None
    profession_category_key: Optional[str] = None
    is_primary: bool = False

    class Config:
        extra = "allow"


class SpecialtyRow(BaseModel):
    code: str
    category: Optional[str] = None
    proficiency_level: Optional[str] = None

    class Config:
        extra = "allow"


class ProfessionalRow(BaseModel):
    id: str
    profile_id: Optional[str] = None
    status: str = "active"
    display_name: Optional[str] = None
    years_experience: Optional[float] = None
    professions: List[ProfessionRow] = Field(default_factory=list)
    specialties: List[SpecialtyRow] = Field(default_factory=list)
    motifs: List[str] = Field(default_factory=list)

    class Config:
        extra = "allow"

    @field_validator("professions", "specialties", "motifs", mode="before")
    @classmethod
    def _none_is_empty(cls, v):
        return v or []


class ScheduleBlockRow(BaseModel):
    professional_id: str
    start_time: datetime
    end_time: datetime
    type: str = "available"

    class Config:
        extra = "allow"


class BookingRow(BaseModel):
    professional_id: str
    start_time: datetime
    duration_minutes: int = Field(ge=0)
    status: str = "confirmed"

    class Config:
        extra = "allow"


class ConfigRow(BaseModel):
    """recommendation_configs row. Weights may be stored as percentages."""
    id: Optional[str] = None
    key: str
    name_fr: Optional[str] = None
    description_fr: Optional[str] = None
    system_prompt: Optional[str] = ""
    user_prompt_template: Optional[str] = ""
    weight_motif_match: float
    weight_specialty_match: float
    weight_availability: float
    weight_profession_fit: float
    weight_experience: float
    require_availability_within_days: int = 14
    require_motif_overlap: bool = True
    require_population_match: bool = False
    availability_max_hours: float = 40
    experience_max_years: float = 20
    is_active: bool = True

    class Config:
        extra = "allow"


# ============================================
# VALIDATED STRUCTURES
# ============================================

class DemandeData(BaseModel):
    """Immutable snapshot of one demande for a matching run."""
    id: str
    demand_type: Optional[DemandType] = None
    urgency_level: Optional[str] = None
    motif_keys: List[str] = Field(default_factory=list)
    reason: str = ""
    motif_description: str = ""
    other_motif_text: str = ""
    notes: str = ""
    clientele_categories: List[PopulationCategory] = Field(default_factory=list)
    has_legal_context: bool = False

    class Config:
        extra = "forbid"
        frozen = True


class ProfessionalInfo(BaseModel):
    id: str
    profile_id: Optional[str] = None
    display_name: str = "Professionnel inconnu"
    status: str = "active"
    years_experience: Optional[float] = Field(default=None, ge=0)

    class Config:
        extra = "forbid"


class ProfessionEntry(BaseModel):
    title_key: str
    label_fr: str
    category_key: str = ""
    is_primary: bool = False

    class Config:
        extra = "forbid"


class SpecialtyEntry(BaseModel):
    code: str
    category: Optional[str] = None
    proficiency_level: Optional[ProficiencyLevel] = None

    class Config:
        extra = "forbid"


class AvailabilitySummary(BaseModel):
    """Coarse availability estimate over the configured window. Not a booking."""
    slots_in_window: int = Field(default=0, ge=0)
    hours_available_in_window: float = Field(default=0.0, ge=0)
    next_slot_datetime: Optional[datetime] = None

    class Config:
        extra = "forbid"


class CandidateData(BaseModel):
    professional: ProfessionalInfo
    professions: List[ProfessionEntry] = Field(default_factory=list)
    motifs: List[str] = Field(default_factory=list)
    specialties: List[SpecialtyEntry] = Field(default_factory=list)
    availability: AvailabilitySummary = Field(default_factory=AvailabilitySummary)

    class Config:
        extra = "forbid"

    @property
    def id(self) -> str:
        return self.professional.id

    @property
    def primary_profession(self) -> Optional[ProfessionEntry]:
        for profession in self.professions:
            if profession.is_primary:
                return profession
        return self.professions[0] if self.professions else None

    @property
    def specialty_codes(self) -> List[str]:
        return [s.code for s in self.specialties]

    @property
    def profession_titles(self) -> List[str]:
        return [p.label_fr for p in self.professions]


class RecommendationConfig(BaseModel):
    """
    Scoring configuration.

    Weights should sum to 1.0; a config that does not is accepted with a
    warning and totals then range over [0, sum of weights].
    """
    id: Optional[str] = None
    key: str = "default"
    name_fr: str = "Configuration par défaut"
    description_fr: Optional[str] = None

    system_prompt: str = ""
    user_prompt_template: str = ""

    weight_motif_match: float = Field(default=0.30, ge=0.0, le=1.0)
    weight_specialty_match: float = Field(default=0.20, ge=0.0, le=1.0)
    weight_availability: float = Field(default=0.20, ge=0.0, le=1.0)
    weight_profession_fit: float = Field(default=0.15, ge=0.0, le=1.0)
    weight_experience: float = Field(default=0.15, ge=0.0, le=1.0)

    require_availability_within_days: int = 14
    require_motif_overlap: bool = True
    require_clientele_match: bool = False

    availability_max_hours: float = Field(default=40.0, gt=0)
    experience_max_years: float = Field(default=20.0, gt=0)

    is_active: bool = True

    class Config:
        extra = "forbid"

    @property
    def weight_sum(self) -> float:
        return (
            self.weight_motif_match
            + self.weight_specialty_match
            + self.weight_availability
            + self.weight_profession_fit
            + self.weight_experience
        )

    @property
    def is_builtin(self) -> bool:
        return self.id is None

    @model_validator(mode="after")
    def _warn_unnormalized(self):
        if abs(self.weight_sum - 1.0) > 0.001:
            logger.warning(
                f"Config '{self.key}' weights sum to {self.weight_sum:.3f}, not 1.0; "
                f"totals will range over [0, {self.weight_sum:.3f}]"
            )
        return self


class RecommendationDataBundle(BaseModel):
    """One consistent snapshot: demande, candidate pool, config, holistic signal."""
    demande: DemandeData
    candidates: List[CandidateData] = Field(default_factory=list)
    config: RecommendationConfig
    holistic_signal: HolisticSignal = Field(default_factory=HolisticSignal)
    collected_at: datetime

    class Config:
        extra = "forbid"

    def candidate_map(self) -> Dict[str, CandidateData]:
        return {c.id: c for c in self.candidates}
