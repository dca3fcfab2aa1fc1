"""
Holistic Classifier Models

Version: holistic_classifier_v1
"""

from enum import Enum
from typing import Dict, List
from pydantic import BaseModel, Field


class HolisticCategory(str, Enum):
    BODY = "body"
    ENERGY = "energy"
    LIFESTYLE = "lifestyle"
    GLOBAL = "global"
    NONE = "none"


class HolisticSignal(BaseModel):
    """
    Text-derived wellness signal for one demande.

    recommend_naturopath is true only when score >= 0.5 and no crisis
    keyword was found.
    """
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    category: HolisticCategory = HolisticCategory.NONE
    matched_keywords: List[str] = Field(
        default_factory=list,
        description="Matched wellness keywords, in their accented form"
    )
    keywords_by_category: Dict[str, List[str]] = Field(default_factory=dict)
    recommend_naturopath: bool = False
    has_clinical_override: bool = False
    clinical_keywords_found: List[str] = Field(default_factory=list)

    class Config:
        extra = "forbid"
