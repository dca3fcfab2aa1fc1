"""
CareMatch Constraint Filter and Deterministic Scorer

Hard eligibility constraints with near-miss tracking, and the five-factor
weighted score used for ranking and for near-eligible "would-be" scores.

Version: deterministic_scorer_v1
"""

from .models import (
    ConstraintResult,
    ExclusionReasonCode,
    ExclusionRecord,
    NearEligibleRecord,
    PreFilterResult,
    ScoreBreakdown,
)
from .scorer import calculate_deterministic_scores, count_matched_motifs
from .constraints import check_all_constraints, pre_filter_candidates
from .profession_rules import resolve_profession_fit, PROFESSION_FIT_RULES
from .eligibility import build_profession_eligibility_rules, ProfessionEligibilityRule

__all__ = [
    "ConstraintResult",
    "ExclusionReasonCode",
    "ExclusionRecord",
    "NearEligibleRecord",
    "PreFilterResult",
    "ScoreBreakdown",
    "calculate_deterministic_scores",
    "count_matched_motifs",
    "check_all_constraints",
    "pre_filter_candidates",
    "resolve_profession_fit",
    "PROFESSION_FIT_RULES",
    "build_profession_eligibility_rules",
    "ProfessionEligibilityRule",
]
