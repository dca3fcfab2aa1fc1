"""
Deterministic Scorer

Five components, each scaled by its configured weight:

    motif match       matched / requested (full weight when none requested)
    specialty match   proficiency-weighted overlap with the relevant set
                      (half weight when the relevant set is empty)
    availability      min(hours, ceiling) / ceiling
    profession fit    rule table, see profession_rules
    experience        min(years, ceiling) / ceiling (half weight when unknown)

Pure: identical inputs always give identical scores.

Version: deterministic_scorer_v1
"""

from typing import List, Optional, Set, Tuple

from carematch.collector.models import CandidateData, DemandeData, RecommendationConfig
from carematch.holistic.models import HolisticSignal

from .models import ScoreBreakdown
from .profession_rules import resolve_profession_fit


PROFICIENCY_WEIGHTS = {
    "primary": 1.0,
    "secondary": 0.7,
    "familiar": 0.4,
}
DEFAULT_PROFICIENCY_WEIGHT = 0.4

DEMAND_TYPE_RELEVANT_SPECIALTY = {
    "couple": "couples",
    "family": "families",
    "group": "groups",
}
LEGAL_SPECIALTIES = ("mediation", "legal_context")


def calculate_motif_score(
    candidate: CandidateData, demande: DemandeData, config: RecommendationConfig
) -> Tuple[float, List[str], List[str]]:
    """(score, matched, unmatched)"""
    if not demande.motif_keys:
        return config.weight_motif_match, [], []

    held = set(candidate.motifs)
    matched = [m for m in demande.motif_keys if m in held]
    unmatched = [m for m in demande.motif_keys if m not in held]
    ratio = len(matched) / len(demande.motif_keys)
    return ratio * config.weight_motif_match, matched, unmatched


def relevant_specialties(demande: DemandeData) -> Set[str]:
    relevant = {c.value for c in demande.clientele_categories}
    demand_specialty = DEMAND_TYPE_RELEVANT_SPECIALTY.get(demande.demand_type or "")
    if demand_specialty:
        relevant.add(demand_specialty)
    if demande.has_legal_context:
        relevant.update(LEGAL_SPECIALTIES)
    return relevant


def calculate_specialty_score(
    candidate: CandidateData, demande: DemandeData, config: RecommendationConfig
) -> Tuple[float, List[str]]:
    relevant = relevant_specialties(demande)
    if not relevant:
        return config.weight_specialty_match * 0.5, []

    total = 0.0
    matched: List[str] = []
    for specialty in candidate.specialties:
        if specialty.code in relevant and specialty.code not in matched:
            level = specialty.proficiency_level.value if specialty.proficiency_level else None
            total += PROFICIENCY_WEIGHTS.get(level, DEFAULT_PROFICIENCY_WEIGHT)
            matched.append(specialty.code)

    ratio = min(total / (len(relevant) * 1.0), 1.0)
    return ratio * config.weight_specialty_match, matched


def calculate_availability_score(candidate: CandidateData, config: RecommendationConfig) -> float:
    hours = max(0.0, candidate.availability.hours_available_in_window)
    ceiling = config.availability_max_hours
    return min(hours, ceiling) / ceiling * config.weight_availability


def calculate_profession_fit_score(
    candidate: CandidateData,
    demande: DemandeData,
    config: RecommendationConfig,
    holistic_signal: Optional[HolisticSignal] = None,
) -> Tuple[float, str]:
    primary = candidate.primary_profession
    category = primary.category_key if primary is not None else None
    multiplier, rule = resolve_profession_fit(category, holistic_signal, demande.has_legal_context)
    return multiplier * config.weight_profession_fit, rule


def calculate_experience_score(candidate: CandidateData, config: RecommendationConfig) -> float:
    years = candidate.professional.years_experience
    if years is None:
        return config.weight_experience * 0.5
    ceiling = config.experience_max_years
    return min(max(years, 0.0), ceiling) / ceiling * config.weight_experience


def calculate_deterministic_scores(
    candidate: CandidateData,
    demande: DemandeData,
    config: RecommendationConfig,
    holistic_signal: Optional[HolisticSignal] = None,
) -> ScoreBreakdown:
    """
    Full breakdown for one candidate.

    Used for eligible candidates and, unchanged, for near-eligible
    "would-be" scores.
    """
    motif_score, matched_motifs, unmatched_motifs = calculate_motif_score(candidate, demande, config)
    specialty_score, matched_specialties = calculate_specialty_score(candidate, demande, config)
    availability_score = calculate_availability_score(candidate, config)
    profession_score, profession_rule = calculate_profession_fit_score(
        candidate, demande, config, holistic_signal
    )
    experience_score = calculate_experience_score(candidate, config)

    return ScoreBreakdown(
        motif_match_score=motif_score,
        specialty_match_score=specialty_score,
        availability_score=availability_score,
        profession_fit_score=profession_score,
        experience_score=experience_score,
        total_score=motif_score + specialty_score + availability_score + profession_score + experience_score,
        matched_motifs=matched_motifs,
        unmatched_motifs=unmatched_motifs,
        matched_specialties=matched_specialties,
        profession_fit_rule=profession_rule,
    )


def count_matched_motifs(candidate: CandidateData, demande: DemandeData) -> int:
    requested = set(demande.motif_keys)
    return len([m for m in candidate.motifs if m in requested])
