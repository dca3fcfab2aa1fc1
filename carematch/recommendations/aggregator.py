"""
Ranker/Aggregator

Blends the deterministic total with the advisory adjustment, ranks, keeps
the top N and assembles recommendation details and the input snapshot.

    adjusted = deterministic_total + adjustment * 0.1

Ties: higher deterministic total first, then professional id.

Version: recommendations_v1
"""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List

from carematch.advisory.models import AdvisoryOutput
from carematch.collector.models import CandidateData, RecommendationDataBundle
from carematch.scoring.eligibility import build_profession_eligibility_rules
from carematch.scoring.models import PreFilterResult, ScoreBreakdown
from carematch.scoring.profession_rules import rule_table

from .models import RecommendationDetail

RECOMMENDATION_TOP_N = int(os.getenv("RECOMMENDATION_TOP_N", "3"))
ADJUSTMENT_SCALE = 0.1


@dataclass
class RankedCandidate:
    candidate: CandidateData
    scores: ScoreBreakdown
    adjustment: float
    bullets: List[str]

    @property
    def deterministic_score(self) -> float:
        return self.scores.total_score

    @property
    def adjusted_score(self) -> float:
        return self.scores.total_score + self.adjustment * ADJUSTMENT_SCALE


def rank_candidates(
    eligible: List[CandidateData],
    scores: Dict[str, ScoreBreakdown],
    advisory: AdvisoryOutput,
) -> List[RankedCandidate]:
    """All eligible candidates, best adjusted score first."""
    ranked = []
    for candidate in eligible:
        ranking = advisory.ranking_for(candidate.id)
        ranked.append(RankedCandidate(
            candidate=candidate,
            scores=scores[candidate.id],
            adjustment=ranking.ranking_adjustment if ranking else 0.0,
            bullets=list(ranking.reasoning_bullets) if ranking else [],
        ))
    ranked.sort(key=lambda r: (-r.adjusted_score, -r.deterministic_score, r.candidate.id))
    return ranked


def build_recommendation_details(
    ranked: List[RankedCandidate],
    top_n: int = RECOMMENDATION_TOP_N,
) -> List[RecommendationDetail]:
    details = []
    for index, item in enumerate(ranked[:max(0, top_n)]):
        candidate = item.candidate
        scores = item.scores
        details.append(RecommendationDetail(
            professional_id=candidate.id,
            rank=index + 1,
            total_score=round(item.adjusted_score, 6),
            deterministic_score=round(scores.total_score, 6),
            motif_match_score=scores.motif_match_score,
            specialty_match_score=scores.specialty_match_score,
            availability_score=scores.availability_score,
            profession_fit_score=scores.profession_fit_score,
            experience_score=scores.experience_score,
            ai_ranking_adjustment=item.adjustment,
            ai_reasoning_bullets=item.bullets,
            matched_motifs=scores.matched_motifs,
            unmatched_motifs=scores.unmatched_motifs,
            matched_specialties=scores.matched_specialties,
            available_slots_count=candidate.availability.slots_in_window,
            hours_available=candidate.availability.hours_available_in_window,
            next_available_slot=candidate.availability.next_slot_datetime,
            display_name=candidate.professional.display_name,
            profession_titles=candidate.profession_titles,
        ))
    return details


def build_input_snapshot(
    bundle: RecommendationDataBundle,
    prefilter: PreFilterResult,
    captured_at: datetime,
) -> Dict[str, Any]:
    """
    Reproducibility record of what the run saw. No client free text, no names.
    """
    demande = bundle.demande
    config = bundle.config
    signal = bundle.holistic_signal

    return {
        "demandType": demande.demand_type,
        "urgencyLevel": demande.urgency_level,
        "motifKeys": list(demande.motif_keys),
        "clienteleCategories": [c.value for c in demande.clientele_categories],
        "hasLegalContext": demande.has_legal_context,
        "holisticSignal": {
            "score": signal.score,
            "category": signal.category.value,
            "matchedKeywords": list(signal.matched_keywords),
            "recommendNaturopath": signal.recommend_naturopath,
            "hasClinicalOverride": signal.has_clinical_override,
        },
        "configKey": config.key,
        "configWeights": {
            "motifMatch": config.weight_motif_match,
            "specialtyMatch": config.weight_specialty_match,
            "availability": config.weight_availability,
            "professionFit": config.weight_profession_fit,
            "experience": config.weight_experience,
        },
        "windowDays": config.require_availability_within_days,
        "candidates": sorted(
            [
                {
                    "id": c.id,
                    "slots": c.availability.slots_in_window,
                    "hours": c.availability.hours_available_in_window,
                }
                for c in bundle.candidates
            ],
            key=lambda c: c["id"],
        ),
        "eligibleCount": len(prefilter.eligible),
        "excludedCount": len(prefilter.exclusions),
        "nearEligibleCount": len(prefilter.near_eligible),
        "totalProfessionalsAnalyzed": len(bundle.candidates),
        "professionRules": [
            r.model_dump() for r in build_profession_eligibility_rules(demande, signal)
        ],
        "professionFitRules": rule_table(),
        "captured_at": captured_at.isoformat(),
    }
