"""
Constraint Filter

Hard eligibility gate. Four constraints, all evaluated for every candidate
(no short-circuit), in this order:

1. availability       - >= 1 slot in window (skipped when window <= 0)
2. motif overlap      - shares >= 1 requested motif (toggle; skipped when none requested)
3. clientele match    - holds a requested age-category specialty (toggle; skipped when none derived)
4. demand type        - couple/family/group need couples/families/groups

0 failures -> eligible
1 failure  -> near-eligible, also recorded as an exclusion
2+         -> excluded; first failure is the primary reason, the rest go
              to details["additionalFailures"]

Version: deterministic_scorer_v1
"""

from typing import Dict, List, Optional

from carematch.collector.models import CandidateData, DemandeData, RecommendationConfig
from carematch.holistic.models import HolisticSignal

from .models import (
    ConstraintResult,
    ExclusionReasonCode,
    ExclusionRecord,
    NearEligibleRecord,
    PreFilterResult,
)
from .scorer import calculate_deterministic_scores


CLIENTELE_SPECIALTY_CODES = frozenset(["children", "adolescents", "adults", "seniors"])

DEMAND_TYPE_SPECIALTY: Dict[str, str] = {
    "couple": "couples",
    "family": "families",
    "group": "groups",
}


def _skipped(code: ExclusionReasonCode) -> ConstraintResult:
    return ConstraintResult(passed=True, reason_code=code, skipped=True)


def check_availability(candidate: CandidateData, config: RecommendationConfig) -> ConstraintResult:
    window = config.require_availability_within_days
    if window <= 0:
        return _skipped(ExclusionReasonCode.NO_AVAILABILITY)

    availability = candidate.availability
    return ConstraintResult(
        passed=availability.slots_in_window > 0,
        reason_code=ExclusionReasonCode.NO_AVAILABILITY,
        reason_fr=f"Aucune disponibilité dans les {window} prochains jours",
        details={
            "slotsAvailable": availability.slots_in_window,
            "hoursAvailable": availability.hours_available_in_window,
            "windowDays": window,
        },
    )


def check_motif_overlap(
    candidate: CandidateData, demande: DemandeData, config: RecommendationConfig
) -> ConstraintResult:
    if not config.require_motif_overlap or not demande.motif_keys:
        return _skipped(ExclusionReasonCode.NO_MOTIF_OVERLAP)

    held = set(candidate.motifs)
    matched = [m for m in demande.motif_keys if m in held]
    return ConstraintResult(
        passed=len(matched) > 0,
        reason_code=ExclusionReasonCode.NO_MOTIF_OVERLAP,
        reason_fr="Aucun des motifs demandés ne correspond à ce professionnel",
        details={
            "requestedMotifs": list(demande.motif_keys),
            "professionalMotifs": list(candidate.motifs),
            "matchedMotifs": matched,
        },
    )


def check_clientele_match(
    candidate: CandidateData, demande: DemandeData, config: RecommendationConfig
) -> ConstraintResult:
    if not config.require_clientele_match or not demande.clientele_categories:
        return _skipped(ExclusionReasonCode.NO_CLIENTELE_MATCH)

    required = [c.value for c in demande.clientele_categories]
    held = [code for code in candidate.specialty_codes if code in CLIENTELE_SPECIALTY_CODES]
    matched = [c for c in required if c in held]
    return ConstraintResult(
        passed=len(matched) > 0,
        reason_code=ExclusionReasonCode.NO_CLIENTELE_MATCH,
        reason_fr=f"Spécialité requise pour la clientèle demandée ({', '.join(required)})",
        details={
            "requiredClientele": required,
            "candidateClienteleSpecialties": held,
            "matchedClientele": matched,
        },
    )


def check_demand_type_specialty(candidate: CandidateData, demande: DemandeData) -> ConstraintResult:
    required = DEMAND_TYPE_SPECIALTY.get(demande.demand_type or "")
    if required is None:
        return _skipped(ExclusionReasonCode.NO_DEMAND_TYPE_SPECIALTY)

    codes = sorted(set(candidate.specialty_codes))
    return ConstraintResult(
        passed=required in codes,
        reason_code=ExclusionReasonCode.NO_DEMAND_TYPE_SPECIALTY,
        reason_fr=f'Spécialité "{required}" requise pour les consultations de type "{demande.demand_type}"',
        details={
            "demandType": demande.demand_type,
            "requiredSpecialty": required,
            "candidateSpecialties": codes,
        },
    )


def check_all_constraints(
    candidate: CandidateData, demande: DemandeData, config: RecommendationConfig
) -> List[ConstraintResult]:
    """Failed constraints in evaluation order. Empty when all pass."""
    results = [
        check_availability(candidate, config),
        check_motif_overlap(candidate, demande, config),
        check_clientele_match(candidate, demande, config),
        check_demand_type_specialty(candidate, demande),
    ]
    return [r for r in results if not r.passed]


def pre_filter_candidates(
    candidates: List[CandidateData],
    demande: DemandeData,
    config: RecommendationConfig,
    holistic_signal: Optional[HolisticSignal] = None,
) -> PreFilterResult:
    """
    Partition candidates into eligible / excluded / near-eligible.

    Every candidate lands in exactly one of eligible or exclusions;
    near-eligible entries are a subset of exclusions.
    """
    result = PreFilterResult()

    for candidate in candidates:
        if candidate.professional.status != "active":
            result.exclusions.append(ExclusionRecord(
                professional_id=candidate.id,
                reason_code=ExclusionReasonCode.INACTIVE_STATUS,
                reason_fr="Professionnel inactif",
                details={"status": candidate.professional.status},
            ))
            continue

        failed = check_all_constraints(candidate, demande, config)

        if not failed:
            result.eligible.append(candidate)

        elif len(failed) == 1:
            failure = failed[0]
            next_date = None
            if failure.reason_code == ExclusionReasonCode.NO_AVAILABILITY:
                next_date = candidate.availability.next_slot_datetime

            result.near_eligible.append(NearEligibleRecord(
                professional_id=candidate.id,
                display_name=candidate.professional.display_name,
                profession_titles=candidate.profession_titles,
                missing_constraint=failure.reason_code,
                reason_fr=failure.reason_fr,
                scores=calculate_deterministic_scores(candidate, demande, config, holistic_signal),
                next_available_date=next_date,
                details=failure.details,
            ))
            result.exclusions.append(ExclusionRecord(
                professional_id=candidate.id,
                reason_code=failure.reason_code,
                reason_fr=failure.reason_fr,
                details=failure.details,
            ))

        else:
            primary = failed[0]
            details = dict(primary.details)
            details["additionalFailures"] = [
                {"reasonCode": f.reason_code.value, "reasonFr": f.reason_fr}
                for f in failed[1:]
            ]
            result.exclusions.append(ExclusionRecord(
                professional_id=candidate.id,
                reason_code=primary.reason_code,
                reason_fr=primary.reason_fr,
                details=details,
            ))

    return result
