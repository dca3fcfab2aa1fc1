"""
PII sanitizer for the advisory boundary.

Client free text is scrubbed of phone numbers, e-mail addresses, Canadian
postal codes and honorific + name patterns. Candidate summaries are reduced
to a fixed set of non-identifying fields.
"""

import logging
import re
from typing import Dict, Iterable

from carematch.collector.models import CandidateData, DemandeData
from carematch.holistic.models import HolisticSignal
from carematch.scoring.models import ScoreBreakdown
from carematch.scoring.scorer import count_matched_motifs

from .models import AdvisoryInput, HolisticSummary, SanitizedCandidate

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"(\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
POSTAL_PATTERN = re.compile(r"[A-Za-z]\d[A-Za-z][\s-]?\d[A-Za-z]\d")
NAME_PATTERN = re.compile(r"\b(M\.|Mme\.|Mme|Dr\.|Me\.)\s+[A-ZÀ-Ý][a-zà-ÿ]+")
DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}|\d{2}/\d{2}/\d{4}")

ALLOWED_CANDIDATE_FIELDS = frozenset(SanitizedCandidate.model_fields.keys())


def sanitize_text(text: str) -> str:
    if not text:
        return ""
    sanitized = EMAIL_PATTERN.sub("[EMAIL]", text)
    sanitized = PHONE_PATTERN.sub("[PHONE]", sanitized)
    sanitized = POSTAL_PATTERN.sub("[POSTAL]", sanitized)
    sanitized = NAME_PATTERN.sub("[NAME]", sanitized)
    return sanitized


def combine_client_text(demande: DemandeData) -> str:
    """Description, other-motif text and notes, blank-line separated, sanitized."""
    parts = [
        p.strip()
        for p in (demande.motif_description, demande.other_motif_text, demande.notes)
        if p and p.strip()
    ]
    return sanitize_text("\n\n".join(parts))


def sanitize_candidate(candidate: CandidateData, demande: DemandeData, scores: ScoreBreakdown) -> SanitizedCandidate:
    primary = candidate.primary_profession
    return SanitizedCandidate(
        id=candidate.id,
        profession_type=(primary.category_key or primary.title_key) if primary else "unknown",
        deterministic_score=round(scores.total_score, 4),
        matched_motif_count=count_matched_motifs(candidate, demande),
        available_slot_count=candidate.availability.slots_in_window,
        years_experience=candidate.professional.years_experience or 0,
    )


def build_advisory_input(
    demande: DemandeData,
    holistic_signal: HolisticSignal,
    eligible: Iterable[CandidateData],
    scores: Dict[str, ScoreBreakdown],
) -> AdvisoryInput:
    """
    Advisory input for the eligible pool, best deterministic score first.
    """
    candidates = [sanitize_candidate(c, demande, scores[c.id]) for c in eligible]
    candidates.sort(key=lambda c: (-c.deterministic_score, c.id))

    return AdvisoryInput(
        demand_type=demande.demand_type or "individual",
        urgency_level=demande.urgency_level or "low",
        motif_keys=list(demande.motif_keys),
        client_text=combine_client_text(demande),
        has_legal_context=demande.has_legal_context,
        clientele_categories=[c.value for c in demande.clientele_categories],
        holistic_signal=HolisticSummary(
            score=holistic_signal.score,
            category=holistic_signal.category.value,
            matched_keywords=list(holistic_signal.matched_keywords),
            recommend_naturopath=holistic_signal.recommend_naturopath,
            has_clinical_override=holistic_signal.has_clinical_override,
        ),
        candidates=candidates,
    )


def validate_sanitized_input(advisory_input: AdvisoryInput) -> bool:
    """
    Warn on residual PII-looking text; raise on unexpected candidate fields.
    """
    for name, pattern in (
        ("email", EMAIL_PATTERN),
        ("phone", PHONE_PATTERN),
        ("postal", POSTAL_PATTERN),
        ("date", DATE_PATTERN),
    ):
        if pattern.search(advisory_input.client_text):
            logger.warning(f"Possible PII ({name}) left in sanitized client text")

    for candidate in advisory_input.candidates:
        unexpected = set(candidate.model_dump().keys()) - ALLOWED_CANDIDATE_FIELDS
        if unexpected:
            raise ValueError(f"Unexpected field(s) in sanitized candidate: {sorted(unexpected)}")

    return True
