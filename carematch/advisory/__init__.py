"""
CareMatch Advisory Refiner

Bounded (+/-5, scaled x0.1) ranking nudges and French justification bullets
from an external text-generation service. Fails open to a neutral no-op.

Version: advisory_refiner_v1
"""

from .models import (
    AdvisoryError,
    AdvisoryInput,
    AdvisoryOutput,
    AdvisoryResult,
    CandidateRanking,
    ExtractedPreferences,
    SanitizedCandidate,
    MAX_ADJUSTMENT,
    NEUTRAL_BULLET,
    NEUTRAL_SUMMARY,
)
from .client import AdvisoryClient, AdvisoryClientError
from .prompts import build_user_prompt, validate_prompt_template
from .refiner import Advisor, AdvisoryRefiner, neutral_output, parse_advisory_response
from .sanitizer import build_advisory_input, sanitize_text, validate_sanitized_input

__all__ = [
    "AdvisoryError",
    "AdvisoryInput",
    "AdvisoryOutput",
    "AdvisoryResult",
    "CandidateRanking",
    "ExtractedPreferences",
    "SanitizedCandidate",
    "MAX_ADJUSTMENT",
    "NEUTRAL_BULLET",
    "NEUTRAL_SUMMARY",
    "AdvisoryClient",
    "AdvisoryClientError",
    "build_user_prompt",
    "validate_prompt_template",
    "Advisor",
    "AdvisoryRefiner",
    "neutral_output",
    "parse_advisory_response",
    "build_advisory_input",
    "sanitize_text",
    "validate_sanitized_input",
]
