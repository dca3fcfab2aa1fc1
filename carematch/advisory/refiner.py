"""
Advisory Refiner

advise(input, config) -> AdvisoryResult, always. Any failure (disabled,
missing key, zero candidates, timeout, HTTP error, malformed or off-schema
response) yields the neutral output: adjustment 0 for every candidate and a
deterministic-only summary.

On success the parsed output is reconciled against the input:
- adjustments clamped to [-5, 5]
- input candidates missing from the response are added back at 0
- response entries for unknown candidates are dropped

Version: advisory_refiner_v1
"""

import json
import logging
import os
import re
import time
from typing import List, Optional, Protocol

from pydantic import ValidationError

from carematch.collector.models import RecommendationConfig

from .client import AdvisoryClient, AdvisoryClientError
from .models import (
    MISSING_CANDIDATE_BULLET,
    NEUTRAL_BULLET,
    NEUTRAL_SUMMARY,
    AdvisoryError,
    AdvisoryInput,
    AdvisoryOutput,
    AdvisoryResult,
    CandidateRanking,
    ExtractedPreferences,
)
from .prompts import (
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_USER_PROMPT_TEMPLATE,
    build_user_prompt,
    validate_prompt_template,
)
from .sanitizer import validate_sanitized_input

logger = logging.getLogger(__name__)

ADVISORY_ENABLED = os.getenv("ADVISORY_ENABLED", "true").lower() == "true"

_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


class Advisor(Protocol):
    """Anything that can refine a ranking. Swap in a stub for tests."""

    model_identifier: str

    async def advise(self, advisory_input: AdvisoryInput, config: RecommendationConfig) -> AdvisoryResult:
        ...


class AdvisoryResponseError(ValueError):
    pass


def neutral_output(advisory_input: AdvisoryInput) -> AdvisoryOutput:
    return AdvisoryOutput(
        extracted_preferences=ExtractedPreferences(),
        rankings=[
            CandidateRanking(
                professional_id=c.id,
                ranking_adjustment=0.0,
                reasoning_bullets=[NEUTRAL_BULLET],
            )
            for c in advisory_input.candidates
        ],
        summary_fr=NEUTRAL_SUMMARY,
    )


def strip_code_fence(text: str) -> str:
    stripped = text.strip()
    match = _FENCE.search(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def parse_advisory_response(response_text: str, advisory_input: AdvisoryInput) -> AdvisoryOutput:
    """Parse, validate and reconcile. Raises AdvisoryResponseError."""
    payload = strip_code_fence(response_text)
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError:
        raise AdvisoryResponseError("Invalid JSON in advisory response")

    if not isinstance(parsed, dict):
        raise AdvisoryResponseError("Advisory response is not a JSON object")

    try:
        output = AdvisoryOutput.model_validate(parsed)
    except ValidationError as e:
        raise AdvisoryResponseError(f"Advisory response failed validation: {e.error_count()} error(s)")

    candidate_ids = [c.id for c in advisory_input.candidates]
    known = set(candidate_ids)

    rankings: List[CandidateRanking] = []
    seen = set()
    for ranking in output.rankings:
        if ranking.professional_id in known and ranking.professional_id not in seen:
            rankings.append(ranking)
            seen.add(ranking.professional_id)

    for candidate_id in candidate_ids:
        if candidate_id not in seen:
            rankings.append(CandidateRanking(
                professional_id=candidate_id,
                ranking_adjustment=0.0,
                reasoning_bullets=[MISSING_CANDIDATE_BULLET],
            ))

    output.rankings = rankings
    return output


class AdvisoryRefiner:
    """Default Advisor over the Anthropic Messages API."""

    def __init__(self, client: Optional[AdvisoryClient] = None, enabled: Optional[bool] = None):
        self.client = client or AdvisoryClient()
        self.enabled = ADVISORY_ENABLED if enabled is None else enabled

    @property
    def model_identifier(self) -> str:
        return self.client.model

    @property
    def is_available(self) -> bool:
        return self.enabled and self.client.is_configured

    def _neutral(
        self,
        advisory_input: AdvisoryInput,
        started: float,
        error_code: Optional[AdvisoryError],
        error: Optional[str],
        success: bool = False,
    ) -> AdvisoryResult:
        return AdvisoryResult(
            success=success,
            output=neutral_output(advisory_input),
            model_used=self.model_identifier,
            processing_time_ms=int((time.monotonic() - started) * 1000),
            error_code=error_code,
            error=error,
        )

    async def advise(self, advisory_input: AdvisoryInput, config: RecommendationConfig) -> AdvisoryResult:
        started = time.monotonic()

        if not advisory_input.candidates:
            return self._neutral(
                advisory_input, started, AdvisoryError.ADVISORY_NO_CANDIDATES, "No candidates to refine"
            )
        if not self.enabled:
            return self._neutral(
                advisory_input, started, AdvisoryError.ADVISORY_DISABLED, "Advisory refinement disabled"
            )

        system_prompt = config.system_prompt or DEFAULT_SYSTEM_PROMPT
        template = config.user_prompt_template or DEFAULT_USER_PROMPT_TEMPLATE
        missing = validate_prompt_template(template)
        if missing:
            logger.warning(f"Config '{config.key}' user template lacks {missing}, using default template")
            template = DEFAULT_USER_PROMPT_TEMPLATE

        try:
            validate_sanitized_input(advisory_input)
            response_text = await self.client.complete(
                system_prompt, build_user_prompt(advisory_input, template)
            )
            output = parse_advisory_response(response_text, advisory_input)
        except AdvisoryClientError as e:
            logger.warning(f"Advisory fallback to neutral output: {e.error_code.value}")
            return self._neutral(advisory_input, started, e.error_code, e.message)
        except (AdvisoryResponseError, ValueError) as e:
            logger.warning(f"Advisory fallback to neutral output: {e}")
            return self._neutral(advisory_input, started, AdvisoryError.ADVISORY_INVALID_RESPONSE, str(e))
        except Exception as e:
            logger.warning(f"Advisory fallback to neutral output: unexpected {type(e).__name__}")
            return self._neutral(advisory_input, started, AdvisoryError.ADVISORY_HTTP_ERROR, str(e))

        return AdvisoryResult(
            success=True,
            output=output,
            model_used=self.model_identifier,
            processing_time_ms=int((time.monotonic() - started) * 1000),
        )
