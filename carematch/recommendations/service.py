"""
Recommendation Service

generate(demande_id, ...)  -> RecommendationResult
fetch_current(demande_id)  -> RecommendationResult | None
log_view(recommendation_id) -> None (never raises)

Pipeline:
    collect -> pre-filter -> score eligible -> advisory (fails open)
    -> rank top N -> save (supersede + insert) -> audit "generated"

Nothing is written until the full result is assembled, so an abandoned run
leaves the previous current run in place. Runs for the same demande are
serialised in-process; the repository serialises across processes.

Version: recommendations_v1
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from carematch.advisory.models import AdvisoryError, AdvisoryInput, AdvisoryResult
from carematch.advisory.refiner import Advisor, AdvisoryRefiner, neutral_output
from carematch.advisory.sanitizer import build_advisory_input
from carematch.collector.collector import DataCollector
from carematch.collector.config import DEFAULT_CONFIG_KEY
from carematch.collector.models import RecommendationConfig
from carematch.collector.store import RecommendationDataStore
from carematch.scoring.constraints import pre_filter_candidates
from carematch.scoring.scorer import calculate_deterministic_scores
from carematch.shared.errors import RecommendationErrorCode, RecommendationException
from carematch.shared.hashing import canonicalize_and_hash

from .aggregator import (
    RECOMMENDATION_TOP_N,
    build_input_snapshot,
    build_recommendation_details,
    rank_candidates,
)
from .models import RecommendationResult
from .repository import RecommendationRepository

logger = logging.getLogger(__name__)

ACTION_GENERATED = "generated"
ACTION_VIEWED = "viewed"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecommendationService:

    def __init__(
        self,
        store: RecommendationDataStore,
        repository: RecommendationRepository,
        advisor: Optional[Advisor] = None,
        collector: Optional[DataCollector] = None,
        top_n: int = RECOMMENDATION_TOP_N,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.repository = repository
        self.advisor = advisor if advisor is not None else AdvisoryRefiner()
        self.collector = collector or DataCollector(store)
        self.top_n = top_n
        self.clock = clock
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # per-demande serialisation
    # ------------------------------------------------------------------

    def _acquire_slot(self, demande_id: str) -> asyncio.Lock:
        lock = self._locks.setdefault(demande_id, asyncio.Lock())
        self._lock_users[demande_id] = self._lock_users.get(demande_id, 0) + 1
        return lock

    def _release_slot(self, demande_id: str) -> None:
        remaining = self._lock_users.get(demande_id, 1) - 1
        if remaining <= 0:
            self._lock_users.pop(demande_id, None)
            self._locks.pop(demande_id, None)
        else:
            self._lock_users[demande_id] = remaining

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------

    async def generate(
        self,
        demande_id: str,
        config_key: Optional[str] = None,
        force_regenerate: bool = False,
        actor_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RecommendationResult:
        """
        Produce (or reuse) the current run for a demande.

        With force_regenerate False an existing current run is returned
        unchanged except processing_time_ms, which is 0. Availability windows
        start at now, or at the service clock when now is omitted.
        """
        lock = self._acquire_slot(demande_id)
        try:
            async with lock:
                if not force_regenerate:
                    existing = await self.fetch_current(demande_id)
                    if existing is not None:
                        logger.info(f"Reusing current recommendation run for demande {demande_id}")
                        return existing.model_copy(update={"processing_time_ms": 0})

                return await self._run(demande_id, config_key or DEFAULT_CONFIG_KEY, actor_id, now)
        finally:
            self._release_slot(demande_id)

    async def fetch_current(self, demande_id: str) -> Optional[RecommendationResult]:
        try:
            return await self.repository.fetch_current(demande_id)
        except RecommendationException:
            raise
        except Exception as e:
            raise RecommendationException(
                RecommendationErrorCode.DATA_FETCH_FAILED,
                f"Failed to fetch current recommendations for {demande_id}: {type(e).__name__}",
                http_code=503,
            )

    async def log_view(self, recommendation_id: str, actor_id: Optional[str] = None) -> None:
        await self._log_event(
            recommendation_id,
            ACTION_VIEWED,
            actor_id,
            {"timestamp": self.clock().isoformat()},
        )

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    async def _run(
        self,
        demande_id: str,
        config_key: str,
        actor_id: Optional[str],
        now: Optional[datetime],
    ) -> RecommendationResult:
        started = time.monotonic()
        now = now or self.clock()

        bundle = await self.collector.collect(demande_id, config_key, now=now)
        demande, config, signal = bundle.demande, bundle.config, bundle.holistic_signal

        prefilter = pre_filter_candidates(bundle.candidates, demande, config, signal)
        scores = {
            c.id: calculate_deterministic_scores(c, demande, config, signal)
            for c in prefilter.eligible
        }

        advisory_input = build_advisory_input(demande, signal, prefilter.eligible, scores)
        advisory = await self._advise(advisory_input, config)

        ranked = rank_candidates(prefilter.eligible, scores, advisory.output)
        recommendations = build_recommendation_details(ranked, self.top_n)

        snapshot = build_input_snapshot(bundle, prefilter, bundle.collected_at)

        result = RecommendationResult(
            demande_id=demande.id,
            config_id=config.id,
            config_key=config.key,
            input_snapshot=snapshot,
            input_hash=canonicalize_and_hash(snapshot),
            recommendations=recommendations,
            ai_summary_fr=advisory.output.summary_fr,
            ai_extracted_preferences=advisory.output.extracted_preferences,
            exclusions=prefilter.exclusions,
            near_eligible=prefilter.near_eligible,
            generated_at=self.clock(),
            generated_by=actor_id,
            model_version=advisory.model_used,
            advisory_success=advisory.success,
            processing_time_ms=int((time.monotonic() - started) * 1000),
            is_current=True,
        )

        stored = await self.repository.save_run(result)

        await self._log_event(stored.id, ACTION_GENERATED, actor_id, {
            "configKey": config.key,
            "candidateCount": len(recommendations),
            "eligibleCount": len(prefilter.eligible),
            "exclusionCount": len(prefilter.exclusions),
            "nearEligibleCount": len(prefilter.near_eligible),
            "advisorySuccess": advisory.success,
            "processingTimeMs": stored.processing_time_ms,
        })

        logger.info(
            f"Generated recommendations for demande {demande.id}: "
            f"{len(recommendations)} recommended, {len(prefilter.exclusions)} excluded, "
            f"{len(prefilter.near_eligible)} near-eligible in {stored.processing_time_ms}ms"
        )
        return stored

    async def _advise(self, advisory_input: AdvisoryInput, config: RecommendationConfig) -> AdvisoryResult:
        """Advisor call with the fail-open contract enforced here too."""
        model = getattr(self.advisor, "model_identifier", None) or "unknown"
        try:
            return await self.advisor.advise(advisory_input, config)
        except Exception as e:
            logger.warning(f"Advisor raised {type(e).__name__}, using neutral output")
            return AdvisoryResult(
                success=False,
                output=neutral_output(advisory_input),
                model_used=model,
                error_code=AdvisoryError.ADVISORY_HTTP_ERROR,
                error=str(e),
            )

    async def _log_event(
        self,
        recommendation_id: str,
        action: str,
        actor_id: Optional[str],
        context: Dict[str, Any],
    ) -> None:
        try:
            await self.repository.log_event(recommendation_id, action, actor_id, context)
        except Exception as e:
            logger.warning(f"Failed to write '{action}' audit entry for {recommendation_id}: {type(e).__name__}")
