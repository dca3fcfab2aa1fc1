"""
CareMatch In-Memory Collaborators

Replaceable implementations of the data store, repository and advisor so the
full pipeline runs without PostgreSQL or the advisory service.

Usage:
    from carematch.recommendations.mocks import InMemoryDataStore, InMemoryRecommendationRepository

    store = InMemoryDataStore(demandes=[...], professionals=[...])
    service = RecommendationService(store, InMemoryRecommendationRepository(), advisor=StubAdvisor())

They speak the same row shapes as the Postgres implementations.
"""

import asyncio
import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from carematch.advisory.models import (
    AdvisoryInput,
    AdvisoryOutput,
    AdvisoryResult,
    CandidateRanking,
    ExtractedPreferences,
)
from carematch.advisory.refiner import neutral_output
from carematch.collector.availability import BOOKING_STATUSES, as_utc
from carematch.collector.models import RecommendationConfig

from .models import RecommendationResult


class InMemoryDataStore:
    """Dict-backed RecommendationDataStore. Counts calls for concurrency tests."""

    def __init__(
        self,
        demandes: Optional[List[Dict[str, Any]]] = None,
        professionals: Optional[List[Dict[str, Any]]] = None,
        configs: Optional[List[Dict[str, Any]]] = None,
        blocks: Optional[List[Dict[str, Any]]] = None,
        bookings: Optional[List[Dict[str, Any]]] = None,
        latency: float = 0.0,
    ):
        self.demandes = {d["demande_id"]: d for d in (demandes or [])}
        self.professionals = list(professionals or [])
        self.configs = {c["key"]: c for c in (configs or [])}
        self.blocks = list(blocks or [])
        self.bookings = list(bookings or [])
        self.latency = latency
        self.availability_calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def _pause(self):
        if self.latency:
            await asyncio.sleep(self.latency)

    async def fetch_demande(self, demande_id: str) -> Optional[Dict[str, Any]]:
        await self._pause()
        row = self.demandes.get(demande_id)
        return copy.deepcopy(row) if row else None

    async def fetch_active_professionals(self) -> List[Dict[str, Any]]:
        await self._pause()
        return [copy.deepcopy(p) for p in self.professionals if p.get("status", "active") == "active"]

    async def fetch_config(self, key: str) -> Optional[Dict[str, Any]]:
        await self._pause()
        row = self.configs.get(key)
        return copy.deepcopy(row) if row else None

    async def fetch_available_blocks(
        self, professional_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[Dict[str, Any]]:
        ids = set(professional_ids)
        self.availability_calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await self._pause()
            return [
                dict(b) for b in self.blocks
                if b["professional_id"] in ids
                and b.get("type", "available") == "available"
                and as_utc(b["end_time"]) > start
                and as_utc(b["start_time"]) < end
            ]
        finally:
            self.in_flight -= 1

    async def fetch_bookings(
        self,
        professional_ids: Sequence[str],
        start: datetime,
        end: datetime,
        statuses: Sequence[str] = BOOKING_STATUSES,
    ) -> List[Dict[str, Any]]:
        ids = set(professional_ids)
        await self._pause()
        return [
            dict(b) for b in self.bookings
            if b["professional_id"] in ids
            and b.get("status", "confirmed") in statuses
            and as_utc(b["start_time"]) < end
            and as_utc(b["start_time"]) + timedelta(minutes=b["duration_minutes"]) > start
        ]


class InMemoryRecommendationRepository:
    """Keeps every run; supersede + insert happen under one lock."""

    def __init__(self):
        self.runs: List[RecommendationResult] = []
        self.audit_log: List[Dict[str, Any]] = []
        self.fail_audit = False
        self._lock = asyncio.Lock()

    async def fetch_current(self, demande_id: str) -> Optional[RecommendationResult]:
        for run in reversed(self.runs):
            if run.demande_id == demande_id and run.is_current:
                return run.model_copy(deep=True)
        return None

    async def save_run(self, result: RecommendationResult) -> RecommendationResult:
        async with self._lock:
            now = datetime.now(timezone.utc)
            for run in self.runs:
                if run.demande_id == result.demande_id and run.is_current:
                    run.is_current = False
                    run.superseded_at = now
                    run.superseded_by = result.id
            stored = result.model_copy(deep=True)
            stored.is_current = True
            self.runs.append(stored)
            return stored.model_copy(deep=True)

    async def log_event(
        self,
        recommendation_id: str,
        action: str,
        actor_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.fail_audit:
            raise RuntimeError("audit log unavailable")
        self.audit_log.append({
            "recommendation_id": recommendation_id,
            "action": action,
            "actor_id": actor_id,
            "context": dict(context or {}),
        })

    def current_runs(self, demande_id: str) -> List[RecommendationResult]:
        return [r for r in self.runs if r.demande_id == demande_id and r.is_current]


class StubAdvisor:
    """
    Deterministic Advisor.

    adjustments maps professional id -> raw adjustment; unlisted candidates
    get 0. neutral=True mimics a failed advisory call.
    """

    model_identifier = "stub-advisor"

    def __init__(self, adjustments: Optional[Dict[str, float]] = None, neutral: bool = False):
        self.adjustments = adjustments or {}
        self.neutral = neutral
        self.calls: List[AdvisoryInput] = []

    async def advise(self, advisory_input: AdvisoryInput, config: RecommendationConfig) -> AdvisoryResult:
        self.calls.append(advisory_input)
        if self.neutral or not advisory_input.candidates:
            return AdvisoryResult(
                success=False,
                output=neutral_output(advisory_input),
                model_used=self.model_identifier,
            )
        return AdvisoryResult(
            success=True,
            output=AdvisoryOutput(
                extracted_preferences=ExtractedPreferences(),
                rankings=[
                    CandidateRanking(
                        professional_id=c.id,
                        ranking_adjustment=self.adjustments.get(c.id, 0.0),
                        reasoning_bullets=[f"Ajustement de test pour {c.profession_type}"],
                    )
                    for c in advisory_input.candidates
                ],
                summary_fr="Résumé de test.",
            ),
            model_used=self.model_identifier,
        )
