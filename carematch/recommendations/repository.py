"""
Recommendation Repository

Persistence of runs, per-professional detail rows and the audit log.

save_run is the only write on the hot path. It runs in one transaction
holding a per-demande advisory lock:
    lock -> supersede current -> insert new current -> detail rows
so two concurrent regenerations for the same demande serialise and exactly
one row stays current.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

import asyncpg
from asyncpg import Pool

from carematch.collector.store import get_pool
from carematch.shared.errors import RecommendationErrorCode, RecommendationException

from .models import RecommendationResult

logger = logging.getLogger(__name__)


class RecommendationRepository(Protocol):
    async def fetch_current(self, demande_id: str) -> Optional[RecommendationResult]:
        ...

    async def save_run(self, result: RecommendationResult) -> RecommendationResult:
        ...

    async def log_event(
        self,
        recommendation_id: str,
        action: str,
        actor_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...


# ============================================================================
# QUERIES
# ============================================================================

DEMANDE_UUID_QUERY = "SELECT id FROM demandes WHERE demande_id = $1"

CURRENT_RUN_QUERY = """
SELECT r.id::text AS id, d.demande_id, r.config_id::text AS config_id, r.config_key,
       r.input_snapshot, r.input_hash, r.recommendations, r.ai_summary_fr,
       r.ai_extracted_preferences, r.exclusions, r.near_eligible, r.advisory_success,
       r.generated_at, r.generated_by, r.model_version,
       r.processing_time_ms, r.is_current, r.superseded_at, r.superseded_by::text AS superseded_by
FROM demande_recommendations r
JOIN demandes d ON d.id = r.demande_id
WHERE d.demande_id = $1 AND r.is_current = TRUE
ORDER BY r.generated_at DESC
LIMIT 1
"""

LOCK_QUERY = "SELECT pg_advisory_xact_lock(hashtext($1))"

SUPERSEDE_QUERY = """
UPDATE demande_recommendations
SET is_current = FALSE, superseded_at = NOW()
WHERE demande_id = $1 AND is_current = TRUE
RETURNING id
"""

INSERT_RUN_QUERY = """
INSERT INTO demande_recommendations (
    id, demande_id, config_id, config_key, input_snapshot, input_hash, recommendations,
    ai_summary_fr, ai_extracted_preferences, exclusions, near_eligible, advisory_success,
    generated_at, generated_by, model_version, processing_time_ms, is_current
) VALUES (
    $1::uuid, $2, $3::uuid, $4, $5::jsonb, $6, $7::jsonb,
    $8, $9::jsonb, $10::jsonb, $11::jsonb, $12,
    $13, $14, $15, $16, TRUE
)
"""

LINK_SUPERSEDED_QUERY = """
UPDATE demande_recommendations SET superseded_by = $1::uuid
WHERE id = ANY($2::uuid[])
"""

INSERT_DETAIL_QUERY = """
INSERT INTO recommendation_professional_details (
    recommendation_id, professional_id, rank, total_score, deterministic_score,
    motif_match_score, specialty_match_score, availability_score, profession_fit_score,
    experience_score, ai_ranking_adjustment, ai_reasoning_bullets, matched_motifs,
    matched_specialties, available_slots_count, next_available_slot
) VALUES ($1::uuid, $2::uuid, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12::jsonb, $13::jsonb, $14::jsonb, $15, $16)
"""

INSERT_AUDIT_QUERY = """
INSERT INTO recommendation_audit_log (recommendation_id, actor_id, action, context)
VALUES ($1::uuid, $2, $3, $4::jsonb)
"""


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def _loads(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


def result_from_row(row: Dict[str, Any]) -> RecommendationResult:
    data = dict(row)
    for key in ("input_snapshot", "recommendations", "ai_extracted_preferences", "exclusions", "near_eligible"):
        data[key] = _loads(data.get(key))
    for key in ("recommendations", "exclusions", "near_eligible"):
        data[key] = data[key] or []
    data["input_snapshot"] = data["input_snapshot"] or {}
    data["processing_time_ms"] = data.get("processing_time_ms") or 0
    return RecommendationResult(**data)


class PostgresRecommendationRepository:
    """asyncpg-backed repository sharing the collector's pool by default."""

    def __init__(self, pool: Optional[Pool] = None):
        self.pool = pool

    async def _get_pool(self) -> Pool:
        if not self.pool:
            self.pool = await get_pool()
        return self.pool

    async def fetch_current(self, demande_id: str) -> Optional[RecommendationResult]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            try:
                row = await conn.fetchrow(CURRENT_RUN_QUERY, demande_id)
            except asyncpg.exceptions.UndefinedTableError:
                return None
        return result_from_row(dict(row)) if row else None

    async def save_run(self, result: RecommendationResult) -> RecommendationResult:
        pool = await self._get_pool()
        payload = result.model_dump(mode="json")

        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    demande_uuid = await conn.fetchval(DEMANDE_UUID_QUERY, result.demande_id)
                    if demande_uuid is None:
                        raise RecommendationException(
                            RecommendationErrorCode.DEMANDE_NOT_FOUND,
                            f"Demande {result.demande_id} not found",
                            http_code=404,
                        )

                    await conn.execute(LOCK_QUERY, result.demande_id)
                    superseded = await conn.fetch(SUPERSEDE_QUERY, demande_uuid)

                    await conn.execute(
                        INSERT_RUN_QUERY,
                        result.id,
                        demande_uuid,
                        result.config_id,
                        result.config_key,
                        _dumps(payload["input_snapshot"]),
                        result.input_hash,
                        _dumps(payload["recommendations"]),
                        result.ai_summary_fr,
                        _dumps(payload["ai_extracted_preferences"]) if result.ai_extracted_preferences else None,
                        _dumps(payload["exclusions"]),
                        _dumps(payload["near_eligible"]),
                        result.advisory_success,
                        result.generated_at,
                        result.generated_by,
                        result.model_version,
                        result.processing_time_ms,
                    )

                    if superseded:
                        await conn.execute(
                            LINK_SUPERSEDED_QUERY, result.id, [r["id"] for r in superseded]
                        )

                    await self._insert_details(conn, result)
        except RecommendationException:
            raise
        except Exception as e:
            raise RecommendationException(
                RecommendationErrorCode.PERSISTENCE_FAILED,
                f"Failed to store recommendation run for {result.demande_id}: {type(e).__name__}",
                http_code=500,
            )

        return result

    async def _insert_details(self, conn, result: RecommendationResult) -> None:
        if not result.recommendations:
            return
        rows = [
            (
                result.id,
                rec.professional_id,
                rec.rank,
                rec.total_score,
                rec.deterministic_score,
                rec.motif_match_score,
                rec.specialty_match_score,
                rec.availability_score,
                rec.profession_fit_score,
                rec.experience_score,
                rec.ai_ranking_adjustment,
                _dumps(rec.ai_reasoning_bullets),
                _dumps(rec.matched_motifs),
                _dumps(rec.matched_specialties),
                rec.available_slots_count,
                rec.next_available_slot,
            )
            for rec in result.recommendations
        ]
        try:
            # savepoint: a failed detail insert must not roll back the run
            async with conn.transaction():
                await conn.executemany(INSERT_DETAIL_QUERY, rows)
        except Exception as e:
            logger.warning(f"Failed to insert detail rows for run {result.id}: {type(e).__name__}")

    async def log_event(
        self,
        recommendation_id: str,
        action: str,
        actor_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                INSERT_AUDIT_QUERY,
                recommendation_id,
                actor_id,
                action,
                _dumps(context or {}),
            )
