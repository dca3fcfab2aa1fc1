"""
Recommendation Data Store

Read-only boundary to the scheduling database. The collector depends on the
RecommendationDataStore protocol; PostgresDataStore implements it over an
asyncpg pool, InMemoryDataStore (carematch.recommendations.mocks) for tests.

All methods return plain dicts shaped like the *Row models in
carematch.collector.models.
"""

import json
import os
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence

import asyncpg
from asyncpg import Pool

from carematch.shared.errors import RecommendationErrorCode, RecommendationException

from .availability import BOOKING_STATUSES

DATABASE_URL = os.getenv("DATABASE_URL")


class RecommendationDataStore(Protocol):
    async def fetch_demande(self, demande_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def fetch_active_professionals(self) -> List[Dict[str, Any]]:
        ...

    async def fetch_config(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    async def fetch_available_blocks(
        self, professional_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[Dict[str, Any]]:
        ...

    async def fetch_bookings(
        self,
        professional_ids: Sequence[str],
        start: datetime,
        end: datetime,
        statuses: Sequence[str] = BOOKING_STATUSES,
    ) -> List[Dict[str, Any]]:
        ...


# ============================================================================
# POOL
# ============================================================================

_pool: Optional[Pool] = None


async def get_pool() -> Pool:
    """Get or create database connection pool."""
    global _pool
    if _pool is None:
        if not DATABASE_URL:
            raise RecommendationException(
                RecommendationErrorCode.STORE_NOT_CONFIGURED,
                "DATABASE_URL is not set",
                http_code=503,
            )
        _pool = await asyncpg.create_pool(DATABASE_URL, min_size=2, max_size=10)
    return _pool


async def close_pool():
    """Close database connection pool."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None


def _json_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return json.loads(value)
    return list(value)


# ============================================================================
# QUERIES
# ============================================================================

DEMANDE_QUERY = """
SELECT
    d.id::text AS id,
    d.demande_id,
    d.demand_type,
    d.urgency,
    d.selected_motifs,
    d.besoin_raison,
    d.motif_description,
    d.other_motif_text,
    d.notes,
    d.has_legal_context,
    COALESCE(
        (SELECT json_agg(json_build_object('client_id', dp.client_id::text, 'birthday', c.birthday))
         FROM demande_participants dp
         LEFT JOIN clients c ON c.id = dp.client_id
         WHERE dp.demande_id = d.id),
        '[]'::json
    ) AS participants
FROM demandes d
WHERE d.demande_id = $1
"""

PROFESSIONALS_QUERY = """
SELECT
    p.id::text AS id,
    p.profile_id::text AS profile_id,
    p.status,
    p.years_experience,
    pr.display_name,
    COALESCE(
        (SELECT json_agg(json_build_object(
            'profession_title_key', pp.profession_title_key,
            'is_primary', pp.is_primary,
            'label_fr', pt.label_fr,
            'profession_category_key', pt.profession_category_key))
         FROM professional_professions pp
         JOIN profession_titles pt ON pt.key = pp.profession_title_key
         WHERE pp.professional_id = p.id),
        '[]'::json
    ) AS professions,
    COALESCE(
        (SELECT json_agg(json_build_object(
            'code', s.code,
            'category', s.category,
            'proficiency_level', ps.proficiency_level))
         FROM professional_specialties ps
         JOIN specialties s ON s.id = ps.specialty_id
         WHERE ps.professional_id = p.id),
        '[]'::json
    ) AS specialties,
    COALESCE(
        (SELECT json_agg(m.key)
         FROM professional_motifs pm
         JOIN motifs m ON m.id = pm.motif_id
         WHERE pm.professional_id = p.id),
        '[]'::json
    ) AS motifs
FROM professionals p
JOIN profiles pr ON pr.id = p.profile_id
WHERE p.status = 'active'
ORDER BY p.id
"""

CONFIG_QUERY = """
SELECT id::text AS id, key, name_fr, description_fr, system_prompt, user_prompt_template,
       weight_motif_match, weight_specialty_match, weight_availability,
       weight_profession_fit, weight_experience,
       require_availability_within_days, require_motif_overlap, require_population_match,
       availability_max_hours, experience_max_years, is_active
FROM recommendation_configs
WHERE key = $1
"""

BLOCKS_QUERY = """
SELECT professional_id::text AS professional_id, start_time, end_time, type
FROM availability_blocks
WHERE professional_id::text = ANY($1::text[])
  AND type = 'available'
  AND end_time > $2
  AND start_time < $3
ORDER BY start_time
"""

BOOKINGS_QUERY = """
SELECT professional_id::text AS professional_id, start_time, duration_minutes, status
FROM appointments
WHERE professional_id::text = ANY($1::text[])
  AND status = ANY($4::text[])
  AND start_time < $3
  AND start_time + make_interval(mins => duration_minutes) > $2
ORDER BY start_time
"""


class PostgresDataStore:
    """asyncpg-backed store. Pool defaults to the module-level shared pool."""

    def __init__(self, pool: Optional[Pool] = None):
        self.pool = pool

    async def _get_pool(self) -> Pool:
        if not self.pool:
            self.pool = await get_pool()
        return self.pool

    async def fetch_demande(self, demande_id: str) -> Optional[Dict[str, Any]]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(DEMANDE_QUERY, demande_id)
        if row is None:
            return None
        result = dict(row)
        result["participants"] = _json_list(result.get("participants"))
        return result

    async def fetch_active_professionals(self) -> List[Dict[str, Any]]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(PROFESSIONALS_QUERY)
        professionals = []
        for row in rows:
            item = dict(row)
            for key in ("professions", "specialties", "motifs"):
                item[key] = _json_list(item.get(key))
            professionals.append(item)
        return professionals

    async def fetch_config(self, key: str) -> Optional[Dict[str, Any]]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            try:
                row = await conn.fetchrow(CONFIG_QUERY, key)
            except asyncpg.exceptions.UndefinedTableError:
                return None
        return dict(row) if row else None

    async def fetch_available_blocks(
        self, professional_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[Dict[str, Any]]:
        if not professional_ids:
            return []
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(BLOCKS_QUERY, list(professional_ids), start, end)
        return [dict(r) for r in rows]

    async def fetch_bookings(
        self,
        professional_ids: Sequence[str],
        start: datetime,
        end: datetime,
        statuses: Sequence[str] = BOOKING_STATUSES,
    ) -> List[Dict[str, Any]]:
        if not professional_ids:
            return []
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(BOOKINGS_QUERY, list(professional_ids), start, end, list(statuses))
        return [dict(r) for r in rows]
