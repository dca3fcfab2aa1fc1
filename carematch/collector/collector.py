"""
Data Collector

Assembles one consistent snapshot {demande, candidates, config} for a
matching run.

- demande, professional pool and config are fetched concurrently
- availability is fetched in batches of professional ids, with a semaphore
  capping batches in flight
- raw rows are validated here; nothing untyped reaches scoring

Version: data_collector_v1
"""

import asyncio
import logging
import os
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from carematch.holistic import classify_holistic_intent
from carematch.shared.errors import RecommendationErrorCode, RecommendationException

from .availability import as_utc, compute_availability
from .config import DEFAULT_CONFIG_KEY, resolve_config
from .models import (
    AvailabilitySummary,
    BookingRow,
    CandidateData,
    DemandeData,
    DemandeRow,
    ProfessionalInfo,
    ProfessionalRow,
    ProfessionEntry,
    ProficiencyLevel,
    RecommendationConfig,
    RecommendationDataBundle,
    ScheduleBlockRow,
    SpecialtyEntry,
)
from .population import derive_clientele_categories
from .store import RecommendationDataStore

logger = logging.getLogger(__name__)

# ============================================================================
# CONFIGURATION
# ============================================================================

AVAILABILITY_MAX_CONCURRENCY = int(os.getenv("AVAILABILITY_MAX_CONCURRENCY", "8"))
AVAILABILITY_BATCH_SIZE = int(os.getenv("AVAILABILITY_BATCH_SIZE", "25"))
AVAILABILITY_LOOKAHEAD_DAYS = int(os.getenv("AVAILABILITY_LOOKAHEAD_DAYS", "60"))

# Scoring window used when the config disables the availability constraint
FALLBACK_WINDOW_DAYS = 14

UNKNOWN_DISPLAY_NAME = "Professionnel inconnu"
KNOWN_DEMAND_TYPES = ("individual", "couple", "family", "group")


# ============================================================================
# ROW MAPPING
# ============================================================================

def map_demande(row: DemandeRow, today=None) -> DemandeData:
    demand_type = row.demand_type if row.demand_type in KNOWN_DEMAND_TYPES else None
    return DemandeData(
        id=row.demande_id,
        demand_type=demand_type,
        urgency_level=row.urgency,
        motif_keys=list(dict.fromkeys(row.selected_motifs or [])),
        reason=row.besoin_raison or "",
        motif_description=row.motif_description or "",
        other_motif_text=row.other_motif_text or "",
        notes=row.notes or "",
        clientele_categories=derive_clientele_categories(
            (p.birthday for p in row.participants), today
        ),
        has_legal_context=(row.has_legal_context or "").lower() == "yes",
    )


def _proficiency(value: Optional[str]) -> Optional[ProficiencyLevel]:
    try:
        return ProficiencyLevel(value) if value else None
    except ValueError:
        return None


def map_candidate(row: ProfessionalRow, availability: AvailabilitySummary) -> CandidateData:
    years = row.years_experience if row.years_experience is None or row.years_experience >= 0 else None
    return CandidateData(
        professional=ProfessionalInfo(
            id=row.id,
            profile_id=row.profile_id,
            display_name=row.display_name or UNKNOWN_DISPLAY_NAME,
            status=row.status,
            years_experience=years,
        ),
        professions=[
            ProfessionEntry(
                title_key=p.profession_title_key,
                label_fr=p.label_fr or p.profession_title_key,
                category_key=p.profession_category_key or "",
                is_primary=p.is_primary,
            )
            for p in row.professions
        ],
        motifs=list(dict.fromkeys(row.motifs)),
        specialties=[
            SpecialtyEntry(
                code=s.code,
                category=s.category,
                proficiency_level=_proficiency(s.proficiency_level),
            )
            for s in row.specialties
        ],
        availability=availability,
    )


def holistic_text(demande: DemandeData) -> str:
    parts = [demande.reason, demande.motif_description, demande.other_motif_text]
    return " ".join(p.strip() for p in parts if p and p.strip())


def _chunks(items: Sequence[str], size: int) -> List[List[str]]:
    size = max(1, size)
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


# ============================================================================
# COLLECTOR
# ============================================================================

class DataCollector:
    """
    Collects the input bundle for one run.

    Store failures propagate as RecommendationException(DATA_FETCH_FAILED);
    a missing demande is DEMANDE_NOT_FOUND.
    """

    def __init__(
        self,
        store: RecommendationDataStore,
        max_concurrency: int = AVAILABILITY_MAX_CONCURRENCY,
        batch_size: int = AVAILABILITY_BATCH_SIZE,
        lookahead_days: int = AVAILABILITY_LOOKAHEAD_DAYS,
    ):
        self.store = store
        self.max_concurrency = max(1, max_concurrency)
        self.batch_size = max(1, batch_size)
        self.lookahead_days = lookahead_days

    async def collect(
        self,
        demande_id: str,
        config_key: str = DEFAULT_CONFIG_KEY,
        now: Optional[datetime] = None,
    ) -> RecommendationDataBundle:
        now = as_utc(now) if now else datetime.now(timezone.utc)

        try:
            raw_demande, raw_professionals, raw_config = await asyncio.gather(
                self.store.fetch_demande(demande_id),
                self.store.fetch_active_professionals(),
                self.store.fetch_config(config_key),
            )
        except RecommendationException:
            raise
        except Exception as e:
            logger.error(f"Data fetch failed for demande {demande_id}: {type(e).__name__}")
            raise RecommendationException(
                RecommendationErrorCode.DATA_FETCH_FAILED,
                f"Failed to fetch recommendation data for {demande_id}: {e}",
                http_code=503,
            )

        if not raw_demande:
            raise RecommendationException(
                RecommendationErrorCode.DEMANDE_NOT_FOUND,
                f"Demande {demande_id} not found",
                http_code=404,
            )

        try:
            demande = map_demande(DemandeRow(**raw_demande), now.date())
            professionals = [ProfessionalRow(**p) for p in raw_professionals]
            config = resolve_config(raw_config, config_key)
        except ValidationError as e:
            raise RecommendationException(
                RecommendationErrorCode.DATA_FETCH_FAILED,
                f"Malformed store record for {demande_id}: {e.error_count()} validation error(s)",
                http_code=503,
            )

        professionals = [p for p in professionals if p.status == "active"]
        availability = await self.fetch_availability(
            [p.id for p in professionals], config, now
        )

        candidates = [
            map_candidate(p, availability.get(p.id, AvailabilitySummary()))
            for p in professionals
        ]

        logger.info(
            f"Collected demande {demande.id}: {len(candidates)} active professionals, "
            f"config '{config.key}'"
        )

        return RecommendationDataBundle(
            demande=demande,
            candidates=candidates,
            config=config,
            holistic_signal=classify_holistic_intent(holistic_text(demande)),
            collected_at=now,
        )

    async def fetch_availability(
        self,
        professional_ids: Sequence[str],
        config: RecommendationConfig,
        now: datetime,
    ) -> Dict[str, AvailabilitySummary]:
        """
        Availability for every professional id, batched and bounded.

        Window statistics cover the configured window; the next free slot is
        searched up to the lookahead horizon.
        """
        if not professional_ids:
            return {}

        window_days = config.require_availability_within_days
        if window_days <= 0:
            window_days = FALLBACK_WINDOW_DAYS
        window_end = now + timedelta(days=window_days)
        horizon_end = now + timedelta(days=max(window_days, self.lookahead_days))

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run_batch(batch: List[str]) -> Dict[str, AvailabilitySummary]:
            async with semaphore:
                raw_blocks, raw_bookings = await asyncio.gather(
                    self.store.fetch_available_blocks(batch, now, horizon_end),
                    self.store.fetch_bookings(batch, now, horizon_end),
                )

            blocks_by_pro = defaultdict(list)
            for raw in raw_blocks:
                block = ScheduleBlockRow(**raw)
                blocks_by_pro[block.professional_id].append(block)
            bookings_by_pro = defaultdict(list)
            for raw in raw_bookings:
                booking = BookingRow(**raw)
                bookings_by_pro[booking.professional_id].append(booking)

            return {
                pro_id: compute_availability(
                    blocks_by_pro.get(pro_id, []),
                    bookings_by_pro.get(pro_id, []),
                    now,
                    window_end,
                )
                for pro_id in batch
            }

        try:
            results = await asyncio.gather(
                *(run_batch(batch) for batch in _chunks(list(professional_ids), self.batch_size))
            )
        except Exception as e:
            logger.error(f"Availability fetch failed: {type(e).__name__}")
            raise RecommendationException(
                RecommendationErrorCode.DATA_FETCH_FAILED,
                f"Failed to fetch availability: {e}",
                http_code=503,
            )

        merged: Dict[str, AvailabilitySummary] = {}
        for result in results:
            merged.update(result)
        return merged
