"""
Data Collector Tests

Tests validate:
- Demande and candidate mapping from store rows
- Availability window and next-slot lookahead
- Bounded availability fan-out
- Not-found and fetch failures
- Config resolution

Version: data_collector_v1
"""

import asyncio
from datetime import timedelta

import pytest

from carematch.collector import DataCollector, PopulationCategory
from carematch.collector.collector import holistic_text, map_demande
from carematch.collector.models import DemandeRow
from carematch.holistic import HolisticCategory
from carematch.recommendations.mocks import InMemoryDataStore
from carematch.shared.errors import RecommendationErrorCode, RecommendationException

from conftest import DEMANDE_ID, NOW, block_row, demande_row, professional_row


def collect(store, config_key="default", **kwargs):
    collector = DataCollector(store, **kwargs)
    return asyncio.run(collector.collect(DEMANDE_ID, config_key, now=NOW))


class FailingStore(InMemoryDataStore):

    async def fetch_bookings(self, professional_ids, start, end, statuses=("draft", "confirmed")):
        raise ConnectionError("database went away")


# ============================================================================
# Mapping
# ============================================================================

class TestMapping:

    def test_demande_mapped(self, store):
        bundle = collect(store)
        demande = bundle.demande

        assert demande.id == DEMANDE_ID
        assert demande.demand_type == "individual"
        assert demande.motif_keys == ["anxiete", "stress"]
        assert demande.clientele_categories == [PopulationCategory.ADULTS]
        assert demande.has_legal_context is False

    def test_legal_context_flag(self):
        demande = map_demande(DemandeRow(**demande_row(has_legal_context="yes")), NOW.date())
        assert demande.has_legal_context is True

    def test_unknown_demand_type_dropped(self):
        demande = map_demande(DemandeRow(**demande_row(demand_type="mystery")), NOW.date())
        assert demande.demand_type is None

    def test_duplicate_motifs_removed(self):
        demande = map_demande(DemandeRow(**demande_row(selected_motifs=["stress", "anxiete", "stress"])), NOW.date())
        assert demande.motif_keys == ["stress", "anxiete"]

    def test_holistic_text_joins_reason_and_description(self, store):
        bundle = collect(store)
        text = holistic_text(bundle.demande)

        assert text.startswith("Anxiété au travail")
        assert "dors mal" in text

    def test_holistic_signal_attached(self):
        store = InMemoryDataStore(demandes=[demande_row(
            besoin_raison="Je cherche une approche globale",
            motif_description="sommeil, digestion, énergie",
        )])
        bundle = collect(store)

        assert bundle.holistic_signal.category == HolisticCategory.GLOBAL
        assert bundle.holistic_signal.recommend_naturopath is True

    def test_candidates_mapped(self, store):
        candidates = collect(store).candidate_map()

        assert set(candidates) == {"pro-a", "pro-b", "pro-c", "pro-d", "pro-e", "pro-f"}
        pro_c = candidates["pro-c"]
        assert pro_c.primary_profession.category_key == "travailleur_social"
        assert pro_c.professional.display_name == "Professionnel pro-c"
        assert candidates["pro-f"].professional.years_experience is None

    def test_inactive_professionals_not_collected(self, professionals):
        professionals[0]["status"] = "inactive"
        store = InMemoryDataStore(demandes=[demande_row()], professionals=professionals)

        assert "pro-a" not in collect(store).candidate_map()

    def test_missing_display_name(self):
        row = professional_row("pro-x", ["anxiete"])
        row["display_name"] = None
        store = InMemoryDataStore(demandes=[demande_row()], professionals=[row])

        assert collect(store).candidates[0].professional.display_name == "Professionnel inconnu"


# ============================================================================
# Availability
# ============================================================================

class TestAvailability:

    def test_window_statistics(self, store):
        candidates = collect(store).candidate_map()

        assert candidates["pro-a"].availability.slots_in_window == 10
        assert candidates["pro-a"].availability.hours_available_in_window == 10.0
        assert candidates["pro-e"].availability.slots_in_window == 0

    def test_next_slot_beyond_window(self, store):
        pro_d = collect(store).candidate_map()["pro-d"]

        assert pro_d.availability.slots_in_window == 0
        assert pro_d.availability.next_slot_datetime == (NOW + timedelta(days=20)).replace(hour=9)

    def test_next_slot_limited_by_lookahead(self, store):
        pro_d = collect(store, lookahead_days=14).candidate_map()["pro-d"]
        assert pro_d.availability.next_slot_datetime is None

    def test_bookings_subtracted(self, professionals, blocks):
        start = blocks[0]["start_time"]
        store = InMemoryDataStore(
            demandes=[demande_row()],
            professionals=professionals,
            blocks=blocks,
            bookings=[
                {"professional_id": "pro-a", "start_time": start, "duration_minutes": 120, "status": "confirmed"},
                {"professional_id": "pro-a", "start_time": start, "duration_minutes": 60, "status": "cancelled"},
            ],
        )
        pro_a = collect(store).candidate_map()["pro-a"]

        assert pro_a.availability.hours_available_in_window == 8.0
        assert pro_a.availability.next_slot_datetime == start + timedelta(hours=2)

    def test_config_window_respected(self, professionals, blocks):
        config = {
            "id": "cfg-short",
            "key": "short",
            "weight_motif_match": 30,
            "weight_specialty_match": 20,
            "weight_availability": 20,
            "weight_profession_fit": 15,
            "weight_experience": 15,
            "require_availability_within_days": 2,
        }
        store = InMemoryDataStore(
            demandes=[demande_row()], professionals=professionals, blocks=blocks, configs=[config]
        )
        bundle = collect(store, config_key="short")
        candidates = bundle.candidate_map()

        assert bundle.config.key == "short"
        assert candidates["pro-a"].availability.slots_in_window == 10
        assert candidates["pro-c"].availability.slots_in_window == 0
        assert candidates["pro-c"].availability.next_slot_datetime is not None

    def test_fan_out_is_bounded(self):
        professionals = [professional_row(f"pro-{i:02d}", ["anxiete"]) for i in range(12)]
        blocks = [block_row(p["id"], 1, 2) for p in professionals]
        store = InMemoryDataStore(
            demandes=[demande_row()], professionals=professionals, blocks=blocks, latency=0.01
        )
        bundle = collect(store, max_concurrency=3, batch_size=2)

        assert store.availability_calls == 6
        assert store.max_in_flight <= 3
        assert all(c.availability.slots_in_window == 2 for c in bundle.candidates)

    def test_no_professionals(self):
        store = InMemoryDataStore(demandes=[demande_row()])
        bundle = collect(store)

        assert bundle.candidates == []
        assert store.availability_calls == 0


# ============================================================================
# Failures
# ============================================================================

class TestFailures:

    def test_demande_not_found(self):
        with pytest.raises(RecommendationException) as exc:
            collect(InMemoryDataStore())

        assert exc.value.error_code == RecommendationErrorCode.DEMANDE_NOT_FOUND
        assert exc.value.http_code == 404

    def test_availability_failure_is_hard_error(self, professionals, blocks):
        store = FailingStore(demandes=[demande_row()], professionals=professionals, blocks=blocks)

        with pytest.raises(RecommendationException) as exc:
            collect(store)
        assert exc.value.error_code == RecommendationErrorCode.DATA_FETCH_FAILED

    def test_malformed_row(self):
        store = InMemoryDataStore(demandes=[demande_row(participants=[{"birthday": "not-a-date"}])])

        with pytest.raises(RecommendationException) as exc:
            collect(store)
        assert exc.value.error_code == RecommendationErrorCode.DATA_FETCH_FAILED

    def test_missing_config_falls_back_to_default(self, store):
        bundle = collect(store, config_key="nonexistent")

        assert bundle.config.key == "default"
        assert bundle.config.is_builtin
