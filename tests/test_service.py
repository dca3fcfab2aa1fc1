"""
Recommendation Service Tests

End-to-end runs over the in-memory store and repository.

Tests validate:
- Ranked top-3 with score breakdown and disclaimer
- Near-eligible and exclusion reporting
- Idempotent reuse and forced regeneration
- At most one current run per demande, including concurrent requests
- Advisory failures never fail a run
- Audit failures never fail a run
- Reproducible input hash

Version: recommendations_v1
"""

import asyncio

import pytest

from carematch.advisory.client import AdvisoryClient
from carematch.advisory.models import NEUTRAL_SUMMARY
from carematch.advisory.refiner import AdvisoryRefiner
from carematch.collector.models import RecommendationConfig
from carematch.recommendations.mocks import (
    InMemoryDataStore,
    InMemoryRecommendationRepository,
    StubAdvisor,
)
from carematch.recommendations.service import RecommendationService
from carematch.scoring.models import ExclusionReasonCode
from carematch.shared.disclaimer import RECOMMENDATION_DISCLAIMER_FR
from carematch.shared.errors import RecommendationErrorCode, RecommendationException
from carematch.shared.hashing import verify_hash

from conftest import DEMANDE_ID, NOW, demande_row


class ExplodingAdvisor:
    model_identifier = "exploding"

    async def advise(self, advisory_input, config):
        raise RuntimeError("advisor crashed")


def make_service(store, advisor=None, repository=None):
    return RecommendationService(
        store,
        repository or InMemoryRecommendationRepository(),
        advisor=advisor or StubAdvisor(),
    )


def generate(service, **kwargs):
    return asyncio.run(service.generate(DEMANDE_ID, now=NOW, **kwargs))


# ============================================================================
# Results
# ============================================================================

class TestGenerate:

    def test_top_three_ranked(self, store):
        result = generate(make_service(store))

        assert [r.professional_id for r in result.recommendations] == ["pro-a", "pro-c", "pro-f"]
        assert [r.rank for r in result.recommendations] == [1, 2, 3]
        totals = [r.total_score for r in result.recommendations]
        assert totals == sorted(totals, reverse=True)
        assert result.success is True
        assert result.is_current is True
        assert result.disclaimer == RECOMMENDATION_DISCLAIMER_FR

    def test_detail_carries_breakdown(self, store):
        top = generate(make_service(store)).recommendations[0]

        assert top.matched_motifs == ["anxiete", "stress"]
        assert top.unmatched_motifs == []
        assert top.available_slots_count == 10
        assert top.hours_available == 10.0
        assert top.display_name == "Professionnel pro-a"
        assert top.total_score == pytest.approx(
            top.motif_match_score
            + top.specialty_match_score
            + top.availability_score
            + top.profession_fit_score
            + top.experience_score
        )

    def test_exclusions_and_near_eligible(self, store):
        result = generate(make_service(store))

        exclusions = {e.professional_id: e for e in result.exclusions}
        assert set(exclusions) == {"pro-d", "pro-e"}
        assert exclusions["pro-e"].details["additionalFailures"][0]["reasonCode"] == "no_motif_overlap"

        assert len(result.near_eligible) == 1
        near = result.near_eligible[0]
        assert near.professional_id == "pro-d"
        assert near.missing_constraint == ExclusionReasonCode.NO_AVAILABILITY
        assert near.next_available_date is not None
        assert near.scores.total_score > 0

    def test_advisory_adjustment_reorders(self, store):
        result = generate(make_service(store, advisor=StubAdvisor(adjustments={"pro-b": 5})))

        ids = [r.professional_id for r in result.recommendations]
        assert ids == ["pro-b", "pro-a", "pro-c"]
        top = result.recommendations[0]
        assert top.ai_ranking_adjustment == 5.0
        assert top.total_score == pytest.approx(top.deterministic_score + 0.5)
        assert result.advisory_success is True
        assert result.model_version == "stub-advisor"

    def test_advisory_sees_sanitized_input(self, store):
        advisor = StubAdvisor()
        generate(make_service(store, advisor=advisor))

        advisory_input = advisor.calls[0]
        assert "514-555-1234" not in advisory_input.client_text
        assert "[PHONE]" in advisory_input.client_text
        assert {c.id for c in advisory_input.candidates} == {"pro-a", "pro-b", "pro-c", "pro-f"}
        assert "Professionnel" not in advisory_input.model_dump_json()

    def test_zero_eligible_is_valid(self, professionals, blocks):
        store = InMemoryDataStore(
            demandes=[demande_row(demand_type="couple")],
            professionals=professionals,
            blocks=blocks,
        )
        result = generate(make_service(store))

        assert result.success is True
        assert result.recommendations == []
        assert len(result.exclusions) == len(professionals)
        reasons = {e.reason_code for e in result.exclusions}
        assert ExclusionReasonCode.NO_DEMAND_TYPE_SPECIALTY in reasons

    def test_input_snapshot_and_hash(self, store):
        result = generate(make_service(store))

        assert result.input_hash.startswith("sha256:")
        assert verify_hash(result.input_snapshot, result.input_hash)
        assert result.input_snapshot["eligibleCount"] == 4
        assert result.input_snapshot["totalProfessionalsAnalyzed"] == 6
        assert "Anxiété" not in str(result.input_snapshot)

    def test_hash_reproducible(self, store):
        service = make_service(store)
        first = generate(service)
        second = generate(service, force_regenerate=True)

        assert first.id != second.id
        assert first.input_hash == second.input_hash

    def test_demande_not_found(self):
        with pytest.raises(RecommendationException) as exc:
            generate(make_service(InMemoryDataStore()))
        assert exc.value.error_code == RecommendationErrorCode.DEMANDE_NOT_FOUND

    def test_clock_sets_window_when_now_omitted(self, store):
        service = RecommendationService(
            store, InMemoryRecommendationRepository(), advisor=StubAdvisor(), clock=lambda: NOW
        )
        result = asyncio.run(service.generate(DEMANDE_ID))

        assert [r.professional_id for r in result.recommendations] == ["pro-a", "pro-c", "pro-f"]
        assert result.generated_at == NOW
        assert result.input_snapshot["eligibleCount"] == 4

    def test_open_request_keeps_every_available_candidate(self, professionals, blocks):
        """No motifs and no participants: only availability can exclude"""
        store = InMemoryDataStore(
            demandes=[demande_row(selected_motifs=[], participants=[])],
            professionals=professionals,
            blocks=blocks,
        )
        result = generate(make_service(store))

        assert result.input_snapshot["eligibleCount"] == 4
        assert {e.professional_id for e in result.exclusions} == {"pro-d", "pro-e"}
        assert {e.reason_code for e in result.exclusions} == {ExclusionReasonCode.NO_AVAILABILITY}
        full_motif_weight = RecommendationConfig().weight_motif_match
        assert len(result.recommendations) == 3
        for detail in result.recommendations:
            assert detail.motif_match_score == pytest.approx(full_motif_weight)
            assert detail.unmatched_motifs == []


# ============================================================================
# Persistence
# ============================================================================

class TestCurrentRun:

    def test_existing_run_reused(self, store):
        repository = InMemoryRecommendationRepository()
        service = make_service(store, repository=repository)

        first = generate(service)
        second = generate(service)

        assert second.id == first.id
        assert second.processing_time_ms == 0
        assert second.recommendations == first.recommendations
        assert len(repository.runs) == 1

    def test_force_supersedes(self, store):
        repository = InMemoryRecommendationRepository()
        service = make_service(store, repository=repository)

        first = generate(service)
        second = generate(service, force_regenerate=True)

        assert second.id != first.id
        assert [r.id for r in repository.current_runs(DEMANDE_ID)] == [second.id]
        old = next(r for r in repository.runs if r.id == first.id)
        assert old.is_current is False
        assert old.superseded_by == second.id
        assert old.superseded_at is not None

    def test_fetch_current(self, store):
        service = make_service(store)
        assert asyncio.run(service.fetch_current(DEMANDE_ID)) is None

        result = generate(service)
        assert asyncio.run(service.fetch_current(DEMANDE_ID)).id == result.id

    def test_concurrent_generation_keeps_one_current(self, store):
        repository = InMemoryRecommendationRepository()
        service = make_service(store, repository=repository)
        store.latency = 0.005

        async def run_all():
            return await asyncio.gather(*(
                service.generate(DEMANDE_ID, force_regenerate=True, now=NOW) for _ in range(4)
            ))

        results = asyncio.run(run_all())

        assert len({r.id for r in results}) == 4
        assert len(repository.current_runs(DEMANDE_ID)) == 1

    def test_concurrent_first_generation_creates_one_run(self, store):
        repository = InMemoryRecommendationRepository()
        service = make_service(store, repository=repository)
        store.latency = 0.005

        async def run_all():
            return await asyncio.gather(*(service.generate(DEMANDE_ID, now=NOW) for _ in range(3)))

        results = asyncio.run(run_all())

        assert len({r.id for r in results}) == 1
        assert len(repository.runs) == 1


# ============================================================================
# Fail-open Collaborators
# ============================================================================

class TestFailOpen:

    def test_advisor_exception_gives_neutral_run(self, store):
        result = generate(make_service(store, advisor=ExplodingAdvisor()))

        assert result.success is True
        assert result.advisory_success is False
        assert result.ai_summary_fr == NEUTRAL_SUMMARY
        assert [r.professional_id for r in result.recommendations] == ["pro-a", "pro-c", "pro-f"]
        assert all(r.ai_ranking_adjustment == 0.0 for r in result.recommendations)

    def test_unconfigured_advisor_gives_neutral_run(self, store):
        advisor = AdvisoryRefiner(client=AdvisoryClient(api_key=""), enabled=True)
        result = generate(make_service(store, advisor=advisor))

        assert result.advisory_success is False
        assert len(result.recommendations) == 3

    def test_audit_failure_ignored(self, store):
        repository = InMemoryRecommendationRepository()
        repository.fail_audit = True
        service = make_service(store, repository=repository)

        result = generate(service)
        asyncio.run(service.log_view(result.id, actor_id="staff-1"))

        assert len(repository.runs) == 1
        assert repository.audit_log == []


# ============================================================================
# Audit
# ============================================================================

class TestAudit:

    def test_generated_and_viewed_logged(self, store):
        repository = InMemoryRecommendationRepository()
        service = make_service(store, repository=repository)

        result = generate(service, actor_id="staff-1")
        asyncio.run(service.log_view(result.id, actor_id="staff-2"))

        actions = [(e["action"], e["actor_id"]) for e in repository.audit_log]
        assert actions == [("generated", "staff-1"), ("viewed", "staff-2")]
        assert repository.audit_log[0]["context"]["candidateCount"] == 3
        assert result.generated_by == "staff-1"
