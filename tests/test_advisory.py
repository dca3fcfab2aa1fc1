"""
Advisory Refiner Tests

Tests validate:
- Fail-open: every failure mode yields neutral output
- Adjustment clamping and reconciliation with the input candidates
- Code-fenced responses
- Messages API request shape

Version: advisory_refiner_v1
"""

import asyncio
import json
from typing import List

import httpx
import pytest

from carematch.advisory.client import AdvisoryClient, AdvisoryClientError
from carematch.advisory.models import (
    MISSING_CANDIDATE_BULLET,
    NEUTRAL_BULLET,
    NEUTRAL_SUMMARY,
    AdvisoryError,
    AdvisoryInput,
    CandidateRanking,
    SanitizedCandidate,
)
from carematch.advisory.refiner import (
    AdvisoryRefiner,
    neutral_output,
    parse_advisory_response,
    strip_code_fence,
)
from carematch.collector.models import RecommendationConfig


CONFIG = RecommendationConfig()


# ============================================================================
# Test Fixtures
# ============================================================================

def make_input(ids: List[str] = None) -> AdvisoryInput:
    return AdvisoryInput(
        demand_type="individual",
        urgency_level="moderate",
        motif_keys=["anxiete"],
        client_text="Anxiété au travail.",
        candidates=[
            SanitizedCandidate(
                id=pro_id,
                profession_type="psychologie",
                deterministic_score=0.6,
                matched_motif_count=1,
                available_slot_count=3,
                years_experience=8,
            )
            for pro_id in (ids if ids is not None else ["a", "b"])
        ],
    )


def advisory_payload(rankings, summary="Résumé.") -> dict:
    return {
        "extractedPreferences": {"preferredTiming": "soir", "preferredModality": None, "otherConstraints": []},
        "rankings": rankings,
        "summaryFr": summary,
    }


def messages_response(text: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"content": [{"type": "text", "text": text}]})


def make_refiner(handler, api_key: str = "test-key", enabled: bool = True) -> AdvisoryRefiner:
    client = AdvisoryClient(
        api_key=api_key,
        model="test-model",
        base_url="https://advisory.test/v1/messages",
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )
    return AdvisoryRefiner(client=client, enabled=enabled)


def advise(refiner: AdvisoryRefiner, advisory_input: AdvisoryInput = None):
    return asyncio.run(refiner.advise(advisory_input or make_input(), CONFIG))


def assert_neutral(result, ids=("a", "b")):
    assert result.success is False
    assert result.is_neutral
    assert result.output.summary_fr == NEUTRAL_SUMMARY
    assert [r.professional_id for r in result.output.rankings] == list(ids)
    assert all(r.ranking_adjustment == 0.0 for r in result.output.rankings)
    assert all(r.reasoning_bullets == [NEUTRAL_BULLET] for r in result.output.rankings)


# ============================================================================
# Fail-open
# ============================================================================

class TestFailOpen:

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        result = advise(make_refiner(handler))

        assert_neutral(result)
        assert result.error_code == AdvisoryError.ADVISORY_TIMEOUT

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = advise(make_refiner(handler))

        assert_neutral(result)
        assert result.error_code == AdvisoryError.ADVISORY_HTTP_ERROR

    def test_http_error_status(self):
        result = advise(make_refiner(lambda request: httpx.Response(529, json={"error": "overloaded"})))

        assert_neutral(result)
        assert result.error_code == AdvisoryError.ADVISORY_HTTP_ERROR

    def test_garbage_text(self):
        result = advise(make_refiner(lambda request: messages_response("pas du JSON du tout")))

        assert_neutral(result)
        assert result.error_code == AdvisoryError.ADVISORY_INVALID_RESPONSE

    def test_off_schema_json(self):
        result = advise(make_refiner(lambda request: messages_response(json.dumps({"foo": 1}))))

        assert_neutral(result)
        assert result.error_code == AdvisoryError.ADVISORY_INVALID_RESPONSE

    def test_non_finite_adjustment(self):
        text = '{"rankings": [{"professionalId": "a", "rankingAdjustment": NaN}], "summaryFr": "x"}'
        result = advise(make_refiner(lambda request: messages_response(text)))

        assert_neutral(result)

    def test_no_text_block(self):
        result = advise(make_refiner(lambda request: httpx.Response(200, json={"content": []})))

        assert_neutral(result)
        assert result.error_code == AdvisoryError.ADVISORY_INVALID_RESPONSE

    def test_missing_api_key(self):
        calls = []

        def handler(request):
            calls.append(request)
            return messages_response("{}")

        result = advise(make_refiner(handler, api_key=""))

        assert_neutral(result)
        assert result.error_code == AdvisoryError.ADVISORY_NO_API_KEY
        assert calls == []

    def test_disabled(self):
        result = advise(make_refiner(lambda request: messages_response("{}"), enabled=False))

        assert_neutral(result)
        assert result.error_code == AdvisoryError.ADVISORY_DISABLED

    def test_no_candidates_makes_no_call(self):
        calls = []

        def handler(request):
            calls.append(request)
            return messages_response("{}")

        result = advise(make_refiner(handler), make_input(ids=[]))

        assert result.output.rankings == []
        assert result.error_code == AdvisoryError.ADVISORY_NO_CANDIDATES
        assert calls == []


# ============================================================================
# Successful Refinement
# ============================================================================

class TestRefinement:

    def test_success(self):
        rankings = [
            {"professionalId": "a", "rankingAdjustment": 2, "reasoningBullets": ["Disponible le soir"]},
            {"professionalId": "b", "rankingAdjustment": -1, "reasoningBullets": ["Moins d'expérience"]},
        ]
        result = advise(make_refiner(lambda request: messages_response(json.dumps(advisory_payload(rankings)))))

        assert result.success is True
        assert result.model_used == "test-model"
        assert result.output.ranking_for("a").ranking_adjustment == 2.0
        assert result.output.ranking_for("b").reasoning_bullets == ["Moins d'expérience"]
        assert result.output.extracted_preferences.preferred_timing == "soir"

    def test_out_of_range_clamped(self):
        rankings = [
            {"professionalId": "a", "rankingAdjustment": 12},
            {"professionalId": "b", "rankingAdjustment": -9.5},
        ]
        result = advise(make_refiner(lambda request: messages_response(json.dumps(advisory_payload(rankings)))))

        assert result.success is True
        assert result.output.ranking_for("a").ranking_adjustment == 5.0
        assert result.output.ranking_for("b").ranking_adjustment == -5.0

    def test_code_fenced_response(self):
        body = "```json\n" + json.dumps(advisory_payload([{"professionalId": "a", "rankingAdjustment": 1}])) + "\n```"
        result = advise(make_refiner(lambda request: messages_response(body)))

        assert result.success is True
        assert result.output.ranking_for("a").ranking_adjustment == 1.0

    def test_missing_and_unknown_candidates_reconciled(self):
        rankings = [
            {"professionalId": "ghost", "rankingAdjustment": 5},
            {"professionalId": "a", "rankingAdjustment": 3},
            {"professionalId": "a", "rankingAdjustment": -3},
        ]
        result = advise(make_refiner(lambda request: messages_response(json.dumps(advisory_payload(rankings)))))

        ids = [r.professional_id for r in result.output.rankings]
        assert ids == ["a", "b"]
        assert result.output.ranking_for("a").ranking_adjustment == 3.0
        assert result.output.ranking_for("b").ranking_adjustment == 0.0
        assert result.output.ranking_for("b").reasoning_bullets == [MISSING_CANDIDATE_BULLET]

    def test_request_shape(self):
        captured = {}

        def handler(request):
            captured["headers"] = request.headers
            captured["body"] = json.loads(request.content)
            return messages_response(json.dumps(advisory_payload([])))

        advise(make_refiner(handler))

        assert captured["headers"]["x-api-key"] == "test-key"
        assert captured["headers"]["anthropic-version"] == "2023-06-01"
        assert captured["body"]["model"] == "test-model"
        assert captured["body"]["messages"][0]["role"] == "user"
        assert '"id": "a"' in captured["body"]["messages"][0]["content"]

    def test_invalid_config_template_falls_back(self):
        captured = {}

        def handler(request):
            captured["body"] = json.loads(request.content)
            return messages_response(json.dumps(advisory_payload([])))

        config = RecommendationConfig(user_prompt_template="Pas de marqueurs ici")
        asyncio.run(make_refiner(handler).advise(make_input(), config))

        assert '"id": "b"' in captured["body"]["messages"][0]["content"]


# ============================================================================
# Helpers
# ============================================================================

class TestHelpers:

    def test_strip_code_fence(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fence('  {"a": 1} ') == '{"a": 1}'

    def test_parse_rejects_non_object(self):
        with pytest.raises(ValueError):
            parse_advisory_response("[1, 2]", make_input())

    def test_ranking_clamps_on_construction(self):
        assert CandidateRanking(professional_id="a", ranking_adjustment=-7).ranking_adjustment == -5.0

    def test_neutral_output_covers_every_candidate(self):
        output = neutral_output(make_input(ids=["x", "y", "z"]))
        assert [r.professional_id for r in output.rankings] == ["x", "y", "z"]

    def test_client_error_carries_code(self):
        client = AdvisoryClient(api_key="", transport=httpx.MockTransport(lambda r: messages_response("")))

        with pytest.raises(AdvisoryClientError) as exc:
            asyncio.run(client.complete("system", "user"))
        assert exc.value.error_code == AdvisoryError.ADVISORY_NO_API_KEY
