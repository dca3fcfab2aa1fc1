"""
Recommendations Endpoint Tests

Version: recommendations_v1
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from carematch.recommendations.admin import get_service, router
from carematch.recommendations.mocks import (
    InMemoryDataStore,
    InMemoryRecommendationRepository,
    StubAdvisor,
)
from carematch.recommendations.service import RecommendationService
from carematch.shared.errors import RecommendationErrorCode, RecommendationException

from conftest import DEMANDE_ID, NOW


class BrokenRepository(InMemoryRecommendationRepository):

    async def save_run(self, result):
        raise RecommendationException(
            RecommendationErrorCode.PERSISTENCE_FAILED, "insert failed", http_code=500
        )


def make_service(store, repository) -> RecommendationService:
    return RecommendationService(store, repository, advisor=StubAdvisor(), clock=lambda: NOW)


def make_client(service: RecommendationService) -> TestClient:
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_service] = lambda: service
    return TestClient(app)


@pytest.fixture
def repository():
    return InMemoryRecommendationRepository()


@pytest.fixture
def client(store, repository):
    return make_client(make_service(store, repository))


class TestEndpoints:

    def test_health(self, client):
        response = client.get("/api/v1/recommendations/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["module"] == "recommendations"
        assert body["advisory_available"] is False

    def test_generate_then_get(self, client):
        response = client.post(f"/api/v1/recommendations/{DEMANDE_ID}/generate", json={"actor_id": "staff-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert len(body["result"]["recommendations"]) == 3

        current = client.get(f"/api/v1/recommendations/{DEMANDE_ID}")
        assert current.status_code == 200
        assert current.json()["id"] == body["recommendation_id"]

    def test_generate_without_body(self, client):
        response = client.post(f"/api/v1/recommendations/{DEMANDE_ID}/generate")
        assert response.status_code == 200

    def test_force_regenerate(self, client, repository):
        first = client.post(f"/api/v1/recommendations/{DEMANDE_ID}/generate").json()
        second = client.post(
            f"/api/v1/recommendations/{DEMANDE_ID}/generate", json={"force_regenerate": True}
        ).json()

        assert first["recommendation_id"] != second["recommendation_id"]
        assert len(repository.current_runs(DEMANDE_ID)) == 1

    def test_unknown_demande_404(self, client):
        response = client.post("/api/v1/recommendations/DEM-NOPE/generate")

        assert response.status_code == 404
        assert response.json()["detail"]["error_code"] == "DEMANDE_NOT_FOUND"

    def test_no_current_run_404(self, client):
        assert client.get(f"/api/v1/recommendations/{DEMANDE_ID}").status_code == 404

    def test_persistence_failure_500(self, store):
        client = make_client(make_service(store, BrokenRepository()))
        response = client.post(f"/api/v1/recommendations/{DEMANDE_ID}/generate")

        assert response.status_code == 500
        assert response.json()["detail"]["error_code"] == "PERSISTENCE_FAILED"

    def test_view_logged(self, client, repository):
        run_id = client.post(f"/api/v1/recommendations/{DEMANDE_ID}/generate").json()["recommendation_id"]
        response = client.post(f"/api/v1/recommendations/runs/{run_id}/view", params={"actor_id": "staff-9"})

        assert response.status_code == 202
        viewed = [e for e in repository.audit_log if e["action"] == "viewed"]
        assert viewed[0]["actor_id"] == "staff-9"

    def test_view_never_fails(self, store):
        repository = InMemoryRecommendationRepository()
        repository.fail_audit = True
        client = make_client(make_service(store, repository))

        assert client.post("/api/v1/recommendations/runs/whatever/view").status_code == 202

    def test_classify(self, client):
        response = client.post("/api/v1/recommendations/classify", json={"text": "idées noires et fatigue"})

        assert response.status_code == 200
        body = response.json()
        assert body["has_clinical_override"] is True
        assert body["recommend_naturopath"] is False

    def test_migration_sql(self, client):
        response = client.get("/api/v1/recommendations/migration")

        assert response.status_code == 200
        assert "CREATE TABLE IF NOT EXISTS demande_recommendations" in response.text
