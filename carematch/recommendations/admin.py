"""
Recommendations Admin Endpoints

POST /api/v1/recommendations/{demande_id}/generate       - Generate (or reuse) a run
GET  /api/v1/recommendations/{demande_id}                - Current run for a demande
POST /api/v1/recommendations/runs/{recommendation_id}/view - Record a view (fire-and-forget)
POST /api/v1/recommendations/classify                    - Holistic intent classification
GET  /api/v1/recommendations/migration                   - Schema SQL
GET  /api/v1/recommendations/health                      - Health check

Version: recommendations_v1
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import PlainTextResponse

from carematch.collector.store import PostgresDataStore
from carematch.holistic import HolisticSignal, classify_holistic_intent
from carematch.shared.errors import RecommendationException

from .migration import get_migration_sql
from .models import (
    ClassifyRequest,
    GenerateRecommendationsRequest,
    GenerateRecommendationsResponse,
    RecommendationResult,
    RecommendationsHealthResponse,
)
from .repository import PostgresRecommendationRepository
from .service import RecommendationService

logger = logging.getLogger(__name__)

MODULE_VERSION = "recommendations_v1"

router = APIRouter(
    prefix="/api/v1/recommendations",
    tags=["recommendations"],
)

_service: Optional[RecommendationService] = None


def get_service() -> RecommendationService:
    """Process-wide service over the Postgres store. Overridden in tests."""
    global _service
    if _service is None:
        _service = RecommendationService(PostgresDataStore(), PostgresRecommendationRepository())
    return _service


def _http_error(e: RecommendationException) -> HTTPException:
    return HTTPException(status_code=e.http_code, detail=e.to_detail())


# Endpoints

@router.get("/health", response_model=RecommendationsHealthResponse)
async def recommendations_health(service: RecommendationService = Depends(get_service)):
    """Health check for the recommendations module. Does not touch the database."""
    return RecommendationsHealthResponse(
        status="ok",
        module="recommendations",
        version=MODULE_VERSION,
        advisory_available=bool(getattr(service.advisor, "is_available", False)),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/migration", response_class=PlainTextResponse)
async def recommendations_migration():
    return get_migration_sql()


@router.post("/classify", response_model=HolisticSignal)
async def classify_endpoint(request: ClassifyRequest):
    return classify_holistic_intent(request.text)


@router.post("/runs/{recommendation_id}/view", status_code=202)
async def log_view_endpoint(
    recommendation_id: str,
    background_tasks: BackgroundTasks,
    actor_id: Optional[str] = None,
    service: RecommendationService = Depends(get_service),
):
    """Queue the audit write; the response never waits on it."""
    background_tasks.add_task(service.log_view, recommendation_id, actor_id)
    return {"accepted": True, "recommendation_id": recommendation_id}


@router.post("/{demande_id}/generate", response_model=GenerateRecommendationsResponse)
async def generate_endpoint(
    demande_id: str,
    request: Optional[GenerateRecommendationsRequest] = None,
    service: RecommendationService = Depends(get_service),
):
    """
    Generate recommendations for a demande.

    Returns the existing current run unless force_regenerate is set.
    404 when the demande does not exist, 503 when data cannot be fetched.
    """
    request = request or GenerateRecommendationsRequest()
    try:
        result = await service.generate(
            demande_id,
            config_key=request.config_key,
            force_regenerate=request.force_regenerate,
            actor_id=request.actor_id,
        )
    except RecommendationException as e:
        logger.warning(f"Generate failed for demande {demande_id}: {e.error_code.value}")
        raise _http_error(e)
    except Exception as e:
        logger.error(f"Generate failed for demande {demande_id}: {type(e).__name__}: {e}")
        raise HTTPException(status_code=500, detail=f"Recommendation error: {str(e)}")

    return GenerateRecommendationsResponse(
        success=True,
        recommendation_id=result.id,
        result=result,
    )


@router.get("/{demande_id}", response_model=RecommendationResult)
async def get_current_endpoint(
    demande_id: str,
    service: RecommendationService = Depends(get_service),
):
    try:
        result = await service.fetch_current(demande_id)
    except RecommendationException as e:
        raise _http_error(e)

    if result is None:
        raise HTTPException(status_code=404, detail=f"No current recommendations for demande {demande_id}")
    return result
