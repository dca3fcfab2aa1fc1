"""
CareMatch Recommendations

Run orchestration, ranking, persistence and the HTTP surface.

Version: recommendations_v1
"""

from .models import (
    RecommendationDetail,
    RecommendationResult,
    GenerateRecommendationsRequest,
    GenerateRecommendationsResponse,
)
from .aggregator import rank_candidates, build_recommendation_details, build_input_snapshot
from .repository import RecommendationRepository, PostgresRecommendationRepository
from .service import RecommendationService
from .migration import get_migration_sql

__all__ = [
    "RecommendationDetail",
    "RecommendationResult",
    "GenerateRecommendationsRequest",
    "GenerateRecommendationsResponse",
    "rank_candidates",
    "build_recommendation_details",
    "build_input_snapshot",
    "RecommendationRepository",
    "PostgresRecommendationRepository",
    "RecommendationService",
    "get_migration_sql",
]
