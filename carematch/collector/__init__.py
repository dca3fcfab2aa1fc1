"""
CareMatch Data Collector

Request, candidate pool, availability and scoring configuration for a
single matching run.

Version: data_collector_v1
"""

from .models import (
    AvailabilitySummary,
    CandidateData,
    DemandeData,
    PopulationCategory,
    ProficiencyLevel,
    ProfessionalInfo,
    ProfessionEntry,
    RecommendationConfig,
    RecommendationDataBundle,
    SpecialtyEntry,
)
from .availability import compute_availability
from .config import default_config, resolve_config
from .population import calculate_age, population_category, derive_clientele_categories
from .collector import DataCollector
from .store import PostgresDataStore, RecommendationDataStore

__all__ = [
    "AvailabilitySummary",
    "CandidateData",
    "DemandeData",
    "PopulationCategory",
    "ProficiencyLevel",
    "ProfessionalInfo",
    "ProfessionEntry",
    "RecommendationConfig",
    "RecommendationDataBundle",
    "SpecialtyEntry",
    "compute_availability",
    "default_config",
    "resolve_config",
    "calculate_age",
    "population_category",
    "derive_clientele_categories",
    "DataCollector",
    "PostgresDataStore",
    "RecommendationDataStore",
]
