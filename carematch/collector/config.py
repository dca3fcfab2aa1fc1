"""
Scoring configuration loading.

Stored configs keep weights as integer percentages (sum 100); they are
converted to fractions here. A missing config is not an error: the built-in
default is used.
"""

import logging
from typing import Optional

from .models import ConfigRow, RecommendationConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_KEY = "default"

_WEIGHT_FIELDS = (
    "weight_motif_match",
    "weight_specialty_match",
    "weight_availability",
    "weight_profession_fit",
    "weight_experience",
)


def default_config() -> RecommendationConfig:
    return RecommendationConfig()


def config_from_row(row: ConfigRow) -> RecommendationConfig:
    weights = {name: float(getattr(row, name)) for name in _WEIGHT_FIELDS}
    if any(w > 1.0 for w in weights.values()):
        weights = {name: w / 100.0 for name, w in weights.items()}

    return RecommendationConfig(
        id=row.id,
        key=row.key,
        name_fr=row.name_fr or row.key,
        description_fr=row.description_fr,
        system_prompt=row.system_prompt or "",
        user_prompt_template=row.user_prompt_template or "",
        require_availability_within_days=row.require_availability_within_days,
        require_motif_overlap=row.require_motif_overlap,
        require_clientele_match=row.require_population_match,
        availability_max_hours=row.availability_max_hours,
        experience_max_years=row.experience_max_years,
        is_active=row.is_active,
        **weights,
    )


def resolve_config(raw: Optional[dict], config_key: str) -> RecommendationConfig:
    """Map a stored row, falling back to the default when absent or inactive."""
    if not raw:
        logger.info(f"No stored config '{config_key}', using built-in default")
        return default_config()
    row = ConfigRow(**raw)
    if not row.is_active:
        logger.info(f"Config '{config_key}' is inactive, using built-in default")
        return default_config()
    return config_from_row(row)
