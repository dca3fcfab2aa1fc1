"""
Shared fixtures: one demande and a small professional pool, in store row shape.

Pool at NOW (default config, no holistic or legal signal):

    pro-a  psychologue          anxiete+stress  15y  10h   eligible
    pro-b  psychologue          anxiete          5y   4h   eligible
    pro-c  travailleur social   stress          20y   6h   eligible
    pro-f  psychologue          anxiete          ?    1h   eligible
    pro-d  psychologue          anxiete+stress  10y   day 20 only -> near-eligible (availability)
    pro-e  psychologue          deuil            8y   none        -> excluded (2 failures)
"""

from datetime import datetime, timedelta, timezone

import pytest

from carematch.recommendations.mocks import InMemoryDataStore


NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
DEMANDE_ID = "DEM-2026-0001"


def professional_row(pro_id, motifs, years=None, category="psychologie", title="psychologue", specialties=None):
    return {
        "id": pro_id,
        "profile_id": f"profile-{pro_id}",
        "status": "active",
        "display_name": f"Professionnel {pro_id}",
        "years_experience": years,
        "professions": [{
            "profession_title_key": title,
            "label_fr": title.replace("_", " ").capitalize(),
            "profession_category_key": category,
            "is_primary": True,
        }],
        "specialties": [{"code": code, "proficiency_level": "primary"} for code in (specialties or [])],
        "motifs": motifs,
    }


def block_row(pro_id, day_offset, hours, start_hour=9):
    start = (NOW + timedelta(days=day_offset)).replace(hour=start_hour, minute=0)
    return {
        "professional_id": pro_id,
        "start_time": start,
        "end_time": start + timedelta(hours=hours),
        "type": "available",
    }


def demande_row(**overrides):
    row = {
        "id": "7b0c9e1e-0000-4000-8000-000000000001",
        "demande_id": DEMANDE_ID,
        "demand_type": "individual",
        "urgency": "moderate",
        "selected_motifs": ["anxiete", "stress"],
        "besoin_raison": "Anxiété au travail",
        "motif_description": "Je dors mal depuis des mois. Contact: 514-555-1234",
        "other_motif_text": None,
        "notes": None,
        "has_legal_context": "no",
        "participants": [{"client_id": "client-1", "birthday": "1990-05-01"}],
    }
    row.update(overrides)
    return row


@pytest.fixture
def professionals():
    return [
        professional_row("pro-a", ["anxiete", "stress"], years=15),
        professional_row("pro-b", ["anxiete"], years=5),
        professional_row("pro-c", ["stress"], years=20, category="travailleur_social", title="travailleur_social"),
        professional_row("pro-f", ["anxiete"]),
        professional_row("pro-d", ["anxiete", "stress"], years=10),
        professional_row("pro-e", ["deuil"], years=8),
    ]


@pytest.fixture
def blocks():
    return [
        block_row("pro-a", 1, 10, start_hour=8),
        block_row("pro-b", 2, 4),
        block_row("pro-c", 3, 6),
        block_row("pro-f", 4, 1),
        block_row("pro-d", 20, 3),
    ]


@pytest.fixture
def store(professionals, blocks):
    return InMemoryDataStore(
        demandes=[demande_row()],
        professionals=professionals,
        blocks=blocks,
    )
