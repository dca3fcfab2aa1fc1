"""
Profession eligibility rules for the audit snapshot.

Explains, per profession type, whether it suits the demande and why
(preferred / eligible / not_recommended). Informational only: it does not
feed the score.
"""

from typing import List, Optional

from pydantic import BaseModel

from carematch.collector.models import DemandeData
from carematch.holistic.models import HolisticSignal


PROFESSION_TYPES = [
    ("psychologue", "Psychologue"),
    ("travailleur_social", "Travailleur social"),
    ("psychotherapeute", "Psychothérapeute"),
    ("conseiller_orientation", "Conseiller d'orientation"),
    ("sexologue", "Sexologue"),
    ("neuropsychologue", "Neuropsychologue"),
    ("naturopathe", "Naturopathe"),
]

PRIORITY_ORDER = {"preferred": 0, "eligible": 1, "not_recommended": 2}

# (motif keys, specialist profession, reason)
MOTIF_SPECIALISTS = [
    (
        {"troubles_apprentissage", "trouble_attention", "evaluation_neuropsychologique"},
        "neuropsychologue",
        "Spécialiste pour les évaluations neuropsychologiques et troubles cognitifs",
    ),
    (
        {"orientation_carriere", "choix_professionnel", "epuisement_professionnel"},
        "conseiller_orientation",
        "Spécialiste pour les questions de carrière et d'orientation",
    ),
    (
        {"sexualite", "intimite", "dysfonction_sexuelle"},
        "sexologue",
        "Spécialiste pour les questions de santé sexuelle",
    ),
]

CLINICAL_KEYS = ("psychologue", "psychotherapeute")


class ProfessionEligibilityRule(BaseModel):
    profession_key: str
    label_fr: str
    is_eligible: bool
    reason: str
    priority: str


def _rule(key: str, label: str, eligible: bool, reason: str, priority: str) -> ProfessionEligibilityRule:
    return ProfessionEligibilityRule(
        profession_key=key, label_fr=label, is_eligible=eligible, reason=reason, priority=priority
    )


def evaluate_profession_eligibility(
    key: str,
    label: str,
    demande: DemandeData,
    holistic_signal: Optional[HolisticSignal] = None,
) -> ProfessionEligibilityRule:
    if holistic_signal is not None and holistic_signal.has_clinical_override:
        if key in CLINICAL_KEYS:
            found = ", ".join(holistic_signal.clinical_keywords_found[:2])
            return _rule(key, label, True, f"Recommandé pour la détresse clinique identifiée (mots-clés: {found})", "preferred")
        if key == "naturopathe":
            return _rule(key, label, False, "Non recommandé en présence d'indicateurs de détresse clinique aiguë", "not_recommended")

    if holistic_signal is not None and holistic_signal.recommend_naturopath:
        if key == "naturopathe":
            found = ", ".join(holistic_signal.matched_keywords[:3])
            return _rule(key, label, True, f"Recommandé pour l'approche globale corps/énergie/équilibre de vie (mots-clés: {found})", "preferred")
        if key in CLINICAL_KEYS:
            return _rule(key, label, True, "Peut intervenir si un besoin clinique est identifié, mais l'approche globale suggère un naturopathe", "eligible")

    if demande.has_legal_context:
        if key == "travailleur_social":
            return _rule(key, label, True, "Recommandé pour les dossiers avec contexte légal (médiation, garde, etc.)", "preferred")
        if key == "psychologue":
            return _rule(key, label, True, "Peut intervenir dans un contexte légal, mais le travailleur social est préféré", "eligible")

    if demande.demand_type == "couple":
        if key in ("psychologue", "travailleur_social", "psychotherapeute", "sexologue"):
            priority = "preferred" if key == "sexologue" else "eligible"
            return _rule(key, label, True, "Qualifié pour la thérapie de couple", priority)
        return _rule(key, label, False, "Non spécialisé pour les consultations de couple", "not_recommended")

    if demande.demand_type == "family":
        if key in ("psychologue", "travailleur_social", "psychotherapeute"):
            priority = "preferred" if key == "travailleur_social" else "eligible"
            return _rule(key, label, True, "Qualifié pour la thérapie familiale", priority)
        return _rule(key, label, False, "Non spécialisé pour les consultations familiales", "not_recommended")

    if demande.demand_type in (None, "individual"):
        motifs = set(demande.motif_keys)
        for motif_keys, specialist, reason in MOTIF_SPECIALISTS:
            if key == specialist and motifs & motif_keys:
                return _rule(key, label, True, reason, "preferred")

        if key in CLINICAL_KEYS:
            return _rule(key, label, True, "Adapté pour la plupart des consultations individuelles", "preferred")
        if key == "travailleur_social":
            return _rule(key, label, True, "Peut accompagner pour les enjeux psychosociaux", "eligible")
        if key == "naturopathe":
            return _rule(key, label, True, "Peut accompagner pour les besoins de bien-être et d'équilibre de vie", "eligible")
        return _rule(key, label, True, "Peut intervenir selon la nature spécifique de la demande", "eligible")

    return _rule(key, label, True, "Disponible pour cette consultation", "eligible")


def build_profession_eligibility_rules(
    demande: DemandeData,
    holistic_signal: Optional[HolisticSignal] = None,
) -> List[ProfessionEligibilityRule]:
    rules = [
        evaluate_profession_eligibility(key, label, demande, holistic_signal)
        for key, label in PROFESSION_TYPES
    ]
    # stable: ties keep PROFESSION_TYPES order
    return sorted(rules, key=lambda r: PRIORITY_ORDER[r.priority])
