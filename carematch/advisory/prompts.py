"""
Advisory prompt building.

Templates use {{placeholder}} markers. A config may supply its own system
prompt and user template; empty values fall back to the defaults below.
"""

import json
import re
from typing import Dict, List

from .models import AdvisoryInput


PLACEHOLDERS = {
    "DEMAND_TYPE": "{{demandType}}",
    "URGENCY_LEVEL": "{{urgencyLevel}}",
    "MOTIF_KEYS": "{{motifKeys}}",
    "CLIENT_TEXT": "{{clientText}}",
    "HAS_LEGAL_CONTEXT": "{{hasLegalContext}}",
    "POPULATION_CATEGORIES": "{{populationCategories}}",
    "CANDIDATES_JSON": "{{candidatesJson}}",
    "CANDIDATES_COUNT": "{{candidatesCount}}",
    "HOLISTIC_SCORE": "{{holisticScore}}",
    "HOLISTIC_CATEGORY": "{{holisticCategory}}",
    "HOLISTIC_KEYWORDS": "{{holisticKeywords}}",
    "RECOMMEND_NATUROPATH": "{{recommendNaturopath}}",
    "HAS_CLINICAL_OVERRIDE": "{{hasClinicalOverride}}",
}

REQUIRED_PLACEHOLDERS = [PLACEHOLDERS["DEMAND_TYPE"], PLACEHOLDERS["CANDIDATES_JSON"]]

_MARKER = re.compile(r"\{\{\w+\}\}")

EMPTY_LIST_TEXT = "aucun"
EMPTY_CLIENT_TEXT = "Aucune description fournie."


def format_list(items: List[str]) -> str:
    if not items:
        return EMPTY_LIST_TEXT
    return ", ".join(items)


def format_legal_context(has_legal: bool) -> str:
    return "oui (contexte juridique/médiation)" if has_legal else "non"


def format_candidates_json(advisory_input: AdvisoryInput) -> str:
    rows = [
        {
            "rang": index + 1,
            "id": c.id,
            "type": c.profession_type,
            "scoreActuel": round(c.deterministic_score, 2),
            "motifsCorrespondants": c.matched_motif_count,
            "plagesDisponibles": c.available_slot_count,
            "anneesExperience": c.years_experience,
        }
        for index, c in enumerate(advisory_input.candidates)
    ]
    return json.dumps(rows, ensure_ascii=False, indent=2)


def placeholder_values(advisory_input: AdvisoryInput) -> Dict[str, str]:
    signal = advisory_input.holistic_signal
    return {
        PLACEHOLDERS["DEMAND_TYPE"]: advisory_input.demand_type,
        PLACEHOLDERS["URGENCY_LEVEL"]: advisory_input.urgency_level,
        PLACEHOLDERS["MOTIF_KEYS"]: format_list(advisory_input.motif_keys),
        PLACEHOLDERS["CLIENT_TEXT"]: advisory_input.client_text or EMPTY_CLIENT_TEXT,
        PLACEHOLDERS["HAS_LEGAL_CONTEXT"]: format_legal_context(advisory_input.has_legal_context),
        PLACEHOLDERS["POPULATION_CATEGORIES"]: format_list(advisory_input.clientele_categories),
        PLACEHOLDERS["CANDIDATES_JSON"]: format_candidates_json(advisory_input),
        PLACEHOLDERS["CANDIDATES_COUNT"]: str(len(advisory_input.candidates)),
        PLACEHOLDERS["HOLISTIC_SCORE"]: str(round(signal.score, 2)),
        PLACEHOLDERS["HOLISTIC_CATEGORY"]: signal.category,
        PLACEHOLDERS["HOLISTIC_KEYWORDS"]: format_list(signal.matched_keywords),
        PLACEHOLDERS["RECOMMEND_NATUROPATH"]: "oui" if signal.recommend_naturopath else "non",
        PLACEHOLDERS["HAS_CLINICAL_OVERRIDE"]: (
            "oui (détresse clinique détectée)" if signal.has_clinical_override else "non"
        ),
    }


def build_user_prompt(advisory_input: AdvisoryInput, template: str) -> str:
    """
    Substitute every known placeholder in one pass, so substituted client
    text is never itself scanned for markers. Unknown markers are left as-is.
    """
    values = placeholder_values(advisory_input)
    return _MARKER.sub(lambda m: values.get(m.group(0), m.group(0)), template)


def validate_prompt_template(template: str) -> List[str]:
    """Required placeholders missing from the template."""
    return [p for p in REQUIRED_PLACEHOLDERS if p not in template]


# ============================================================================
# DEFAULT PROMPTS
# ============================================================================

DEFAULT_SYSTEM_PROMPT = """Tu assistes l'équipe d'accueil d'une clinique pour jumeler des demandes de consultation avec des professionnels en santé mentale et en bien-être.

Limites:
- Aucun diagnostic clinique.
- Aucune recommandation de traitement.
- Tu évalues seulement l'adéquation entre les besoins exprimés et les profils déjà présélectionnés.
- Réponds en français canadien.

Approche globale:
- Lorsque le client parle de corps, d'énergie, de sommeil, de digestion, d'alimentation, d'équilibre de vie ou demande une approche globale/holistique, et qu'aucune détresse clinique aiguë n'est signalée, favorise le naturopathe.
- Les psychologues et psychothérapeutes demeurent admissibles dans ces cas, sans être le premier choix.
- Si des indicateurs de crise sont signalés (idées noires, trauma, violence, etc.), le psychologue ou le psychothérapeute passe en premier, même si des besoins holistiques sont aussi présents.

Réponds uniquement avec un objet JSON valide."""

DEFAULT_USER_PROMPT_TEMPLATE = """Analyse la demande suivante et propose des ajustements de classement.

## Demande
- Type de consultation: {{demandType}}
- Urgence: {{urgencyLevel}}
- Motifs: {{motifKeys}}
- Clientèle: {{populationCategories}}
- Contexte juridique: {{hasLegalContext}}

## Signal d'approche globale
- Score: {{holisticScore}} (0 = aucun, 1 = très fort)
- Catégorie: {{holisticCategory}}
- Mots-clés: {{holisticKeywords}}
- Naturopathe à privilégier: {{recommendNaturopath}}
- Indicateurs de crise: {{hasClinicalOverride}}

## Texte du client (anonymisé)
{{clientText}}

## Candidats présélectionnés ({{candidatesCount}})
Ces professionnels respectent déjà les contraintes de base. Ils sont triés par score déterministe.

{{candidatesJson}}

## Consignes
1. Extrais les préférences exprimées: moment de la journée, modalité (en personne, vidéo), autres contraintes.
2. Pour chaque candidat, propose un ajustement entre -5 et +5 fondé sur des éléments qualitatifs absents du score.
3. Pour chaque candidat, donne 3 à 5 puces en français expliquant la correspondance.
4. Rédige un résumé de 2 ou 3 phrases pour le personnel.

## Format de réponse
{
  "extractedPreferences": {
    "preferredTiming": "texte ou null",
    "preferredModality": "texte ou null",
    "otherConstraints": []
  },
  "rankings": [
    {
      "professionalId": "identifiant du candidat",
      "rankingAdjustment": 0,
      "reasoningBullets": ["..."]
    }
  ],
  "summaryFr": "Résumé pour le personnel."
}

Réponds uniquement avec le JSON."""
