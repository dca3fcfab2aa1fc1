"""
Holistic and crisis keyword tables (French).

Keywords are stored accented; matching happens on normalised text.
Multi-word entries match as whole phrases, single words match on a word
prefix so inflected forms ("suicidaires", "fatigué") are caught.
"""

from typing import Dict, List

from .models import HolisticCategory


HOLISTIC_KEYWORDS: Dict[HolisticCategory, List[str]] = {
    HolisticCategory.BODY: [
        "corps",
        "digestion",
        "intestin",
        "alimentation",
        "poids",
        "physique",
        "douleur",
        "tension",
        "posture",
        "nutrition",
        "diète",
        "métabolisme",
    ],
    HolisticCategory.ENERGY: [
        "énergie",
        "fatigue",
        "sommeil",
        "épuisement",
        "hormones",
        "vitalité",
        "burnout",
        "insomnie",
        "réveil",
        "endormissement",
        "cycles",
        "ménopause",
        "thyroïde",
    ],
    HolisticCategory.LIFESTYLE: [
        "habitudes de vie",
        "équilibre de vie",
        "routine",
        "mode de vie",
        "stress chronique",
        "hygiène de vie",
        "rythme de vie",
        "organisation quotidienne",
    ],
    # "équilibre" alone is too generic; see "équilibre de vie"
    HolisticCategory.GLOBAL: [
        "approche globale",
        "holistique",
        "naturel",
        "bien-être",
        "naturopathie",
        "santé naturelle",
        "médecine douce",
        "complémentaire",
        "prévention",
    ],
}

# Base weight per category, before the per-match boost
CATEGORY_WEIGHTS: Dict[HolisticCategory, float] = {
    HolisticCategory.GLOBAL: 0.4,
    HolisticCategory.LIFESTYLE: 0.3,
    HolisticCategory.ENERGY: 0.2,
    HolisticCategory.BODY: 0.2,
}

# Primary category resolution order
CATEGORY_PRIORITY: List[HolisticCategory] = [
    HolisticCategory.GLOBAL,
    HolisticCategory.LIFESTYLE,
    HolisticCategory.ENERGY,
    HolisticCategory.BODY,
]

CLINICAL_OVERRIDE_KEYWORDS: List[str] = [
    "idées noires",
    "suicidaire",
    "suicide",
    "crise",
    "trauma",
    "traumatisme",
    "détresse importante",
    "détresse sévère",
    "violence",
    "urgence",
    "danger",
    "automutilation",
    "psychose",
    "hallucination",
    "délire",
    "dissociation",
    "panique",
    "attaque de panique",
    "abus",
    "agression",
]
