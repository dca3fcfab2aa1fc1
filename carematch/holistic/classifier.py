"""
Holistic/Crisis Classifier

Pure keyword heuristic. No I/O.

Scoring:
- each matched category adds its base weight plus 0.1 per matched keyword
  (boost capped at 0.3)
- +0.15 when two or more categories matched, +0.1 more for three or more
- clamped to 1.0

Version: holistic_classifier_v1
"""

import re
from typing import Dict, Iterable, List

from carematch.shared.text import normalize_text

from .keywords import (
    CATEGORY_PRIORITY,
    CATEGORY_WEIGHTS,
    CLINICAL_OVERRIDE_KEYWORDS,
    HOLISTIC_KEYWORDS,
)
from .models import HolisticCategory, HolisticSignal


RECOMMEND_THRESHOLD = 0.5
MATCH_BOOST_PER_KEYWORD = 0.1
MATCH_BOOST_CAP = 0.3
MULTI_CATEGORY_BONUS = 0.15
WIDE_CATEGORY_BONUS = 0.1


def contains_keyword(normalized_text: str, keyword: str) -> bool:
    """
    Phrase keywords need exact phrase containment; single words match on a
    word-start prefix.
    """
    normalized_keyword = normalize_text(keyword)
    if not normalized_keyword:
        return False
    if " " in normalized_keyword:
        return normalized_keyword in normalized_text
    return re.search(r"\b" + re.escape(normalized_keyword), normalized_text) is not None


def find_matching_keywords(normalized_text: str, keywords: Iterable[str]) -> List[str]:
    return [kw for kw in keywords if contains_keyword(normalized_text, kw)]


def calculate_holistic_score(matches_by_category: Dict[HolisticCategory, List[str]]) -> float:
    total = 0.0
    categories_matched = 0

    for category, weight in CATEGORY_WEIGHTS.items():
        matches = matches_by_category.get(category, [])
        if matches:
            categories_matched += 1
            total += weight + min(len(matches) * MATCH_BOOST_PER_KEYWORD, MATCH_BOOST_CAP)

    if categories_matched >= 2:
        total += MULTI_CATEGORY_BONUS
    if categories_matched >= 3:
        total += WIDE_CATEGORY_BONUS

    return min(round(total, 4), 1.0)


def determine_primary_category(matches_by_category: Dict[HolisticCategory, List[str]]) -> HolisticCategory:
    for category in CATEGORY_PRIORITY:
        if matches_by_category.get(category):
            return category
    return HolisticCategory.NONE


def empty_holistic_signal() -> HolisticSignal:
    return HolisticSignal()


def classify_holistic_intent(text: str) -> HolisticSignal:
    """
    Classify client free text.

    Examples:
        "approche globale / corps / digestion / sommeil / énergie"
            -> category GLOBAL, recommend_naturopath True
        "fatigue / épuisement / idées noires / détresse importante"
            -> has_clinical_override True, recommend_naturopath False
        "stress relationnel / conflits"
            -> score 0, category NONE
    """
    if not text or not text.strip():
        return empty_holistic_signal()

    normalized = normalize_text(text)

    matches_by_category: Dict[HolisticCategory, List[str]] = {
        category: find_matching_keywords(normalized, keywords)
        for category, keywords in HOLISTIC_KEYWORDS.items()
    }
    all_matched = [
        kw
        for category in (
            HolisticCategory.BODY,
            HolisticCategory.ENERGY,
            HolisticCategory.LIFESTYLE,
            HolisticCategory.GLOBAL,
        )
        for kw in matches_by_category[category]
    ]

    clinical_found = find_matching_keywords(normalized, CLINICAL_OVERRIDE_KEYWORDS)
    has_override = len(clinical_found) > 0

    score = calculate_holistic_score(matches_by_category)

    return HolisticSignal(
        score=score,
        category=determine_primary_category(matches_by_category),
        matched_keywords=all_matched,
        keywords_by_category={
            category.value: matches
            for category, matches in matches_by_category.items()
            if matches
        },
        recommend_naturopath=score >= RECOMMEND_THRESHOLD and not has_override,
        has_clinical_override=has_override,
        clinical_keywords_found=clinical_found,
    )
