"""
Profession-fit rule table.

Each active signal maps profession categories to a multiplier of the
profession-fit weight. Signals are evaluated in a fixed order:

    crisis override > holistic signal > legal context > default

The first active signal that names the candidate's profession category
decides. A lower-priority signal only reaches categories that no active
higher-priority signal names. Example: crisis + legal context gives a
psychologist 1.0 (crisis), and a social worker 1.0 (legal, crisis is silent
on social work).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from carematch.holistic.models import HolisticSignal


CLINICAL_CATEGORIES: FrozenSet[str] = frozenset(
    ["psychologie", "psychotherapie", "psychologue", "psychotherapeute"]
)
NATUROPATHY_CATEGORIES: FrozenSet[str] = frozenset(["naturopathie", "naturopathe"])
SOCIAL_WORK_CATEGORIES: FrozenSet[str] = frozenset(["travailleur_social"])
PSYCHOLOGY_CATEGORIES: FrozenSet[str] = frozenset(["psychologue", "psychologie"])

BASE_MULTIPLIER = 0.7
NO_PROFESSION_MULTIPLIER = 0.5


class FitSignal(str, Enum):
    CRISIS_OVERRIDE = "crisis_override"
    HOLISTIC = "holistic"
    LEGAL_CONTEXT = "legal_context"


@dataclass(frozen=True)
class ProfessionFitRule:
    signal: FitSignal
    categories: FrozenSet[str]
    multiplier: float

    @property
    def name(self) -> str:
        return f"{self.signal.value}:{self.multiplier}"


# Ordered by signal priority
PROFESSION_FIT_RULES: List[ProfessionFitRule] = [
    ProfessionFitRule(FitSignal.CRISIS_OVERRIDE, CLINICAL_CATEGORIES, 1.0),
    ProfessionFitRule(FitSignal.CRISIS_OVERRIDE, NATUROPATHY_CATEGORIES, 0.3),
    ProfessionFitRule(FitSignal.HOLISTIC, NATUROPATHY_CATEGORIES, 1.0),
    ProfessionFitRule(FitSignal.HOLISTIC, CLINICAL_CATEGORIES, 0.5),
    ProfessionFitRule(FitSignal.LEGAL_CONTEXT, SOCIAL_WORK_CATEGORIES, 1.0),
    ProfessionFitRule(FitSignal.LEGAL_CONTEXT, PSYCHOLOGY_CATEGORIES, 0.8),
]

SIGNAL_PRIORITY: List[FitSignal] = [
    FitSignal.CRISIS_OVERRIDE,
    FitSignal.HOLISTIC,
    FitSignal.LEGAL_CONTEXT,
]


def active_signals(holistic_signal: Optional[HolisticSignal], has_legal_context: bool) -> List[FitSignal]:
    signals = []
    if holistic_signal is not None and holistic_signal.has_clinical_override:
        signals.append(FitSignal.CRISIS_OVERRIDE)
    # recommend_naturopath is already false under a crisis override
    if holistic_signal is not None and holistic_signal.recommend_naturopath:
        signals.append(FitSignal.HOLISTIC)
    if has_legal_context:
        signals.append(FitSignal.LEGAL_CONTEXT)
    return signals


def resolve_profession_fit(
    category_key: Optional[str],
    holistic_signal: Optional[HolisticSignal],
    has_legal_context: bool,
) -> Tuple[float, str]:
    """
    Multiplier for a profession category, and the name of the deciding rule.

    None category means the candidate has no profession data.
    """
    if category_key is None:
        return NO_PROFESSION_MULTIPLIER, "no_profession"

    signals = active_signals(holistic_signal, has_legal_context)
    for signal in SIGNAL_PRIORITY:
        if signal not in signals:
            continue
        for rule in PROFESSION_FIT_RULES:
            if rule.signal == signal and category_key in rule.categories:
                return rule.multiplier, rule.name

    return BASE_MULTIPLIER, "default"


def rule_table() -> Dict[str, List[Dict[str, object]]]:
    """Serialisable view of the table for audit snapshots."""
    table: Dict[str, List[Dict[str, object]]] = {}
    for rule in PROFESSION_FIT_RULES:
        table.setdefault(rule.signal.value, []).append({
            "categories": sorted(rule.categories),
            "multiplier": rule.multiplier,
        })
    return table
