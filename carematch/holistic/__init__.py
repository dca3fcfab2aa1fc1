"""
CareMatch Holistic/Crisis Classifier

Scores free client text for wellness ("holistic") intent and detects
clinical-crisis language that overrides any wellness-provider preference.

Version: holistic_classifier_v1
"""

from .models import HolisticCategory, HolisticSignal
from .classifier import classify_holistic_intent, empty_holistic_signal
from .keywords import HOLISTIC_KEYWORDS, CLINICAL_OVERRIDE_KEYWORDS

__all__ = [
    "HolisticCategory",
    "HolisticSignal",
    "classify_holistic_intent",
    "empty_holistic_signal",
    "HOLISTIC_KEYWORDS",
    "CLINICAL_OVERRIDE_KEYWORDS",
]
