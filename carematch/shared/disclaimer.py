"""
CareMatch Recommendation Disclaimer

Every recommendation run carries this text. Rendering layers must display it
alongside the ranked shortlist.

RULES (LOCKED):
1. The ranking is a suggestion for staff, not a clinical judgment.
2. Slot availability is an estimate and is not a booking.
"""

RECOMMENDATION_DISCLAIMER_FR = (
    "Ces recommandations sont une aide au jumelage et ne constituent pas un avis clinique. "
    "Les disponibilités sont estimées et ne garantissent pas une réservation."
)
