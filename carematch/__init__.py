"""
CareMatch Recommendation Engine

Matches incoming care requests ("demandes") to qualified professionals:
hard-constraint filtering with near-miss tracking, five-factor deterministic
scoring, a holistic/crisis text heuristic, and a bounded advisory refinement.

Output is a provider-ranking suggestion only, never a clinical judgment.
"""

__version__ = "1.0.0"
