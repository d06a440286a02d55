"""
StudyTrust Scoring Layer
"""

from studytrust.scoring.trust_score import (
    apply_citation_penalty,
    calculate_trust_score,
    compute_adjustment,
    rating_for,
    round_half_up,
)

__all__ = [
    "calculate_trust_score",
    "compute_adjustment",
    "apply_citation_penalty",
    "rating_for",
    "round_half_up",
]
