"""
Trust Score Calculator

Deterministic conversion of a merged analysis into a 0-100 trust score.

Algorithm:
1. Start from an adjustment factor of 1.0
2. Subtract per fallacy (high 0.05, medium 0.02) and per validity threat
   (high 0.03, medium 0.01)
3. Subtract 0.05 for three or more confounders
4. Subtract 0.05 for low-quality evidence at hierarchy position 4 or below
5. Floor the factor at 0.3
6. overall = round_half_up(total score / total max * 100 * factor)
"""

from __future__ import annotations

import math

from studytrust.core.enums import QualityLevel, Severity, TrustRating
from studytrust.core.exceptions import ScoringError
from studytrust.core.schemas import (
    AnalysisScores,
    CitationQualityReport,
    EvidenceHierarchy,
    FlawDetection,
    TrustScore,
)

ADJUSTMENT_FLOOR = 0.3

FALLACY_PENALTY = {Severity.HIGH: 0.05, Severity.MEDIUM: 0.02}
THREAT_PENALTY = {Severity.HIGH: 0.03, Severity.MEDIUM: 0.01}
CONFOUNDER_THRESHOLD = 3
CONFOUNDER_PENALTY = 0.05
WEAK_EVIDENCE_POSITION = 4
WEAK_EVIDENCE_PENALTY = 0.05

CITATION_BIAS_PENALTY = 2.0
CITATION_ISSUE = "Low citation quality: in-text citations could not be verified against references"

# (minimum overall, rating), checked top-down
RATING_THRESHOLDS = [
    (80, TrustRating.HIGHLY_RELIABLE),
    (60, TrustRating.MODERATELY_RELIABLE),
    (40, TrustRating.QUESTIONABLE),
]


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_adjustment(
    flaw_detection: FlawDetection, evidence_hierarchy: EvidenceHierarchy | None = None
) -> float:
    """Multiplicative penalty factor in [0.3, 1.0]."""
    adjustment = 1.0

    for fallacy in flaw_detection.fallacies:
        adjustment -= FALLACY_PENALTY.get(fallacy.severity, 0.0)
    for threat in flaw_detection.validity_threats:
        adjustment -= THREAT_PENALTY.get(threat.severity, 0.0)

    if len(flaw_detection.confounders) >= CONFOUNDER_THRESHOLD:
        adjustment -= CONFOUNDER_PENALTY

    if (
        evidence_hierarchy is not None
        and evidence_hierarchy.quality_within_level == QualityLevel.LOW
        and evidence_hierarchy.position >= WEAK_EVIDENCE_POSITION
    ):
        adjustment -= WEAK_EVIDENCE_PENALTY

    # Round away float noise so 20 high fallacies land exactly on the floor
    return max(ADJUSTMENT_FLOOR, round(adjustment, 10))


def rating_for(overall: int) -> TrustRating:
    for threshold, rating in RATING_THRESHOLDS:
        if overall >= threshold:
            return rating
    return TrustRating.UNRELIABLE


def with_percentages(breakdown: AnalysisScores) -> AnalysisScores:
    """New breakdown with each category's percentage filled in."""
    return AnalysisScores(
        **{
            category.field_name: score.model_copy(
                update={"percentage": round_half_up(score.score / score.max_score * 100)}
            )
            for category, score in breakdown.by_category().items()
        }
    )


def apply_citation_penalty(
    breakdown: AnalysisScores, citation_quality: CitationQualityReport | None
) -> AnalysisScores:
    """
    Deduct from the bias score when citation quality is low.

    Returns the breakdown unchanged unless the report grades quality low.
    """
    if citation_quality is None or citation_quality.quality != QualityLevel.LOW:
        return breakdown

    bias = breakdown.bias
    penalized = bias.model_copy(
        update={
            "score": max(0.0, bias.score - CITATION_BIAS_PENALTY),
            "issues": [*bias.issues, CITATION_ISSUE],
        }
    )
    return breakdown.model_copy(update={"bias": penalized})


def calculate_trust_score(
    breakdown: AnalysisScores,
    flaw_detection: FlawDetection,
    evidence_hierarchy: EvidenceHierarchy | None = None,
) -> TrustScore:
    """
    Compute the trust score.

    Pure: the inputs are never modified, so cached analyses stay intact.

    Args:
        breakdown: Merged category scores.
        flaw_detection: Merged flaws.
        evidence_hierarchy: Merged hierarchy placement, if any.

    Returns:
        TrustScore with overall, rating, adjustment and a breakdown carrying
        percentages.

    Raises:
        ScoringError: If the category maxima sum to zero.
    """
    total_max = breakdown.total_max_score
    if total_max <= 0:
        raise ScoringError("Cannot score an analysis whose category maxima sum to zero")

    adjustment = compute_adjustment(flaw_detection, evidence_hierarchy)
    overall = round_half_up(breakdown.total_score / total_max * 100 * adjustment)
    overall = min(max(overall, 0), 100)

    return TrustScore(
        overall=overall,
        rating=rating_for(overall),
        adjustment=adjustment,
        breakdown=with_percentages(breakdown),
    )
