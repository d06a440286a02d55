"""
Phase Merge

Combines the two phase results into one MergedAnalysis.

Authority per category: phase one owns methodology, evidence strength,
reproducibility and statistical validity; phase two owns bias. A category
populated only by the other phase is taken from that phase; a category
populated by neither gets its default.
"""

from __future__ import annotations

from typing import TypeVar

from studytrust.core.enums import AnalysisPhase, ScoreCategory
from studytrust.core.schemas import (
    AnalysisScores,
    CategoryScore,
    ExpertContext,
    FlawDetection,
    MergedAnalysis,
    PartialAnalysisResult,
    default_category_score,
)

T = TypeVar("T")

CATEGORY_AUTHORITY: dict[ScoreCategory, AnalysisPhase] = {
    ScoreCategory.METHODOLOGY: AnalysisPhase.PHASE_ONE,
    ScoreCategory.EVIDENCE_STRENGTH: AnalysisPhase.PHASE_ONE,
    ScoreCategory.BIAS: AnalysisPhase.PHASE_TWO,
    ScoreCategory.REPRODUCIBILITY: AnalysisPhase.PHASE_ONE,
    ScoreCategory.STATISTICAL_VALIDITY: AnalysisPhase.PHASE_ONE,
}


def _prefer(first: T | None, second: T | None) -> T | None:
    return first if first is not None else second


def merge_category(
    category: ScoreCategory,
    phase_one: PartialAnalysisResult,
    phase_two: PartialAnalysisResult,
) -> CategoryScore:
    """
    Merge one category across phases.

    Score and maximum come from the authoritative phase when it populated
    the category; issues and strengths are concatenated phase one first.
    """
    one = phase_one.scores.get(category)
    two = phase_two.scores.get(category)

    if one is None and two is None:
        return default_category_score(category)
    if one is None or two is None:
        return one or two

    if CATEGORY_AUTHORITY[category] == AnalysisPhase.PHASE_ONE:
        primary, secondary = one, two
    else:
        primary, secondary = two, one
    return CategoryScore(
        score=primary.score,
        max_score=primary.max_score,
        details=primary.details or secondary.details,
        issues=one.issues + two.issues,
        strengths=one.strengths + two.strengths,
    )


def merge_phases(
    phase_one: PartialAnalysisResult, phase_two: PartialAnalysisResult
) -> MergedAnalysis:
    """
    Merge both phases.

    List fields are concatenated phase one then phase two without dedupe.
    Narrative fields prefer the phase focused on them: summary and technical
    critique prefer phase one, bias report prefers phase two.
    """
    breakdown = AnalysisScores(
        **{
            category.field_name: merge_category(category, phase_one, phase_two)
            for category in ScoreCategory
        }
    )

    flaws_one, flaws_two = phase_one.flaw_detection, phase_two.flaw_detection
    flaw_detection = FlawDetection(
        fallacies=flaws_one.fallacies + flaws_two.fallacies,
        confounders=flaws_one.confounders + flaws_two.confounders,
        validity_threats=flaws_one.validity_threats + flaws_two.validity_threats,
        other_confounding_factors=(
            flaws_one.other_confounding_factors + flaws_two.other_confounding_factors
        ),
        issues=flaws_one.issues + flaws_two.issues,
    )

    context_one, context_two = phase_one.expert_context, phase_two.expert_context
    expert_context = ExpertContext(
        consensus=context_two.consensus or context_one.consensus,
        controversies=context_one.controversies + context_two.controversies,
        recent_updates=context_one.recent_updates + context_two.recent_updates,
        related_studies=context_one.related_studies + context_two.related_studies,
    )

    return MergedAnalysis(
        breakdown=breakdown,
        flaw_detection=flaw_detection,
        expert_context=expert_context,
        evidence_hierarchy=_prefer(phase_one.evidence_hierarchy, phase_two.evidence_hierarchy),
        causal_inference=_prefer(phase_two.causal_inference, phase_one.causal_inference),
        simple_summary=phase_one.simple_summary or phase_two.simple_summary,
        technical_critique=phase_one.technical_critique or phase_two.technical_critique,
        bias_report=phase_two.bias_report or phase_one.bias_report,
        recommendations=phase_one.recommendations + phase_two.recommendations,
        key_takeaways=phase_one.key_takeaways + phase_two.key_takeaways,
        study_limitations=phase_one.study_limitations + phase_two.study_limitations,
        replication_info=_prefer(phase_two.replication_info, phase_one.replication_info),
    )
