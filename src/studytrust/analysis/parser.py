"""
Provider Response Parser

Decodes one phase's raw provider output and materializes it into a strictly
typed PartialAnalysisResult. Provider JSON is treated as untrusted: every
field is optional, unknown enum values fall back to defaults and scores are
clamped to their category range.
"""

from __future__ import annotations

import json
import logging
import math
from enum import Enum
from typing import Any, TypeVar

from studytrust.core.enums import (
    AnalysisPhase,
    CriterionStrength,
    EvidenceLevel,
    QualityLevel,
    ScoreCategory,
    Severity,
)
from studytrust.core.exceptions import ProviderResponseError
from studytrust.core.schemas import (
    BradfordHillAssessment,
    BradfordHillCriterion,
    CategoryScore,
    CausalInference,
    Confounder,
    EvidenceHierarchy,
    ExpertContext,
    Fallacy,
    FlawDetection,
    KeyTakeaway,
    OtherConfoundingFactor,
    PartialAnalysisResult,
    ReplicationAttempt,
    ReplicationInfo,
    ReplicationUpdate,
    StudyIssue,
    StudyLimitation,
    ValidityThreat,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

BIAS_ALIAS = "fundingBias"
REPLICATION_OUTCOMES = {"confirmed", "failed", "partial", "unknown"}
UPDATE_TYPES = {"correction", "retraction", "erratum", "update"}


# =============================================================================
# DECODING
# =============================================================================


def decode_json_object(raw: str | None, provider: str = "unknown") -> dict[str, Any]:
    """
    Decode a JSON object from provider output.

    Falls back to the substring between the first `{` and the last `}` when
    the payload is wrapped in prose or markdown fences.

    Raises:
        ProviderResponseError: Empty, undecodable or non-object payload.
    """
    if not raw or not raw.strip():
        raise ProviderResponseError("No response from analysis provider", provider=provider)

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        start, end = raw.find("{"), raw.rfind("}")
        if start < 0 or end <= start:
            raise ProviderResponseError(
                "Failed to parse analysis response as JSON", provider=provider
            ) from None
        try:
            data = json.loads(raw[start : end + 1])
        except json.JSONDecodeError as e:
            raise ProviderResponseError(
                f"Failed to parse analysis response as JSON: {e}", provider=provider
            ) from e

    if not isinstance(data, dict):
        raise ProviderResponseError(
            f"Analysis response is a JSON {type(data).__name__}, expected an object",
            provider=provider,
        )
    return data


# =============================================================================
# FIELD COERCION
# =============================================================================


def _dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _dicts(value: Any) -> list[dict[str, Any]]:
    return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    text = value if isinstance(value, str) else str(value)
    return text or default


def _optional_text(value: Any) -> str | None:
    text = _text(value)
    return text or None


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item if isinstance(item, str) else json.dumps(item) for item in value if item]


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def _enum(enum_type: type[E], value: Any, default: E) -> E:
    if isinstance(value, str):
        try:
            return enum_type(value.strip().lower())
        except ValueError:
            pass
    return default


def _literal(value: Any, allowed: set[str], default: str) -> str:
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return default


# =============================================================================
# SECTIONS
# =============================================================================


def parse_category(category: ScoreCategory, raw: dict[str, Any]) -> CategoryScore:
    """Category score clamped to `[0, max_score]`."""
    max_score = _number(raw.get("maxScore"))
    if max_score is None or max_score <= 0:
        max_score = category.default_max_score

    score = _number(raw.get("score")) or 0.0
    score = min(max(score, 0.0), max_score)

    return CategoryScore(
        score=score,
        max_score=max_score,
        details=_text(raw.get("details")),
        issues=_strings(raw.get("issues")),
        strengths=_strings(raw.get("strengths")),
    )


def parse_scores(data: dict[str, Any]) -> dict[ScoreCategory, CategoryScore]:
    """Only categories the provider populated (an object with a `score`)."""
    scores: dict[ScoreCategory, CategoryScore] = {}
    for category in ScoreCategory:
        raw = data.get(category.value)
        if category == ScoreCategory.BIAS and not (isinstance(raw, dict) and "score" in raw):
            raw = data.get(BIAS_ALIAS)
        if isinstance(raw, dict) and "score" in raw:
            scores[category] = parse_category(category, raw)
    return scores


def parse_flaw_detection(data: dict[str, Any]) -> FlawDetection:
    return FlawDetection(
        fallacies=[
            Fallacy(
                type=_text(f.get("type"), "Unknown"),
                description=_text(f.get("description")),
                quote=_optional_text(f.get("quote")),
                quote_location=_optional_text(f.get("quoteLocation")),
                debunking=_optional_text(f.get("debunking")),
                severity=_enum(Severity, f.get("severity"), Severity.MEDIUM),
                impact=_text(f.get("impact")),
            )
            for f in _dicts(data.get("fallacies"))
        ],
        confounders=[
            Confounder(
                factor=_text(c.get("factor"), "Unknown"),
                description=_text(c.get("description")),
                quote=_optional_text(c.get("quote")),
                quote_location=_optional_text(c.get("quoteLocation")),
                debunking=_optional_text(c.get("debunking")),
                impact=_text(c.get("impact")),
            )
            for c in _dicts(data.get("confounders"))
        ],
        validity_threats=[
            ValidityThreat(
                threat=_text(t.get("threat"), "Unknown"),
                description=_text(t.get("description")),
                quote=_optional_text(t.get("quote")),
                quote_location=_optional_text(t.get("quoteLocation")),
                debunking=_optional_text(t.get("debunking")),
                severity=_enum(Severity, t.get("severity"), Severity.MEDIUM),
            )
            for t in _dicts(data.get("validityThreats"))
        ],
        other_confounding_factors=[
            OtherConfoundingFactor(
                factor=_text(f.get("factor"), "Unknown"),
                description=_text(f.get("description")),
                potential_impact=_text(f.get("potentialImpact")),
                why_it_matters=_text(f.get("whyItMatters")),
                severity=_enum(Severity, f.get("severity"), Severity.MEDIUM),
            )
            for f in _dicts(data.get("otherConfoundingFactors"))
        ],
        issues=[
            StudyIssue(
                category=_text(i.get("category"), "Unknown"),
                description=_text(i.get("description")),
                quote=_optional_text(i.get("quote")),
                quote_location=_optional_text(i.get("quoteLocation")),
                debunking=_optional_text(i.get("debunking")),
            )
            for i in _dicts(data.get("issues"))
        ],
    )


def parse_expert_context(raw: dict[str, Any]) -> ExpertContext:
    return ExpertContext(
        consensus=_text(raw.get("consensus")),
        controversies=_strings(raw.get("controversies")),
        recent_updates=_strings(raw.get("recentUpdates")),
        related_studies=_strings(raw.get("relatedStudies")),
    )


def parse_evidence_hierarchy(raw: Any) -> EvidenceHierarchy | None:
    if not isinstance(raw, dict):
        return None

    level = _enum(EvidenceLevel, raw.get("level"), EvidenceLevel.EXPERT_OPINION)
    position = _number(raw.get("position"))
    if position is None or not 1 <= position <= 6:
        position = level.position

    return EvidenceHierarchy(
        level=level,
        position=int(position),
        quality_within_level=_enum(QualityLevel, raw.get("qualityWithinLevel"), QualityLevel.MEDIUM),
    )


def parse_bradford_hill(raw: Any) -> BradfordHillAssessment | None:
    if not isinstance(raw, dict):
        return None

    criteria = [
        BradfordHillCriterion(
            criterion=_text(c.get("criterion")),
            met=_bool(c.get("met")),
            evidence=_text(c.get("evidence")),
            strength=_enum(CriterionStrength, c.get("strength"), CriterionStrength.NONE),
            notes=_optional_text(c.get("notes")),
        )
        for c in _dicts(raw.get("criteria"))
    ]
    total = _number(raw.get("criteriaTotal"))
    met = _number(raw.get("criteriaMet"))
    return BradfordHillAssessment(
        implies_causation=_bool(raw.get("impliesCausation")),
        criteria=criteria,
        overall_assessment=_text(raw.get("overallAssessment")),
        criteria_met=max(int(met), 0) if met is not None else sum(c.met for c in criteria),
        criteria_total=int(total) if total is not None and total >= 1 else 9,
    )


def parse_causal_inference(raw: Any) -> CausalInference | None:
    if not isinstance(raw, dict):
        return None

    requirements = _dict(raw.get("requirementsForCausality"))
    return CausalInference(
        can_establish_causality=_bool(raw.get("canEstablishCausality")),
        confidence=_enum(QualityLevel, raw.get("confidence"), QualityLevel.LOW),
        reasoning=_text(raw.get("reasoning")),
        study_design_limitations=_strings(raw.get("studyDesignLimitations")),
        alternative_explanations=_strings(raw.get("alternativeExplanations")),
        requirements_met=_strings(requirements.get("met")),
        requirements_unmet=_strings(requirements.get("unmet")),
        bradford_hill=parse_bradford_hill(raw.get("bradfordHillCriteria")),
    )


def parse_replication_info(raw: Any) -> ReplicationInfo | None:
    if not isinstance(raw, dict):
        return None

    return ReplicationInfo(
        replication_attempts=[
            ReplicationAttempt(
                study=_text(a.get("study")),
                outcome=_literal(a.get("outcome"), REPLICATION_OUTCOMES, "unknown"),
                notes=_optional_text(a.get("notes")),
            )
            for a in _dicts(raw.get("replicationAttempts"))
        ],
        follow_up_studies=_strings(raw.get("followUpStudies")),
        meta_analyses=_strings(raw.get("metaAnalyses")),
        updates=[
            ReplicationUpdate(
                type=_literal(u.get("type"), UPDATE_TYPES, "update"),
                date=_optional_text(u.get("date")),
                description=_text(u.get("description")),
            )
            for u in _dicts(raw.get("updates"))
        ],
    )


# =============================================================================
# ENTRY POINT
# =============================================================================


def materialize_phase(
    data: dict[str, Any], phase: AnalysisPhase | None = None
) -> PartialAnalysisResult:
    """Convert a decoded provider object into a PartialAnalysisResult."""
    return PartialAnalysisResult(
        phase=phase,
        scores=parse_scores(data),
        flaw_detection=parse_flaw_detection(data),
        expert_context=parse_expert_context(_dict(data.get("expertContext"))),
        evidence_hierarchy=parse_evidence_hierarchy(data.get("evidenceHierarchy")),
        causal_inference=parse_causal_inference(data.get("causalInference")),
        simple_summary=_text(data.get("simpleSummary")),
        technical_critique=_text(data.get("technicalCritique")),
        bias_report=_text(data.get("biasReport")),
        recommendations=_strings(data.get("recommendations")),
        key_takeaways=[
            KeyTakeaway(
                point=_text(k.get("point")),
                importance=_enum(Severity, k.get("importance"), Severity.MEDIUM),
                category=_text(k.get("category")),
            )
            for k in _dicts(data.get("keyTakeaways"))
        ],
        study_limitations=[
            StudyLimitation(
                limitation=_text(s.get("limitation")),
                impact=_text(s.get("impact")),
                severity=_enum(Severity, s.get("severity"), Severity.MEDIUM),
                affects_conclusion=_bool(s.get("affectsConclusion")),
            )
            for s in _dicts(data.get("studyLimitations"))
        ],
        replication_info=parse_replication_info(data.get("replicationInfo")),
    )


def parse_phase_response(
    raw: str | None, phase: AnalysisPhase | None = None, provider: str = "unknown"
) -> PartialAnalysisResult:
    """
    Decode and materialize one phase's provider output.

    Args:
        raw: Provider message content.
        phase: Which phase produced it.
        provider: Provider name for error reporting.

    Returns:
        PartialAnalysisResult with defaults applied.

    Raises:
        ProviderResponseError: Payload is not a JSON object.
    """
    data = decode_json_object(raw, provider=provider)
    result = materialize_phase(data, phase)
    logger.debug(
        "Parsed %s response: %d categories, %d fallacies",
        phase.value if phase else "analysis",
        len(result.scores),
        len(result.flaw_detection.fallacies),
    )
    return result
