"""
StudyTrust Core Enumerations

This module defines all enumerations used throughout the pipeline.
These keep vocabulary consistent between the provider wire format,
the scorer and the API surface.
"""

from enum import Enum


class InputType(str, Enum):
    """Supported study input modalities."""

    URL = "url"
    PDF = "pdf"
    DOI = "doi"
    TEXT = "text"


class StudyType(str, Enum):
    """Study design classification produced by metadata extraction."""

    META_ANALYSIS = "Meta-analysis"
    RCT = "Randomized Controlled Trial"
    COHORT = "Cohort Study"
    CASE_CONTROL = "Case-Control Study"
    CROSS_SECTIONAL = "Cross-sectional Study"
    OBSERVATIONAL = "Observational Study"
    IN_VITRO = "In Vitro Study"
    ANIMAL = "Animal Study"


class Severity(str, Enum):
    """Severity of a fallacy, validity threat or limitation."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class QualityLevel(str, Enum):
    """Three-level quality grade (citations, evidence quality, confidence)."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EvidenceLevel(str, Enum):
    """
    Six-level evidence hierarchy, strongest first.

    Position 1 is a systematic review / meta-analysis, position 6 is
    expert opinion.
    """

    SYSTEMATIC_REVIEW = "systematic_review"
    RCT = "rct"
    COHORT = "cohort"
    CASE_CONTROL = "case_control"
    CASE_SERIES = "case_series"
    EXPERT_OPINION = "expert_opinion"

    @property
    def position(self) -> int:
        return list(EvidenceLevel).index(self) + 1


class CriterionStrength(str, Enum):
    """Strength of a Bradford Hill criterion."""

    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    NONE = "none"


class TrustRating(str, Enum):
    """Categorical rating derived from the overall trust score."""

    HIGHLY_RELIABLE = "Highly Reliable"
    MODERATELY_RELIABLE = "Moderately Reliable"
    QUESTIONABLE = "Questionable"
    UNRELIABLE = "Unreliable"


class ScoreCategory(str, Enum):
    """The five scored categories and their provider wire keys."""

    METHODOLOGY = "methodology"
    EVIDENCE_STRENGTH = "evidenceStrength"
    BIAS = "bias"
    REPRODUCIBILITY = "reproducibility"
    STATISTICAL_VALIDITY = "statisticalValidity"

    @property
    def default_max_score(self) -> float:
        return _DEFAULT_MAX_SCORES[self]

    @property
    def field_name(self) -> str:
        """Attribute name on AnalysisScores."""
        return _FIELD_NAMES[self]


_DEFAULT_MAX_SCORES = {
    ScoreCategory.METHODOLOGY: 25.0,
    ScoreCategory.EVIDENCE_STRENGTH: 20.0,
    ScoreCategory.BIAS: 20.0,
    ScoreCategory.REPRODUCIBILITY: 15.0,
    ScoreCategory.STATISTICAL_VALIDITY: 20.0,
}

_FIELD_NAMES = {
    ScoreCategory.METHODOLOGY: "methodology",
    ScoreCategory.EVIDENCE_STRENGTH: "evidence_strength",
    ScoreCategory.BIAS: "bias",
    ScoreCategory.REPRODUCIBILITY: "reproducibility",
    ScoreCategory.STATISTICAL_VALIDITY: "statistical_validity",
}


class AnalysisPhase(str, Enum):
    """The two concurrent provider requests issued per study."""

    PHASE_ONE = "phase1"
    PHASE_TWO = "phase2"


class ErrorKind(str, Enum):
    """User-facing failure classes of the pipeline."""

    INPUT = "input"
    EXTRACTION = "extraction"
    PROVIDER_AUTH = "provider_auth"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVIDER_RESPONSE = "provider_response"
    SCORING = "scoring"
    INTERNAL = "internal"


class GraphNode(str, Enum):
    """Nodes of the analysis pipeline graph."""

    VALIDATE_INPUT = "validate_input"
    NORMALIZE = "normalize"
    EXTRACT_METADATA = "extract_metadata"
    VERIFY_CITATIONS = "verify_citations"
    CHECK_CACHE = "check_cache"
    AI_ANALYSIS = "ai_analysis"
    SCORE = "score"
    ASSEMBLE = "assemble"
