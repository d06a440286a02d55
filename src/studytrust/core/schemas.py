"""
StudyTrust Core Schemas

Pydantic models for the document model, metadata, citations, provider
analysis records and the final result.

Key Design Principles:
1. Result records are immutable (frozen=True)
2. Absent metadata is None, never an empty string
3. Provider output is materialized into fully-defaulted records before
   it reaches the scorer
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from studytrust.core.enums import (
    AnalysisPhase,
    CriterionStrength,
    EvidenceLevel,
    InputType,
    QualityLevel,
    ScoreCategory,
    Severity,
    StudyType,
    TrustRating,
)


# =============================================================================
# REQUEST
# =============================================================================


class AnalysisRequest(BaseModel):
    """
    A study submitted for analysis.

    `input_type` is kept as a plain string so that unknown modalities
    surface as an InputError from request validation rather than as a
    schema error.
    """

    model_config = ConfigDict(frozen=True)

    input_type: str = Field(..., description="One of: url, pdf, doi, text")
    content: str = Field(..., description="URL, base64 PDF, DOI or raw text")
    file_name: str | None = Field(default=None, description="Original PDF file name")

    @property
    def kind(self) -> InputType:
        return InputType(self.input_type.strip().lower())


# =============================================================================
# DOCUMENT MODEL
# =============================================================================


class DocumentSections(BaseModel):
    """Named sections split out of a document's text."""

    model_config = ConfigDict(frozen=True)

    abstract: str | None = None
    introduction: str | None = None
    methods: str | None = None
    results: str | None = None
    discussion: str | None = None
    conclusions: str | None = None
    references: str | None = None

    def available(self) -> dict[str, str]:
        """Non-empty sections in document order."""
        return {name: value for name, value in self.model_dump().items() if value}


class DocumentMetadata(BaseModel):
    """Partial metadata discovered by an extraction adapter."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    authors: list[str] | None = None
    journal: str | None = None
    publication_date: str | None = None
    doi: str | None = None
    affiliations: list[str] | None = None
    funding: list[str] | None = None
    study_name_from_url: str | None = None
    url_keywords: str | None = None
    open_access_url: str | None = None

    @field_validator(
        "title",
        "journal",
        "publication_date",
        "doi",
        "study_name_from_url",
        "url_keywords",
        "open_access_url",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("authors", "affiliations", "funding", mode="before")
    @classmethod
    def empty_list_to_none(cls, v: Any) -> Any:
        if isinstance(v, list):
            cleaned = [item.strip() for item in v if isinstance(item, str) and item.strip()]
            return cleaned or None
        return v


class ExtractedContent(BaseModel):
    """Normalized document produced by exactly one extraction adapter."""

    model_config = ConfigDict(frozen=True)

    text: str
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    sections: DocumentSections | None = None


# =============================================================================
# CITATIONS
# =============================================================================


class Citation(BaseModel):
    """A citation string found in the document text."""

    model_config = ConfigDict(frozen=True)

    text: str
    context: str = ""
    verified: bool = False
    issues: list[str] = Field(default_factory=list)


class CitationVerificationResult(BaseModel):
    """Per-citation verification outcome."""

    model_config = ConfigDict(frozen=True)

    citations: list[Citation] = Field(default_factory=list)
    total_citations: int = 0
    verified_count: int = 0
    issues_found: int = 0


class CitationQualityReport(BaseModel):
    """Aggregate citation quality."""

    model_config = ConfigDict(frozen=True)

    quality: QualityLevel
    score: float = Field(..., ge=0, le=100)
    issues: list[str] = Field(default_factory=list)


# =============================================================================
# STUDY METADATA
# =============================================================================


class StudyMetadata(BaseModel):
    """
    Bibliographic and design metadata of a study.

    Created by the extractor, corrected once by the validator, then attached
    read-only to the result. `unverified_fields` lists values that are kept
    as metadata-only because they could not be confirmed against the text.
    """

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    authors: list[str] = Field(default_factory=list)
    affiliations: list[str] = Field(default_factory=list)
    funding: list[str] = Field(default_factory=list)
    journal: str | None = None
    publication_date: str | None = None
    doi: str | None = None
    study_type: StudyType | None = None
    sample_size: int | None = Field(default=None, gt=0, lt=100_000_000)
    study_name_from_url: str | None = None
    url_keywords: str | None = None
    open_access_url: str | None = None
    unverified_fields: list[str] = Field(default_factory=list)
    citation_quality: CitationQualityReport | None = None


# =============================================================================
# CATEGORY SCORES
# =============================================================================


class CategoryScore(BaseModel):
    """Score of one analysis category."""

    model_config = ConfigDict(frozen=True)

    score: float = Field(default=0.0, ge=0)
    max_score: float = Field(..., gt=0)
    percentage: int = 0
    details: str = ""
    issues: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)


def default_category_score(category: ScoreCategory) -> CategoryScore:
    """Zero score with the category's documented maximum."""
    return CategoryScore(score=0.0, max_score=category.default_max_score)


class AnalysisScores(BaseModel):
    """The five-category breakdown."""

    model_config = ConfigDict(frozen=True)

    methodology: CategoryScore
    evidence_strength: CategoryScore
    bias: CategoryScore
    reproducibility: CategoryScore
    statistical_validity: CategoryScore

    def by_category(self) -> dict[ScoreCategory, CategoryScore]:
        return {category: getattr(self, category.field_name) for category in ScoreCategory}

    @property
    def total_score(self) -> float:
        return sum(c.score for c in self.by_category().values())

    @property
    def total_max_score(self) -> float:
        return sum(c.max_score for c in self.by_category().values())


# =============================================================================
# FLAW DETECTION
# =============================================================================


class Fallacy(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "Unknown"
    description: str = ""
    quote: str | None = None
    quote_location: str | None = None
    debunking: str | None = None
    severity: Severity = Severity.MEDIUM
    impact: str = ""


class Confounder(BaseModel):
    model_config = ConfigDict(frozen=True)

    factor: str = "Unknown"
    description: str = ""
    quote: str | None = None
    quote_location: str | None = None
    debunking: str | None = None
    impact: str = ""


class ValidityThreat(BaseModel):
    model_config = ConfigDict(frozen=True)

    threat: str = "Unknown"
    description: str = ""
    quote: str | None = None
    quote_location: str | None = None
    debunking: str | None = None
    severity: Severity = Severity.MEDIUM


class OtherConfoundingFactor(BaseModel):
    model_config = ConfigDict(frozen=True)

    factor: str = "Unknown"
    description: str = ""
    potential_impact: str = ""
    why_it_matters: str = ""
    severity: Severity = Severity.MEDIUM


class StudyIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str = "Unknown"
    description: str = ""
    quote: str | None = None
    quote_location: str | None = None
    debunking: str | None = None


class FlawDetection(BaseModel):
    """Fallacies, confounders and validity threats found in a study."""

    model_config = ConfigDict(frozen=True)

    fallacies: list[Fallacy] = Field(default_factory=list)
    confounders: list[Confounder] = Field(default_factory=list)
    validity_threats: list[ValidityThreat] = Field(default_factory=list)
    other_confounding_factors: list[OtherConfoundingFactor] = Field(default_factory=list)
    issues: list[StudyIssue] = Field(default_factory=list)


# =============================================================================
# CONTEXT, HIERARCHY, CAUSALITY
# =============================================================================


class ExpertContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    consensus: str = ""
    controversies: list[str] = Field(default_factory=list)
    recent_updates: list[str] = Field(default_factory=list)
    related_studies: list[str] = Field(default_factory=list)


class EvidenceHierarchy(BaseModel):
    """Position of the study design in the six-level evidence hierarchy."""

    model_config = ConfigDict(frozen=True)

    level: EvidenceLevel = EvidenceLevel.EXPERT_OPINION
    position: int = Field(default=6, ge=1, le=6)
    quality_within_level: QualityLevel = QualityLevel.MEDIUM


class BradfordHillCriterion(BaseModel):
    model_config = ConfigDict(frozen=True)

    criterion: str = ""
    met: bool = False
    evidence: str = ""
    strength: CriterionStrength = CriterionStrength.NONE
    notes: str | None = None


class BradfordHillAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    implies_causation: bool = False
    criteria: list[BradfordHillCriterion] = Field(default_factory=list)
    overall_assessment: str = ""
    criteria_met: int = Field(default=0, ge=0)
    criteria_total: int = Field(default=9, ge=1)


class CausalInference(BaseModel):
    model_config = ConfigDict(frozen=True)

    can_establish_causality: bool = False
    confidence: QualityLevel = QualityLevel.LOW
    reasoning: str = ""
    study_design_limitations: list[str] = Field(default_factory=list)
    alternative_explanations: list[str] = Field(default_factory=list)
    requirements_met: list[str] = Field(default_factory=list)
    requirements_unmet: list[str] = Field(default_factory=list)
    bradford_hill: BradfordHillAssessment | None = None


class KeyTakeaway(BaseModel):
    model_config = ConfigDict(frozen=True)

    point: str = ""
    importance: Severity = Severity.MEDIUM
    category: str = ""


class StudyLimitation(BaseModel):
    model_config = ConfigDict(frozen=True)

    limitation: str = ""
    impact: str = ""
    severity: Severity = Severity.MEDIUM
    affects_conclusion: bool = False


class ReplicationAttempt(BaseModel):
    model_config = ConfigDict(frozen=True)

    study: str = ""
    outcome: Literal["confirmed", "failed", "partial", "unknown"] = "unknown"
    notes: str | None = None


class ReplicationUpdate(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["correction", "retraction", "erratum", "update"] = "update"
    date: str | None = None
    description: str = ""


class ReplicationInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    replication_attempts: list[ReplicationAttempt] = Field(default_factory=list)
    follow_up_studies: list[str] = Field(default_factory=list)
    meta_analyses: list[str] = Field(default_factory=list)
    updates: list[ReplicationUpdate] = Field(default_factory=list)


# =============================================================================
# PROVIDER ANALYSIS
# =============================================================================


class PartialAnalysisResult(BaseModel):
    """
    One phase's analysis, materialized from the provider's JSON.

    `scores` only holds categories the provider actually populated; use
    `category()` to read a score with defaults applied.
    """

    model_config = ConfigDict(frozen=True)

    phase: AnalysisPhase | None = None
    scores: dict[ScoreCategory, CategoryScore] = Field(default_factory=dict)
    flaw_detection: FlawDetection = Field(default_factory=FlawDetection)
    expert_context: ExpertContext = Field(default_factory=ExpertContext)
    evidence_hierarchy: EvidenceHierarchy | None = None
    causal_inference: CausalInference | None = None
    simple_summary: str = ""
    technical_critique: str = ""
    bias_report: str = ""
    recommendations: list[str] = Field(default_factory=list)
    key_takeaways: list[KeyTakeaway] = Field(default_factory=list)
    study_limitations: list[StudyLimitation] = Field(default_factory=list)
    replication_info: ReplicationInfo | None = None

    def is_populated(self, category: ScoreCategory) -> bool:
        return category in self.scores

    def category(self, category: ScoreCategory) -> CategoryScore:
        return self.scores.get(category) or default_category_score(category)


class MergedAnalysis(BaseModel):
    """Both phases merged into one authoritative analysis."""

    model_config = ConfigDict(frozen=True)

    breakdown: AnalysisScores
    flaw_detection: FlawDetection = Field(default_factory=FlawDetection)
    expert_context: ExpertContext = Field(default_factory=ExpertContext)
    evidence_hierarchy: EvidenceHierarchy | None = None
    causal_inference: CausalInference | None = None
    simple_summary: str = ""
    technical_critique: str = ""
    bias_report: str = ""
    recommendations: list[str] = Field(default_factory=list)
    key_takeaways: list[KeyTakeaway] = Field(default_factory=list)
    study_limitations: list[StudyLimitation] = Field(default_factory=list)
    replication_info: ReplicationInfo | None = None


# =============================================================================
# RESULT
# =============================================================================


class TrustScore(BaseModel):
    """Final score. Computed once, never mutated."""

    model_config = ConfigDict(frozen=True)

    overall: int = Field(..., ge=0, le=100)
    rating: TrustRating
    adjustment: float = Field(..., ge=0.3, le=1.0)
    breakdown: AnalysisScores


class AnalysisResult(BaseModel):
    """Terminal aggregate handed to the caller."""

    model_config = ConfigDict(frozen=True)

    metadata: StudyMetadata
    trust_score: TrustScore
    evidence_hierarchy: EvidenceHierarchy | None = None
    flaw_detection: FlawDetection
    expert_context: ExpertContext
    causal_inference: CausalInference | None = None
    simple_summary: str
    technical_critique: str
    bias_report: str
    recommendations: list[str] = Field(default_factory=list)
    key_takeaways: list[KeyTakeaway] = Field(default_factory=list)
    study_limitations: list[StudyLimitation] = Field(default_factory=list)
    replication_info: ReplicationInfo | None = None
    citation_verification: CitationVerificationResult | None = None
    from_cache: bool = False
    analyzed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# =============================================================================
# PIPELINE STATE
# =============================================================================


class PipelineState(BaseModel):
    """
    State flowing through the analysis graph.

    Each node returns a partial update; fields fill in strictly forward.
    """

    model_config = ConfigDict(validate_assignment=True)

    request: AnalysisRequest
    input_type: InputType | None = None
    payload: str | bytes | None = None
    source_url: str | None = None
    content: ExtractedContent | None = None
    metadata: StudyMetadata | None = None
    citation_verification: CitationVerificationResult | None = None
    cache_key: str | None = None
    analysis: MergedAnalysis | None = None
    from_cache: bool = False
    trust_score: TrustScore | None = None
    result: AnalysisResult | None = None
