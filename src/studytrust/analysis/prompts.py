"""
Analysis Prompts

Prompt construction for the two concurrent analysis phases. Both phases see
the same study prompt; the system prompt and the focus line differ.
"""

from __future__ import annotations

from studytrust.core.enums import AnalysisPhase
from studytrust.core.schemas import ExtractedContent, StudyMetadata

MAX_CONTENT_CHARS = 20000

# Per-section caps, in prompt order
SECTION_LIMITS: dict[str, int] = {
    "abstract": 3000,
    "introduction": 4000,
    "methods": 5000,
    "results": 5000,
    "discussion": 4000,
    "conclusions": 2000,
}

SECTIONS_TRUNCATED_NOTE = "[Content truncated to fit limits, but all sections included]"
TEXT_TRUNCATED_NOTE = "[Content continues but was truncated]"

PHASE_ONE_SYSTEM_PROMPT = (
    "You are an expert scientific research analyst. Assess the study's methodology, "
    "evidence strength, reproducibility and statistical validity, identify fallacies, "
    "confounders and validity threats, and place the design in the evidence hierarchy. "
    "Return valid JSON only."
)

PHASE_TWO_SYSTEM_PROMPT = (
    "You are an expert in detecting bias and conflicts of interest and in the state of "
    "scientific consensus. Investigate funding sources, author conflicts, selection and "
    "publication bias, causal claims, and the study's reception and replication record. "
    "Return valid JSON only."
)

PHASE_FOCUS = {
    AnalysisPhase.PHASE_ONE: (
        "PHASE 1: Methodology and Evidence\n\n"
        "Focus on: methodology, evidence hierarchy position, statistical validity, "
        "reproducibility, fallacies, confounders and validity threats. Quote the study "
        "verbatim from every relevant section."
    ),
    AnalysisPhase.PHASE_TWO: (
        "PHASE 2: Bias and Context\n\n"
        "Focus on: funding and author conflicts of interest, other forms of bias, "
        "causal inference, expert consensus, controversies, replication and "
        "recommendations."
    ),
}

EVIDENCE_HIERARCHY = """EVIDENCE HIERARCHY (strongest to weakest):
1. Systematic reviews / meta-analyses
2. Randomized controlled trials
3. Cohort studies (prospective > retrospective)
4. Case-control studies
5. Case series / reports
6. Expert opinion / editorials"""

OBJECTIVITY = """Analyze the study with complete neutrality. Apply identical standards regardless of
topic, controversy or whether the findings match popular belief. Base every judgement on
design, execution, statistical practice and disclosed or discoverable conflicts of interest.
Read every section supplied. Be thorough and skeptical: question whether the methods
support the conclusions, look for uncontrolled confounders, selective reporting, multiple
comparisons, overgeneralization and conclusions that go beyond the data.

For every fallacy, confounder, validity threat and issue, include a short verbatim "quote"
from the study and its "quoteLocation" when one exists, plus a "debunking" explaining why
the quoted reasoning is flawed. Omit "quote" entirely when no direct quote exists."""

RESPONSE_SCHEMA = """{
  "evidenceHierarchy": {"level": "systematic_review|rct|cohort|case_control|case_series|expert_opinion", "position": 1-6, "qualityWithinLevel": "high|medium|low"},
  "methodology": {"score": 0-25, "maxScore": 25, "details": "...", "issues": [], "strengths": []},
  "evidenceStrength": {"score": 0-20, "maxScore": 20, "details": "...", "issues": [], "strengths": []},
  "bias": {"score": 0-20, "maxScore": 20, "details": "...", "issues": [], "strengths": []},
  "reproducibility": {"score": 0-15, "maxScore": 15, "details": "...", "issues": [], "strengths": []},
  "statisticalValidity": {"score": 0-20, "maxScore": 20, "details": "...", "issues": [], "strengths": []},
  "fallacies": [{"type": "...", "description": "...", "quote": "...", "quoteLocation": "...", "debunking": "...", "severity": "high|medium|low", "impact": "..."}],
  "confounders": [{"factor": "...", "description": "...", "quote": "...", "quoteLocation": "...", "debunking": "...", "impact": "..."}],
  "validityThreats": [{"threat": "...", "description": "...", "quote": "...", "quoteLocation": "...", "debunking": "...", "severity": "high|medium|low"}],
  "otherConfoundingFactors": [{"factor": "...", "description": "...", "potentialImpact": "...", "whyItMatters": "...", "severity": "high|medium|low"}],
  "issues": [{"category": "...", "description": "...", "quote": "...", "quoteLocation": "...", "debunking": "..."}],
  "expertContext": {"consensus": "...", "controversies": [], "recentUpdates": [], "relatedStudies": []},
  "causalInference": {
    "canEstablishCausality": true|false,
    "confidence": "high|medium|low",
    "reasoning": "...",
    "studyDesignLimitations": [],
    "alternativeExplanations": [],
    "requirementsForCausality": {"met": [], "unmet": []},
    "bradfordHillCriteria": {"impliesCausation": true|false, "criteria": [{"criterion": "...", "met": true|false, "evidence": "...", "strength": "strong|moderate|weak|none", "notes": "..."}], "overallAssessment": "...", "criteriaMet": 0-9, "criteriaTotal": 9}
  },
  "keyTakeaways": [{"point": "...", "importance": "high|medium|low", "category": "..."}],
  "studyLimitations": [{"limitation": "...", "impact": "...", "severity": "high|medium|low", "affectsConclusion": true|false}],
  "replicationInfo": {"replicationAttempts": [{"study": "...", "outcome": "confirmed|failed|partial|unknown", "notes": "..."}], "followUpStudies": [], "metaAnalyses": [], "updates": [{"type": "correction|retraction|erratum|update", "date": "...", "description": "..."}]},
  "simpleSummary": "2-3 paragraph non-technical summary",
  "technicalCritique": "2-3 paragraph technical critique",
  "biasReport": "3-4 paragraph bias and conflict-of-interest analysis",
  "recommendations": []
}"""


def build_content_block(content: ExtractedContent, max_chars: int = MAX_CONTENT_CHARS) -> str:
    """
    Section-delimited study content within the character budget.

    Sections are capped individually; when the combination still exceeds
    `max_chars` each body is shrunk by the same ratio so every section
    stays represented. Without sections the raw text is truncated.
    """
    parts: list[tuple[str, str]] = []
    if content.sections is not None:
        available = content.sections.available()
        for name, limit in SECTION_LIMITS.items():
            if name in available:
                parts.append((f"=== {name.upper()} ===", available[name][:limit]))

    if not parts:
        text = content.text[:max_chars]
        if len(content.text) > max_chars:
            text += f"\n\n{TEXT_TRUNCATED_NOTE}"
        return text

    combined = "\n\n".join(f"{header}\n{body}\n" for header, body in parts)
    if len(combined) <= max_chars:
        return combined

    ratio = max_chars / len(combined)
    shrunk = [f"{header}\n{body[: int(len(body) * ratio)]}" for header, body in parts]
    return "\n\n".join(shrunk) + f"\n\n{SECTIONS_TRUNCATED_NOTE}"


def _metadata_line(metadata: StudyMetadata, source_url: str | None) -> str:
    authors = ", ".join(metadata.authors[:5]) if metadata.authors else "Unknown"
    funding = "; ".join(metadata.funding) if metadata.funding else "None"
    study_type = metadata.study_type.value if metadata.study_type else "Unknown"
    fields = [
        metadata.title or "Unknown",
        authors,
        metadata.journal or "Unknown",
        f"Type: {study_type}",
        f"N={metadata.sample_size or 'Unknown'}",
        f"Funding: {funding}",
    ]
    if metadata.doi:
        fields.append(f"DOI: {metadata.doi}")
    if source_url:
        fields.append(f"URL: {source_url}")
    return "METADATA: " + " | ".join(fields)


def _url_context(metadata: StudyMetadata, source_url: str) -> str:
    lines = [f"The study was retrieved from {source_url}."]
    if metadata.study_name_from_url:
        lines.append(
            f'The URL names the study "{metadata.study_name_from_url}". Use what you know '
            "about this study by name: its authors, design, reception, critiques, "
            "replication attempts, controversies and any retractions or corrections. "
            "Note discrepancies between that knowledge and the supplied content."
        )
    else:
        lines.append(
            "Check the URL path and file name for identifiers, authors or topics that "
            "help recognize the study."
        )
    if metadata.url_keywords:
        lines.append(f"URL keywords: {metadata.url_keywords}")
    return "\n".join(lines)


def build_analysis_prompt(
    content: ExtractedContent,
    metadata: StudyMetadata,
    source_url: str | None = None,
) -> str:
    """
    Build the study prompt shared by both phases.

    Args:
        content: Normalized document.
        metadata: Validated metadata.
        source_url: Original URL for URL inputs.

    Returns:
        Prompt text ending with the JSON response schema.
    """
    blocks = ["You are analyzing a scientific study. Return JSON.", OBJECTIVITY]
    if source_url:
        blocks.append(_url_context(metadata, source_url))
    blocks.append(EVIDENCE_HIERARCHY)
    blocks.append(_metadata_line(metadata, source_url))
    blocks.append(("CONTENT FROM URL:" if source_url else "STUDY CONTENT:") + "\n" + build_content_block(content))
    blocks.append(
        "Score evidenceStrength from the hierarchy position and the quality within that "
        "level. Lower scores for high-severity fallacies, uncontrolled confounders, small "
        "samples, undisclosed conflicts of interest, missing replication and multiple "
        "validity threats. List the top 4-5 issues and strengths per category."
    )
    blocks.append("Respond with a JSON object of this shape:\n" + RESPONSE_SCHEMA)
    blocks.append("Return ONLY valid JSON.")
    return "\n\n".join(blocks)


def build_phase_prompt(phase: AnalysisPhase, study_prompt: str) -> str:
    """Prefix the shared study prompt with the phase focus."""
    return f"{PHASE_FOCUS[phase]}\n\n{study_prompt}"


PHASE_SYSTEM_PROMPTS = {
    AnalysisPhase.PHASE_ONE: PHASE_ONE_SYSTEM_PROMPT,
    AnalysisPhase.PHASE_TWO: PHASE_TWO_SYSTEM_PROMPT,
}
