"""
Citation Verifier

Finds in-text citations, checks each against the document's own references
section and grades overall citation quality.

Verification is local only: no bibliographic database is queried.
"""

from __future__ import annotations

import logging
import re

from studytrust.core.enums import QualityLevel
from studytrust.core.schemas import (
    Citation,
    CitationQualityReport,
    CitationVerificationResult,
    ExtractedContent,
    StudyMetadata,
)

logger = logging.getLogger(__name__)

CONTEXT_CHARS = 100

_AUTHOR = r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*"

CITATION_PATTERNS = [
    # (Author, 2020) / (Author et al., 2020a)
    re.compile(rf"\({_AUTHOR}(?:\s+et\s+al\.)?,\s*\d{{4}}[a-z]?\)"),
    # [1], [2-5], [1,2,3]
    re.compile(r"\[\d+(?:[-\s,]\d+)*\]"),
    # Author et al. (2020)
    re.compile(rf"{_AUTHOR}\s+et\s+al\.\s+\(\d{{4}}[a-z]?\)"),
    # Author (2020)
    re.compile(rf"{_AUTHOR}(?:\s+et\s+al\.)?\s+\(\d{{4}}[a-z]?\)"),
]

CITATION_SHAPE = re.compile(r"\(.*\d{4}.*\)|\[.*\]")

NOT_IN_REFERENCES = "Citation not found in references section"
INVALID_FORMAT = "Invalid citation format"


def extract_citations(
    content: ExtractedContent, metadata: StudyMetadata | None = None
) -> list[str]:
    """
    In-text citation strings, deduplicated in first-seen order.

    Args:
        content: Normalized document.
        metadata: Unused; accepted so callers can pass the study context.

    Returns:
        Citation strings.
    """
    found: list[str] = []
    for pattern in CITATION_PATTERNS:
        found.extend(pattern.findall(content.text))
    return list(dict.fromkeys(found))


def _context(text: str, citation: str) -> str:
    index = text.find(citation)
    if index < 0:
        return ""
    return text[max(0, index - CONTEXT_CHARS) : index + len(citation) + CONTEXT_CHARS]


def verify_citations(
    citations: list[str],
    content: ExtractedContent,
    metadata: StudyMetadata | None = None,
) -> CitationVerificationResult:
    """
    Check each citation against the references section.

    A document without a references section cannot verify any citation.
    """
    references = (content.sections.references if content.sections else None) or ""
    references = references.lower()

    results: list[Citation] = []
    verified_count = 0
    issues_found = 0

    for citation in citations:
        issues: list[str] = []
        if not references or citation.lower() not in references:
            issues.append(NOT_IN_REFERENCES)
        if not CITATION_SHAPE.search(citation):
            issues.append(INVALID_FORMAT)

        verified = not issues
        if verified:
            verified_count += 1
        else:
            issues_found += len(issues)

        results.append(
            Citation(
                text=citation,
                context=_context(content.text, citation),
                verified=verified,
                issues=issues,
            )
        )

    logger.debug("Verified %d of %d citations", verified_count, len(citations))
    return CitationVerificationResult(
        citations=results,
        total_citations=len(citations),
        verified_count=verified_count,
        issues_found=issues_found,
    )


def analyze_citation_quality(
    result: CitationVerificationResult, content: ExtractedContent
) -> CitationQualityReport:
    """
    Grade citation quality from verification and issue rates.

    Returns:
        high/90, medium/70 or low with a rate-based score; a missing
        references section costs 20 points.
    """
    if result.total_citations == 0:
        return CitationQualityReport(
            quality=QualityLevel.LOW, score=0, issues=["No citations found in the study"]
        )

    rate = result.verified_count / result.total_citations
    issues_per_citation = result.issues_found / result.total_citations
    issues: list[str] = []

    if rate >= 0.9 and issues_per_citation < 0.1:
        quality, score = QualityLevel.HIGH, 90.0
    elif rate >= 0.7 and issues_per_citation < 0.3:
        quality, score = QualityLevel.MEDIUM, 70.0
    else:
        quality = QualityLevel.LOW
        score = max(30.0, rate * 100 - issues_per_citation * 20)

    if rate < 0.7:
        issues.append(f"Low citation verification rate: {round(rate * 100)}%")
    if issues_per_citation > 0.3:
        issues.append(f"High number of citation issues: {result.issues_found} issues found")

    if not (content.sections and content.sections.references):
        issues.append("No references section found")
        score = max(0.0, score - 20)

    return CitationQualityReport(quality=quality, score=score, issues=issues)
