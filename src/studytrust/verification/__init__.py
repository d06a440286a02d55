"""
StudyTrust Verification Layer

Local citation verification and quality grading.
"""

from studytrust.verification.citations import (
    analyze_citation_quality,
    extract_citations,
    verify_citations,
)

__all__ = [
    "extract_citations",
    "verify_citations",
    "analyze_citation_quality",
]
