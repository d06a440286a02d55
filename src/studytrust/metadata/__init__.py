"""
StudyTrust Metadata Layer

Heuristic metadata extraction and cross-validation against study text.
"""

from studytrust.metadata.extractor import (
    extract_affiliations,
    extract_authors,
    extract_funding,
    extract_journal,
    extract_metadata,
    extract_publication_date,
    extract_sample_size,
    extract_study_type,
)
from studytrust.metadata.validator import validate_metadata

__all__ = [
    "extract_metadata",
    "extract_authors",
    "extract_affiliations",
    "extract_funding",
    "extract_journal",
    "extract_publication_date",
    "extract_study_type",
    "extract_sample_size",
    "validate_metadata",
]
