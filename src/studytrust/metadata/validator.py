"""
Metadata Validator

Cross-checks extracted metadata against the full study text and returns a
corrected copy. Values that cannot be confirmed are re-derived from the text
or cleared; values that may legitimately come from registry metadata only
(authors, DOI) are kept and listed in `unverified_fields`.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any

from studytrust.core.schemas import StudyMetadata
from studytrust.metadata.extractor import (
    SAMPLE_SIZE_PATTERNS,
    confirms_study_type,
    extract_study_type,
    parse_sample_size,
)

logger = logging.getLogger(__name__)

TITLE_WINDOW = 2000
TITLE_PREFIX = 50
JOURNAL_PREFIX = 30

DOI_FORMAT = re.compile(r"^10\.\d{4,}/.+")
DOI_IN_TEXT = re.compile(
    r"(?:doi|digital object identifier)[:\s]*(10\.\d{4,}/[^\s]+)", re.IGNORECASE
)
DATE_FORMAT = re.compile(r"^\d{4}(?:-\d{2}(?:-\d{2})?)?$")
DATE_ANCHOR = re.compile(r"(?:published|publication|date)[:\s]+.*?(\d{4})", re.IGNORECASE)
TITLE_ANCHOR = re.compile(
    r"\b(?:title|study|paper|article)\s*:\s*(.{10,200}?)(?:\n|abstract|introduction|$)",
    re.IGNORECASE,
)
JOURNAL_ANCHORS = [
    re.compile(r"(?:published in|journal|periodical)[:\s]+([A-Z][^.\n]{5,100}?)(?:\n|\.|$)", re.IGNORECASE),
    re.compile(
        r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+"
        r"(?:Journal|Review|Annals|Proceedings|Magazine|Quarterly))[^a-z]"
    ),
]


def _validate_title(title: str | None, text: str) -> str | None:
    if not title:
        return None
    head = text[:TITLE_WINDOW].lower()
    if title.lower()[:TITLE_PREFIX] in head:
        return title

    match = TITLE_ANCHOR.search(text)
    if match:
        candidate = match.group(1).strip().split("\n")[0].strip()
        if 10 < len(candidate) < 300:
            return candidate
    logger.debug("Dropping title not found in text: %r", title)
    return None


def _author_in_text(author: str, lowered: str) -> bool:
    parts = [p for p in author.lower().split() if len(p) > 2]
    if len(parts) >= 2:
        return parts[0] in lowered and parts[-1] in lowered
    return author.lower() in lowered


def _validate_journal(journal: str | None, text: str, lowered: str) -> str | None:
    if not journal:
        return None
    if journal.lower()[:JOURNAL_PREFIX] in lowered:
        return journal

    for pattern in JOURNAL_ANCHORS:
        match = pattern.search(text)
        if match:
            candidate = match.group(1).strip()
            if 5 < len(candidate) < 150:
                return candidate
    logger.debug("Dropping journal not found in text: %r", journal)
    return None


def _is_real_date(value: str) -> bool:
    if not DATE_FORMAT.match(value):
        return False
    if len(value) == 10:
        try:
            date.fromisoformat(value)
        except ValueError:
            return False
    elif len(value) == 7:
        return 1 <= int(value[5:]) <= 12
    return True


def _validate_date(value: str | None, text: str, today: date) -> str | None:
    if not value:
        return None
    value = value.strip()
    if _is_real_date(value):
        return value

    match = DATE_ANCHOR.search(text)
    if match and 1900 <= int(match.group(1)) <= today.year + 1:
        return match.group(1)
    return None


def _validate_sample_size(size: int | None, text: str) -> int | None:
    if size is None or 0 < size < 100_000_000:
        return size
    match = SAMPLE_SIZE_PATTERNS[0].search(text)
    return parse_sample_size(match.group(1)) if match else None


def validate_metadata(
    metadata: StudyMetadata, text: str, *, today: date | None = None
) -> StudyMetadata:
    """
    Cross-check metadata against the study text.

    Args:
        metadata: Output of the extractor.
        text: Full extracted text.
        today: Reference date for year bounds (defaults to today).

    Returns:
        Corrected copy; the input is not modified.
    """
    today = today or date.today()
    lowered = text.lower()
    unverified = list(metadata.unverified_fields)
    updates: dict[str, Any] = {}

    updates["title"] = _validate_title(metadata.title, text)

    if metadata.authors:
        verified = [a for a in metadata.authors if _author_in_text(a, lowered)]
        if verified:
            updates["authors"] = verified
        else:
            # Could be registry metadata only
            unverified.append("authors")

    updates["journal"] = _validate_journal(metadata.journal, text, lowered)

    doi = metadata.doi
    if doi:
        if not DOI_FORMAT.match(doi):
            match = DOI_IN_TEXT.search(text)
            doi = match.group(1).rstrip(".,;)") if match else None
        elif doi.lower() not in lowered:
            logger.info("DOI found in metadata but not in text: %s", doi)
            unverified.append("doi")
    updates["doi"] = doi

    publication_date = _validate_date(metadata.publication_date, text, today)
    if publication_date and publication_date[:4] not in text:
        unverified.append("publication_date")
    updates["publication_date"] = publication_date

    updates["sample_size"] = _validate_sample_size(metadata.sample_size, text)

    if metadata.study_type is not None and not confirms_study_type(metadata.study_type, text):
        updates["study_type"] = extract_study_type(text)

    updates["unverified_fields"] = list(dict.fromkeys(unverified))
    return metadata.model_copy(update=updates)
