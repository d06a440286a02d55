"""
Metadata Extractor

Pure-function heuristics that pull bibliographic and study-design metadata
out of raw study text. Each heuristic takes text and returns a field value
or None, so every one can be tested and replaced in isolation.
"""

from __future__ import annotations

import logging
import re
from datetime import date

from studytrust.core.enums import StudyType
from studytrust.core.schemas import ExtractedContent, StudyMetadata

logger = logging.getLogger(__name__)

AUTHOR_SEARCH_LINES = 30
MAX_AUTHORS = 10
AUTHOR_STOP_COUNT = 5
MAX_LIST_ITEMS = 10
MAX_SAMPLE_SIZE = 100_000_000

MONTHS = {
    name: index
    for index, name in enumerate(
        [
            "january",
            "february",
            "march",
            "april",
            "may",
            "june",
            "july",
            "august",
            "september",
            "october",
            "november",
            "december",
        ],
        start=1,
    )
}


# =============================================================================
# AUTHORS
# =============================================================================

_NAME = r"[A-Z][a-z'\-]+(?:\s+[A-Z]\.?)*(?:\s+[A-Z][a-z'\-]+){1,2}"

AUTHORS_LABEL = re.compile(r"^\s*Authors?\s*:\s*(.+)$", re.IGNORECASE)
INITIAL_NAME = re.compile(r"^\s*([A-Z][a-z]+\s+[A-Z]\.\s*[A-Z][a-z]+)")
NAME_LIST_LINE = re.compile(rf"^\s*({_NAME}(?:\s*(?:,|\band\b|&)\s*{_NAME})+)\s*$")
AUTHOR_SEPARATOR = re.compile(r"\s*(?:,|\band\b|&)\s*")


def _split_names(value: str) -> list[str]:
    return [name for name in AUTHOR_SEPARATOR.split(value.strip()) if 2 < len(name) < 100]


def extract_authors(text: str) -> list[str]:
    """
    Author names from the head of the document.

    Tries, per line, an `Authors:` label, a `First M. Last` name, then a line
    made up entirely of capitalized names separated by commas, `and` or `&`.
    """
    authors: list[str] = []
    for line in text.splitlines()[:AUTHOR_SEARCH_LINES]:
        for pattern in (AUTHORS_LABEL, INITIAL_NAME, NAME_LIST_LINE):
            match = pattern.match(line)
            if match:
                names = _split_names(match.group(1))
                if names:
                    authors.extend(names)
                    break
        if len(authors) >= AUTHOR_STOP_COUNT:
            break
    return authors[:MAX_AUTHORS]


# =============================================================================
# AFFILIATIONS & FUNDING
# =============================================================================

_INSTITUTION = r"(?:University|College|Institute|Hospital|Center|Centre)"

AFFILIATION_PATTERNS = [
    re.compile(rf"\d+\s+([A-Z][^.]{{10,100}}{_INSTITUTION}[^.]{{0,50}})"),
    re.compile(r"Affiliations?\s*:\s*(.+)$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"(\d+[^\d]{5,100}(?:University|College|Institute)[^\d]{0,50})"),
]

FUNDING_PATTERNS = [
    re.compile(r"Funding[:\s]+([\s\S]+?)(?:\n|Acknowledg|Competing|Conflict)", re.IGNORECASE),
    re.compile(r"Supported by[:\s]+(.+)$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"\bGrants?[:\s]+(.+)$", re.IGNORECASE | re.MULTILINE),
    re.compile(
        r"(?:\bNIH\b|\bNSF\b|European Commission|Wellcome|Bill\b.{0,40}?Melinda Gates).{0,200}",
        re.IGNORECASE,
    ),
]

FUNDING_AGENCIES = [
    re.compile(r"\b(?:NIH|National Institutes of Health)\b", re.IGNORECASE),
    re.compile(r"\b(?:NSF|National Science Foundation)\b", re.IGNORECASE),
    re.compile(r"European Commission|EU Framework", re.IGNORECASE),
    re.compile(r"Wellcome Trust", re.IGNORECASE),
    re.compile(r"Bill\b.{0,40}?Melinda Gates Foundation", re.IGNORECASE),
    re.compile(
        r"(?:Pharmaceutical|Pharma|Biotech|Biotechnology).{0,50}?(?:Inc|Ltd|Corp)\b", re.IGNORECASE
    ),
]


def extract_affiliations(text: str) -> list[str]:
    """Institution names, from the first pattern family that matches."""
    affiliations: list[str] = []
    for pattern in AFFILIATION_PATTERNS:
        for match in pattern.finditer(text):
            value = match.group(1).strip()
            if 10 < len(value) < 200:
                affiliations.append(value)
        if affiliations:
            break
    return list(dict.fromkeys(affiliations))[:MAX_LIST_ITEMS]


def extract_funding(text: str) -> list[str]:
    """Funding statements plus named funding-agency mentions."""
    funding: list[str] = []
    for pattern in FUNDING_PATTERNS:
        for match in pattern.finditer(text):
            value = (match.group(1) if match.groups() else match.group(0)).strip()
            if 5 < len(value) < 500:
                funding.append(value)

    for pattern in FUNDING_AGENCIES:
        funding.extend(match.group(0) for match in pattern.finditer(text))

    return list(dict.fromkeys(funding))[:MAX_LIST_ITEMS]


# =============================================================================
# JOURNAL & DATE
# =============================================================================

JOURNAL_PATTERNS = [
    re.compile(r"\bPublished in[:\s]+(.+?)\s*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^\s*Journal\s*:\s*(.+?)\s*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"\b(?:The|A)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+(?:Journal|Review|Annals|Proceedings))"),
]

ISO_DATE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")
SPELLED_DATE = re.compile(
    r"\b(" + "|".join(MONTHS) + r")\s+(\d{1,2}),?\s+(\d{4})\b", re.IGNORECASE
)
PUBLISHED_LINE = re.compile(r"\bPublished[:\s]+(.+?)\s*$", re.IGNORECASE | re.MULTILINE)
BARE_YEAR = re.compile(r"\b(\d{4})\b")


def extract_journal(text: str) -> str | None:
    for pattern in JOURNAL_PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()[:150]
    return None


def _plausible_year(year: int, today: date | None = None) -> bool:
    today = today or date.today()
    return 1900 <= year <= today.year + 1


def extract_publication_date(text: str, *, today: date | None = None) -> str | None:
    """
    Publication date as ISO `YYYY-MM-DD` or a bare `YYYY`.

    Order: ISO date, spelled-out date (normalized to ISO), a year on a
    `Published:` line, then any plausible four-digit year. Dates that do not
    exist on the calendar are skipped.
    """
    match = ISO_DATE.search(text)
    if match:
        try:
            return date.fromisoformat(match.group(1)).isoformat()
        except ValueError:
            pass

    match = SPELLED_DATE.search(text)
    if match:
        month = MONTHS[match.group(1).lower()]
        try:
            return date(int(match.group(3)), month, int(match.group(2))).isoformat()
        except ValueError:
            # February 31 and the like
            pass

    match = PUBLISHED_LINE.search(text)
    if match:
        year = BARE_YEAR.search(match.group(1))
        if year and _plausible_year(int(year.group(1)), today):
            return year.group(1)

    for match in BARE_YEAR.finditer(text):
        if _plausible_year(int(match.group(1)), today):
            return match.group(1)
    return None


# =============================================================================
# STUDY DESIGN
# =============================================================================

# Checked in order; the first design with a keyword hit wins
STUDY_TYPE_KEYWORDS: dict[StudyType, tuple[str, ...]] = {
    StudyType.META_ANALYSIS: ("meta-analysis", "systematic review"),
    StudyType.RCT: ("randomized", "randomised", "rct"),
    StudyType.COHORT: ("cohort study", "prospective"),
    StudyType.CASE_CONTROL: ("case-control",),
    StudyType.CROSS_SECTIONAL: ("cross-sectional", "survey"),
    StudyType.OBSERVATIONAL: ("observational",),
    StudyType.IN_VITRO: ("in vitro", "cell culture"),
    StudyType.ANIMAL: ("animal", "mouse", "rat"),
}

# Broader keyword sets used to confirm an already assigned design
STUDY_TYPE_CONFIRMATION: dict[StudyType, tuple[str, ...]] = {
    StudyType.META_ANALYSIS: ("meta-analysis", "systematic review", "meta analysis"),
    StudyType.RCT: ("randomized", "rct", "randomised", "random assignment"),
    StudyType.COHORT: ("cohort", "prospective", "follow-up"),
    StudyType.CASE_CONTROL: ("case-control", "case control"),
    StudyType.CROSS_SECTIONAL: ("cross-sectional", "cross sectional", "survey"),
    # Cohort, case-control and cross-sectional designs are all observational
    StudyType.OBSERVATIONAL: (
        "observational",
        "cohort",
        "case-control",
        "case control",
        "cross-sectional",
    ),
    StudyType.IN_VITRO: ("in vitro", "cell culture"),
    StudyType.ANIMAL: ("animal", "mouse", "mice", "rat", "rats", "murine"),
}


def _contains_keyword(lowered: str, keyword: str) -> bool:
    return re.search(rf"(?<![a-z]){re.escape(keyword)}(?![a-z])", lowered) is not None


def extract_study_type(text: str) -> StudyType | None:
    lowered = text.lower()
    for study_type, keywords in STUDY_TYPE_KEYWORDS.items():
        if any(_contains_keyword(lowered, kw) for kw in keywords):
            return study_type
    return None


def confirms_study_type(study_type: StudyType, text: str) -> bool:
    """True if the text mentions a keyword of the given design."""
    lowered = text.lower()
    return any(_contains_keyword(lowered, kw) for kw in STUDY_TYPE_CONFIRMATION[study_type])


SAMPLE_SIZE_PATTERNS = [
    re.compile(
        r"(?:sample size|\bn\s*[=:]|participants?[:\s]+|subjects?[:\s]+)(?:n\s*[=:]?\s*)?"
        r"(\d+(?:\s*,\s*\d{3})*)",
        re.IGNORECASE,
    ),
    re.compile(r"\bn\s*=\s*(\d+(?:\s*,\s*\d{3})*)", re.IGNORECASE),
    re.compile(
        r"(?:total of|totaling)\s+(\d+(?:\s*,\s*\d{3})*)\s+"
        r"(?:participants|subjects|patients|individuals)",
        re.IGNORECASE,
    ),
]


def parse_sample_size(value: str) -> int | None:
    number = int(re.sub(r"[\s,]", "", value))
    return number if 0 < number < MAX_SAMPLE_SIZE else None


def extract_sample_size(text: str) -> int | None:
    for pattern in SAMPLE_SIZE_PATTERNS:
        match = pattern.search(text)
        if match:
            size = parse_sample_size(match.group(1))
            if size is not None:
                return size
    return None


# =============================================================================
# AGGREGATE
# =============================================================================


def extract_metadata(content: ExtractedContent) -> StudyMetadata:
    """
    Build StudyMetadata from an extraction.

    Values the adapter found win; gaps are filled from the text.

    Args:
        content: Normalized document.

    Returns:
        Unvalidated StudyMetadata.
    """
    found = content.metadata
    text = content.text

    metadata = StudyMetadata(
        title=found.title,
        authors=found.authors or extract_authors(text),
        affiliations=found.affiliations or extract_affiliations(text),
        funding=found.funding or extract_funding(text),
        journal=found.journal or extract_journal(text),
        publication_date=found.publication_date or extract_publication_date(text),
        doi=found.doi,
        study_type=extract_study_type(text),
        sample_size=extract_sample_size(text),
        study_name_from_url=found.study_name_from_url,
        url_keywords=found.url_keywords,
        open_access_url=found.open_access_url,
    )
    logger.debug(
        "Extracted metadata: title=%r authors=%d study_type=%s",
        metadata.title,
        len(metadata.authors),
        metadata.study_type,
    )
    return metadata
