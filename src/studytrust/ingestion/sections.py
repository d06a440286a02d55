"""
Section Splitting

Heuristic splitting of free text into named study sections using
keyword-anchored headings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from studytrust.core.schemas import DocumentSections

MAX_SECTION_CHARS = 5000
MAX_REFERENCES_CHARS = 20000

# Longer alternatives first so "materials and methods" wins over "methods"
SECTION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "abstract": ("abstract", "summary"),
    "introduction": ("introduction", "background"),
    "methods": ("materials and methods", "methodology", "methods"),
    "results": ("results", "findings"),
    "discussion": ("discussion",),
    "conclusions": ("conclusions", "conclusion"),
    "references": ("references", "bibliography"),
}


@dataclass(frozen=True)
class _Heading:
    section: str
    start: int
    end: int


def _line_heading_pattern(keywords: tuple[str, ...]) -> re.Pattern[str]:
    # "2. Methods", "METHODS:", "Materials and Methods"
    alternatives = "|".join(re.escape(k) for k in keywords)
    return re.compile(
        rf"^[ \t]*(?:\d+(?:\.\d+)*\.?[ \t]+)?(?:{alternatives})\b[ \t]*[:.]?",
        re.IGNORECASE | re.MULTILINE,
    )


def _inline_heading_pattern(keywords: tuple[str, ...]) -> re.Pattern[str]:
    # Whitespace-collapsed text: only Title Case or UPPER CASE headings count
    variants: list[str] = []
    for keyword in keywords:
        variants.append(re.escape(keyword[0].upper() + keyword[1:]))
        variants.append(re.escape(keyword.upper()))
    return re.compile(rf"\b(?:{'|'.join(variants)})\b[ \t]*:?")


_LINE_PATTERNS = {name: _line_heading_pattern(kws) for name, kws in SECTION_KEYWORDS.items()}
_INLINE_PATTERNS = {name: _inline_heading_pattern(kws) for name, kws in SECTION_KEYWORDS.items()}


def _find_headings(text: str) -> list[_Heading]:
    headings: list[_Heading] = []
    for name in SECTION_KEYWORDS:
        match = _LINE_PATTERNS[name].search(text) or _INLINE_PATTERNS[name].search(text)
        if match:
            headings.append(_Heading(section=name, start=match.start(), end=match.end()))
    return sorted(headings, key=lambda h: h.start)


def split_sections(
    text: str,
    *,
    heading_window: int = 100,
    max_chars: int = MAX_SECTION_CHARS,
    min_chars: int = 50,
) -> DocumentSections | None:
    """
    Split text into named sections.

    Each section body starts after its heading (on the next line when only
    whitespace follows the heading within `heading_window` characters) and
    runs to the next heading of another section. Bodies are capped at `max_chars`
    (references at MAX_REFERENCES_CHARS) and dropped below `min_chars`.

    Args:
        text: Full document text.
        heading_window: Maximum heading-line slack after the keyword.
        max_chars: Cap for each non-reference section.
        min_chars: Minimum body length for a section to count.

    Returns:
        DocumentSections, or None when no section was found.
    """
    if not text or not text.strip():
        return None

    headings = _find_headings(text)
    found: dict[str, str] = {}

    for index, heading in enumerate(headings):
        body_start = heading.end
        newline = text.find("\n", heading.end, heading.end + heading_window)
        if newline != -1 and not text[heading.end : newline].strip():
            body_start = newline + 1

        body_end = headings[index + 1].start if index + 1 < len(headings) else len(text)
        cap = MAX_REFERENCES_CHARS if heading.section == "references" else max_chars
        body = text[body_start:body_end].strip()[:cap].strip()

        if len(body) >= min_chars:
            found[heading.section] = body

    if not found:
        return None
    return DocumentSections(**found)
