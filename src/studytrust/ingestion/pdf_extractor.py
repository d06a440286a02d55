"""
PDF Adapter

Text and metadata extraction from PDF bytes using PyMuPDF (fitz).
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Any

import fitz

from studytrust.core.exceptions import (
    ExtractionError,
    PDFCorruptedError,
    PDFEncryptedError,
    PDFParsingError,
)
from studytrust.core.schemas import DocumentMetadata, ExtractedContent
from studytrust.ingestion.sections import split_sections
from studytrust.metadata.extractor import extract_authors
from studytrust.observability.tracer import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

PDF_HEADING_WINDOW = 50
TITLE_SEARCH_LINES = 10
AUTHOR_SPLIT = re.compile(r"\s*(?:;|,|\band\b)\s*")
FILE_NAME_SEPARATORS = re.compile(r"[_\-\s]+")


@dataclass
class ParsedPDF:
    """Raw output of a PDF parse."""

    text: str
    page_count: int
    info: dict[str, Any] = field(default_factory=dict)


def guess_title(text: str) -> str | None:
    """First plausible title line near the top of the document."""
    for line in text.splitlines()[:TITLE_SEARCH_LINES]:
        line = line.strip()
        if 20 <= len(line) <= 200 and line[0].isupper():
            return line
    return None


def title_from_file_name(file_name: str | None) -> str | None:
    """Readable title from an uploaded file name, e.g. `walking_trial.pdf`."""
    if not file_name:
        return None
    stem = re.split(r"[\\/]", file_name.strip())[-1]
    stem = re.sub(r"\.pdf$", "", stem, flags=re.IGNORECASE)
    title = FILE_NAME_SEPARATORS.sub(" ", stem).strip()
    return title or None


def split_info_authors(author: str | None) -> list[str]:
    """Split a PDF info `author` field into names."""
    if not author:
        return []
    return [name for name in AUTHOR_SPLIT.split(author.strip()) if name]


class PDFExtractor:
    """
    PDF extraction adapter.

    Usage:
        extractor = PDFExtractor()
        content = await extractor.normalize(pdf_bytes)
    """

    def parse(self, data: bytes) -> ParsedPDF:
        """
        Parse PDF bytes.

        Raises:
            PDFCorruptedError: The bytes cannot be opened or hold no pages.
            PDFEncryptedError: The document is password-protected.
            PDFParsingError: Any other failure while reading pages.
        """
        with tracer.span("parse_pdf", attributes={"bytes": len(data)}) as span:
            try:
                doc = fitz.open(stream=data, filetype="pdf")
            except RuntimeError as e:
                raise PDFCorruptedError() from e

            try:
                if doc.needs_pass or doc.is_encrypted:
                    raise PDFEncryptedError()
                if doc.page_count == 0:
                    raise PDFCorruptedError()

                pages = [page.get_text() for page in doc]
                info = {k: v for k, v in (doc.metadata or {}).items() if v}
                page_count = doc.page_count
            except ExtractionError:
                raise
            except Exception as e:
                raise PDFParsingError(f"Failed to parse PDF: {e}") from e
            finally:
                doc.close()

            span.set_attribute("page_count", page_count)
            return ParsedPDF(text="\n".join(pages).strip(), page_count=page_count, info=info)

    async def normalize(self, data: bytes, file_name: str | None = None) -> ExtractedContent:
        """Parse off the event loop and build ExtractedContent.

        The upload's file name is the last resort for a title.
        """
        parsed = await asyncio.to_thread(self.parse, data)
        text = parsed.text

        authors = split_info_authors(parsed.info.get("author")) or extract_authors(text)
        metadata = DocumentMetadata(
            title=(
                parsed.info.get("title") or guess_title(text) or title_from_file_name(file_name)
            ),
            authors=authors,
        )
        logger.info("Extracted %d characters from %d PDF pages", len(text), parsed.page_count)

        return ExtractedContent(
            text=text,
            metadata=metadata,
            sections=split_sections(text, heading_window=PDF_HEADING_WINDOW),
        )
