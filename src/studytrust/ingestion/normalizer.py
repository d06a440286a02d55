"""
Document Normalizer

Dispatches a validated payload to the adapter for its input type and checks
that enough text came out to analyze.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from studytrust.config import Settings, get_settings
from studytrust.core.enums import InputType
from studytrust.core.exceptions import InsufficientContentError
from studytrust.core.schemas import ExtractedContent
from studytrust.ingestion.doi_resolver import DOIResolver
from studytrust.ingestion.pdf_extractor import PDFExtractor
from studytrust.ingestion.text_input import TextInput
from studytrust.ingestion.url_scraper import UrlScraper
from studytrust.observability.tracer import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

SOURCE_NAMES = {
    InputType.URL: "the URL",
    InputType.PDF: "the PDF",
    InputType.DOI: "the DOI",
    InputType.TEXT: "the provided text",
}

REMEDIATION = {
    InputType.URL: (
        "The page may require a login, render its content with JavaScript, or block "
        "automated access. Try a different URL, upload the PDF, or paste the text directly."
    ),
    InputType.PDF: (
        "The PDF may be empty, corrupted, password-protected, or a scanned image without "
        "a text layer. Try a different PDF or paste the text directly."
    ),
    InputType.DOI: (
        "The DOI record may not include an abstract. Try a different DOI, upload the PDF, "
        "or paste the text directly."
    ),
    InputType.TEXT: "Please paste the full study text.",
}


class ExtractionAdapter(Protocol):
    """Shared adapter contract."""

    async def normalize(self, content: Any) -> ExtractedContent: ...


def check_extracted_text(
    content: ExtractedContent, input_type: InputType, min_length: int = 100
) -> None:
    """
    Reject extractions too short to analyze.

    Raises:
        InsufficientContentError: With wording specific to the input type.
    """
    length = len(content.text.strip())
    if length >= min_length:
        return

    source = SOURCE_NAMES[input_type]
    if length == 0:
        message = f"No text content could be extracted from {source}. "
    else:
        message = (
            f"Only {length} characters were extracted from {source}, "
            f"but at least {min_length} characters are needed. "
        )
    raise InsufficientContentError(message + REMEDIATION[input_type], input_type.value, length)


class DocumentNormalizer:
    """
    Routes each input type to exactly one adapter.

    Usage:
        normalizer = DocumentNormalizer.from_settings(settings)
        content = await normalizer.normalize(InputType.URL, "https://...")
    """

    def __init__(
        self,
        url_scraper: ExtractionAdapter | None = None,
        pdf_extractor: ExtractionAdapter | None = None,
        doi_resolver: ExtractionAdapter | None = None,
        text_input: ExtractionAdapter | None = None,
        min_text_length: int = 100,
    ) -> None:
        self._adapters: dict[InputType, ExtractionAdapter] = {
            InputType.URL: url_scraper or UrlScraper(),
            InputType.PDF: pdf_extractor or PDFExtractor(),
            InputType.DOI: doi_resolver or DOIResolver(),
            InputType.TEXT: text_input or TextInput(),
        }
        self._min_text_length = min_text_length

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "DocumentNormalizer":
        """Build adapters from ingestion settings."""
        ingestion = (settings or get_settings()).ingestion
        return cls(
            url_scraper=UrlScraper(
                timeout=ingestion.url_timeout, max_redirects=ingestion.max_redirects
            ),
            doi_resolver=DOIResolver(
                email=ingestion.unpaywall_email, timeout=ingestion.doi_timeout
            ),
            min_text_length=ingestion.min_text_length,
        )

    async def normalize(
        self, input_type: InputType, payload: str | bytes, *, file_name: str | None = None
    ) -> ExtractedContent:
        """
        Run the adapter for `input_type`.

        `file_name` is only forwarded to the PDF adapter.

        Raises:
            ExtractionError: From the adapter, or InsufficientContentError.
        """
        with tracer.span("normalize", attributes={"input_type": input_type.value}) as span:
            adapter = self._adapters[input_type]
            if input_type == InputType.PDF and file_name:
                content = await adapter.normalize(payload, file_name=file_name)
            else:
                content = await adapter.normalize(payload)
            span.set_attribute("text_length", len(content.text))
            span.set_attribute("has_sections", content.sections is not None)
            check_extracted_text(content, input_type, self._min_text_length)
            return content
