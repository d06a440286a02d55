"""
Request Validation

Checks an AnalysisRequest before any adapter runs and returns the cleaned
payload. Every failure is an InputError with a message fit for the caller.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from urllib.parse import urlparse

from studytrust.config import IngestionSettings, get_settings
from studytrust.core.enums import InputType
from studytrust.core.exceptions import InputError
from studytrust.core.schemas import AnalysisRequest

DOI_URL_PREFIX = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:\s*)", re.IGNORECASE)
DOI_SHAPE = re.compile(r"^10\.\d{4,}/.+")
DATA_URL_PREFIX = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)
MIN_PDF_BYTES = 8  # "%PDF-1.x"


@dataclass(frozen=True)
class ValidatedInput:
    """Input type plus the cleaned payload handed to the adapter."""

    input_type: InputType
    payload: str | bytes


def clean_doi(doi: str) -> str:
    """Strip a doi.org URL or `doi:` prefix."""
    return DOI_URL_PREFIX.sub("", doi.strip()).strip()


def _validate_url(content: str, limits: IngestionSettings) -> str:
    url = content.strip()
    if not url:
        raise InputError("URL is required", "url")
    if len(url) > limits.max_url_length:
        raise InputError("URL is too long", "url")
    parsed = urlparse(url)
    if not url.lower().startswith("http") or parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InputError("Invalid URL format. Must start with http:// or https://", "url")
    return url


def _validate_pdf(content: str, limits: IngestionSettings) -> bytes:
    encoded = DATA_URL_PREFIX.sub("", content.strip())
    if not encoded:
        raise InputError("PDF content is required", "pdf")
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InputError("Invalid PDF: Content is not valid base64", "pdf") from e

    if not data:
        raise InputError("Invalid PDF: Empty file", "pdf")
    if len(data) < MIN_PDF_BYTES:
        raise InputError("Invalid PDF: File is too small to be a PDF", "pdf")
    if len(data) > limits.max_pdf_bytes:
        max_mb = limits.max_pdf_bytes // (1024 * 1024)
        raise InputError(f"PDF file is too large (max {max_mb}MB)", "pdf")
    if b"%PDF" not in data[:1024]:
        raise InputError("Invalid PDF: File does not appear to be a PDF document", "pdf")
    return data


def _validate_doi(content: str, limits: IngestionSettings) -> str:
    raw = content.strip()
    if not raw:
        raise InputError("DOI is required", "doi")
    if len(raw) > limits.max_doi_length:
        raise InputError("DOI is too long", "doi")
    doi = clean_doi(raw)
    if not DOI_SHAPE.match(doi):
        raise InputError("Invalid DOI format. Expected something like 10.1234/example", "doi")
    return doi


def _validate_text(content: str, limits: IngestionSettings) -> str:
    text = content.strip()
    if len(text) < limits.min_text_length:
        raise InputError(f"Text must be at least {limits.min_text_length} characters", "text")
    if len(text) > limits.max_text_length:
        raise InputError("Text is too long", "text")
    return text


def validate_request(
    request: AnalysisRequest, limits: IngestionSettings | None = None
) -> ValidatedInput:
    """
    Validate a request and return its cleaned payload.

    Args:
        request: Incoming analysis request.
        limits: Size limits (defaults to configured IngestionSettings).

    Returns:
        ValidatedInput with a str payload (url, doi, text) or bytes (pdf).

    Raises:
        InputError: For unknown input types and malformed content.
    """
    limits = limits or get_settings().ingestion

    try:
        input_type = request.kind
    except ValueError as e:
        raise InputError(
            "Invalid input type. Must be one of: url, pdf, doi, text", request.input_type
        ) from e

    if input_type == InputType.URL:
        payload: str | bytes = _validate_url(request.content, limits)
    elif input_type == InputType.PDF:
        payload = _validate_pdf(request.content, limits)
    elif input_type == InputType.DOI:
        payload = _validate_doi(request.content, limits)
    else:
        payload = _validate_text(request.content, limits)

    return ValidatedInput(input_type=input_type, payload=payload)
