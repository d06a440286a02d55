"""
StudyTrust Ingestion Layer

Request validation and per-modality extraction into ExtractedContent.
"""

from studytrust.ingestion.doi_resolver import DOIResolver
from studytrust.ingestion.normalizer import DocumentNormalizer, check_extracted_text
from studytrust.ingestion.pdf_extractor import PDFExtractor
from studytrust.ingestion.sections import split_sections
from studytrust.ingestion.text_input import TextInput
from studytrust.ingestion.url_scraper import UrlScraper, extract_url_identifiers
from studytrust.ingestion.validation import ValidatedInput, clean_doi, validate_request

__all__ = [
    "DocumentNormalizer",
    "check_extracted_text",
    "UrlScraper",
    "extract_url_identifiers",
    "PDFExtractor",
    "DOIResolver",
    "TextInput",
    "split_sections",
    "ValidatedInput",
    "clean_doi",
    "validate_request",
]
