"""
StudyTrust Custom Exceptions

This module defines all custom exceptions used throughout the pipeline.
Exceptions are organized by layer/responsibility.
"""

from typing import Any

from studytrust.core.enums import ErrorKind


class StudyTrustError(Exception):
    """Base exception for all StudyTrust errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(StudyTrustError):
    """Error in system configuration."""

    pass


class MissingAPIKeyError(ConfigurationError):
    """Required API key is missing."""

    def __init__(self, key_name: str):
        super().__init__(f"Missing required API key: {key_name}", {"key_name": key_name})


# =============================================================================
# INPUT ERRORS
# =============================================================================


class InputError(StudyTrustError):
    """Request is malformed: bad input type, empty, oversized or invalid content."""

    def __init__(self, message: str, input_type: str | None = None):
        super().__init__(message, {"input_type": input_type} if input_type else None)
        self.input_type = input_type


# =============================================================================
# EXTRACTION ERRORS
# =============================================================================


class ExtractionError(StudyTrustError):
    """Base error for document normalization."""

    pass


class FetchError(ExtractionError):
    """Fetching a study URL failed."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        super().__init__(message, {"url": url, "status_code": status_code})
        self.status_code = status_code


class PDFEncryptedError(ExtractionError):
    """PDF is password-protected."""

    def __init__(self) -> None:
        super().__init__("PDF is password-protected. Please provide an unprotected PDF.")


class PDFCorruptedError(ExtractionError):
    """PDF could not be opened at all."""

    def __init__(self) -> None:
        super().__init__("Invalid PDF file: The file may be corrupted or not a valid PDF")


class PDFParsingError(ExtractionError):
    """Generic failure while reading an opened PDF."""

    pass


class DOIError(ExtractionError):
    """Base error for DOI resolution."""

    def __init__(self, message: str, doi: str | None = None, status_code: int | None = None):
        super().__init__(message, {"doi": doi, "status_code": status_code})
        self.doi = doi
        self.status_code = status_code


class DOINotFoundError(DOIError):
    """DOI registry has no record for the DOI."""

    def __init__(self, doi: str):
        super().__init__(
            f"DOI not found: {doi}. Please verify the DOI is correct.", doi=doi, status_code=404
        )


class DOITimeoutError(DOIError):
    """DOI registry did not answer in time."""

    def __init__(self, doi: str):
        super().__init__(
            "Request timeout: DOI lookup service took too long to respond", doi=doi
        )


class DOIServiceUnavailableError(DOIError):
    """DOI registry answered with a 5xx status."""

    def __init__(self, doi: str, status_code: int):
        super().__init__(
            "DOI service temporarily unavailable. Please try again later.",
            doi=doi,
            status_code=status_code,
        )


class DOIResolutionError(DOIError):
    """Any other DOI lookup failure."""

    pass


class InsufficientContentError(ExtractionError):
    """Normalization produced too little text to analyze."""

    def __init__(self, message: str, input_type: str, length: int):
        super().__init__(message, {"input_type": input_type, "length": length})
        self.input_type = input_type
        self.length = length


# =============================================================================
# PROVIDER ERRORS
# =============================================================================


class ProviderError(StudyTrustError):
    """Error from the external analysis provider."""

    def __init__(
        self, message: str, provider: str, status_code: int | None = None, retryable: bool = False
    ):
        super().__init__(
            message, {"provider": provider, "status_code": status_code, "retryable": retryable}
        )
        self.provider = provider
        self.status_code = status_code
        self.retryable = retryable


class ProviderAuthError(ProviderError):
    """Provider rejected the credentials."""

    def __init__(self, provider: str, message: str = "Authentication failed", status_code: int | None = 401):
        super().__init__(message, provider=provider, status_code=status_code, retryable=False)


class ProviderRateLimitError(ProviderError):
    """Rate limit exceeded."""

    def __init__(self, provider: str, retry_after: float | None = None):
        super().__init__(
            f"Rate limit exceeded for {provider}", provider=provider, status_code=429, retryable=True
        )
        self.retry_after = retry_after


class ProviderTimeoutError(ProviderError):
    """Provider call timed out."""

    def __init__(self, provider: str, message: str = "Request timed out"):
        super().__init__(message, provider=provider, retryable=True)


class ProviderUnavailableError(ProviderError):
    """Provider unreachable or answered with a 5xx status."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        super().__init__(message, provider=provider, status_code=status_code, retryable=True)


class ProviderRequestError(ProviderError):
    """Provider rejected the request with a non-retriable 4xx status."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        super().__init__(message, provider=provider, status_code=status_code, retryable=False)


class ProviderResponseError(ProviderError):
    """Provider answered with an empty or undecodable payload."""

    def __init__(self, message: str, provider: str = "unknown"):
        super().__init__(message, provider=provider, retryable=False)


# =============================================================================
# SCORING / CACHE ERRORS
# =============================================================================


class ScoringError(StudyTrustError):
    """Merged analysis cannot be turned into a trust score."""

    pass


class CacheError(StudyTrustError):
    """Error with cache operations."""

    pass


# =============================================================================
# USER-FACING ERROR
# =============================================================================


class AnalysisFailedError(StudyTrustError):
    """
    Terminal pipeline failure carrying a user-facing message.

    Raised only by the pipeline orchestrator, always chained to the internal
    error that caused it.
    """

    def __init__(self, kind: ErrorKind, user_message: str, retryable: bool = False):
        super().__init__(user_message, {"kind": kind.value, "retryable": retryable})
        self.kind = kind
        self.user_message = user_message
        self.retryable = retryable
