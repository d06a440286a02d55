"""
DOI Adapter

Resolves a DOI to bibliographic metadata through Crossref and enriches it
with open-access information from Unpaywall.

Crossref API: https://api.crossref.org/swagger-ui/index.html
Unpaywall API: https://unpaywall.org/products/api
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from bs4 import BeautifulSoup

from studytrust.core.exceptions import (
    DOIError,
    DOINotFoundError,
    DOIResolutionError,
    DOIServiceUnavailableError,
    DOITimeoutError,
)
from studytrust.core.schemas import DocumentMetadata, DocumentSections, ExtractedContent
from studytrust.ingestion.validation import clean_doi
from studytrust.observability.tracer import SpanKind, get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

CROSSREF_URL = "https://api.crossref.org/works/{doi}"
UNPAYWALL_URL = "https://api.unpaywall.org/v2/{doi}"
DEFAULT_TIMEOUT = 15.0


def _strip_markup(value: str) -> str:
    """Crossref abstracts are JATS XML fragments."""
    return BeautifulSoup(value, "lxml").get_text(" ", strip=True)


def _first(values: Any) -> str | None:
    if isinstance(values, list) and values:
        return str(values[0])
    if isinstance(values, str):
        return values
    return None


def parse_crossref_work(work: dict[str, Any]) -> dict[str, Any]:
    """
    Map a Crossref `message` object to metadata fields.

    Returns:
        Dict with title, authors, journal, publication_date, abstract, funding.
    """
    authors = []
    for author in work.get("author") or []:
        name = " ".join(p for p in (author.get("given"), author.get("family")) if p)
        if name:
            authors.append(name)

    publication_date = None
    date_parts = (work.get("published") or {}).get("date-parts") or []
    if date_parts and date_parts[0] and date_parts[0][0] is not None:
        publication_date = "-".join(
            str(part).zfill(2) if i else str(part) for i, part in enumerate(date_parts[0])
        )

    abstract = work.get("abstract")
    funding = [f["name"] for f in work.get("funder") or [] if f.get("name")]

    return {
        "title": _first(work.get("title")),
        "authors": authors,
        "journal": _first(work.get("container-title")),
        "publication_date": publication_date,
        "abstract": _strip_markup(abstract) if abstract else None,
        "funding": funding,
    }


def parse_unpaywall_record(record: Any) -> dict[str, Any]:
    """
    Open-access link and author affiliations from an Unpaywall record.

    Anything other than a JSON object yields no link and no affiliations.
    """
    if not isinstance(record, dict):
        return {"open_access_url": None, "affiliations": []}

    location = record.get("best_oa_location")
    if not isinstance(location, dict):
        location = {}
    open_access_url = location.get("url_for_pdf") or location.get("url_for_landing_page")

    affiliations: list[str] = []
    for author in record.get("z_authors") or []:
        if not isinstance(author, dict):
            continue
        for affiliation in author.get("affiliation") or []:
            name = affiliation.get("name") if isinstance(affiliation, dict) else affiliation
            if name and name not in affiliations:
                affiliations.append(name)

    return {"open_access_url": open_access_url, "affiliations": affiliations}


def build_synthetic_text(doi: str, fields: dict[str, Any]) -> str:
    """Line-oriented text that downstream heuristics can read."""
    lines = []
    if fields.get("title"):
        lines.append(f"Title: {fields['title']}")
    if fields.get("authors"):
        lines.append(f"Authors: {', '.join(fields['authors'])}")
    if fields.get("journal"):
        lines.append(f"Journal: {fields['journal']}")
    if fields.get("publication_date"):
        lines.append(f"Published: {fields['publication_date']}")
    lines.append(f"DOI: {doi}")
    if fields.get("abstract"):
        lines.append("")
        lines.append(f"Abstract: {fields['abstract']}")
    return "\n".join(lines)


class DOIResolver:
    """
    DOI extraction adapter.

    Usage:
        resolver = DOIResolver(email="you@example.org")
        content = await resolver.normalize("10.1000/xyz123")
    """

    def __init__(
        self,
        email: str = "studytrust@example.com",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize resolver.

        Args:
            email: Contact address required by Unpaywall.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport for tests.
        """
        self._email = email
        self._timeout = timeout
        self._transport = transport

    async def fetch_crossref(self, doi: str) -> dict[str, Any]:
        """
        Fetch the Crossref work record.

        Raises:
            DOIError: Subclass per failure cause.
        """
        with tracer.span("crossref", kind=SpanKind.CLIENT, attributes={"doi": doi}) as span:
            try:
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport
                ) as client:
                    response = await client.get(CROSSREF_URL.format(doi=doi))
            except httpx.TimeoutException as e:
                raise DOITimeoutError(doi) from e
            except httpx.RequestError as e:
                raise DOIResolutionError(f"Failed to resolve DOI: {e}", doi=doi) from e

            span.set_attribute("status_code", response.status_code)
            if response.status_code == 404:
                raise DOINotFoundError(doi)
            if response.status_code >= 500:
                raise DOIServiceUnavailableError(doi, response.status_code)
            if response.status_code >= 400:
                raise DOIResolutionError(
                    f"Failed to resolve DOI: {response.status_code} {response.reason_phrase}",
                    doi=doi,
                    status_code=response.status_code,
                )

            try:
                message = response.json()["message"]
            except (ValueError, KeyError, TypeError) as e:
                raise DOIResolutionError(
                    f"Failed to resolve DOI: unexpected response from Crossref ({e})", doi=doi
                ) from e
            return message

    async def fetch_unpaywall(self, doi: str) -> dict[str, Any]:
        """Fetch the Unpaywall record. Failures only produce a warning."""
        with tracer.span("unpaywall", kind=SpanKind.CLIENT, attributes={"doi": doi}):
            try:
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport
                ) as client:
                    response = await client.get(
                        UNPAYWALL_URL.format(doi=doi), params={"email": self._email}
                    )
                    response.raise_for_status()
                    payload = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Unpaywall lookup failed for %s: %s", doi, e)
                return {}

            if not isinstance(payload, dict):
                logger.warning(
                    "Unpaywall returned %s instead of an object for %s",
                    type(payload).__name__,
                    doi,
                )
                return {}
            return payload

    async def normalize(self, doi: str) -> ExtractedContent:
        """Resolve a DOI into ExtractedContent with synthetic text."""
        doi = clean_doi(doi)

        try:
            work = await self.fetch_crossref(doi)
            fields = parse_crossref_work(work)
        except DOIError:
            raise
        except Exception as e:
            raise DOIResolutionError(f"Failed to resolve DOI: {e}", doi=doi) from e

        oa = parse_unpaywall_record(await self.fetch_unpaywall(doi))

        abstract = fields.pop("abstract")
        text = build_synthetic_text(doi, {**fields, "abstract": abstract})
        metadata = DocumentMetadata(
            **fields,
            doi=doi,
            affiliations=oa["affiliations"],
            open_access_url=oa["open_access_url"],
        )
        logger.info("Resolved DOI %s (%d characters)", doi, len(text))

        return ExtractedContent(
            text=text,
            metadata=metadata,
            sections=DocumentSections(abstract=abstract) if abstract else None,
        )
