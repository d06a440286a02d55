"""
URL Adapter

Fetches a study web page and normalizes it into ExtractedContent.

Extraction strategy:
1. Drop boilerplate elements (scripts, navigation, page chrome)
2. Take the first matching article container, or the whole body when the
   container is too small to be the article
3. Append recognizable section containers not already included
4. Read bibliographic meta tags (Highwire `citation_*`, Dublin Core, Open Graph)
5. Mine the URL path for a study name and keywords
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import unquote, urlparse

import httpx
from bs4 import BeautifulSoup, Tag

from studytrust.core.exceptions import FetchError
from studytrust.core.schemas import DocumentMetadata, ExtractedContent
from studytrust.ingestion.sections import split_sections
from studytrust.observability.tracer import SpanKind, get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_REDIRECTS = 5

# Minimum length for a content container to be trusted over the whole body
MIN_MAIN_CONTENT_LENGTH = 500
MIN_EXTRA_SECTION_LENGTH = 100
URL_HEADING_WINDOW = 100

REMOVE_SELECTORS = ["script", "style", "nav", "footer", "header", "aside", "noscript"]

CONTENT_SELECTORS = [
    ".article-content",
    ".article-body",
    ".main-content",
    ".content",
    "article",
    ".abstract",
    '[role="main"]',
    ".article-text",
    ".full-text",
    ".paper-content",
    ".research-article",
]

EXTRA_SECTION_SELECTORS = [
    ".abstract-section, .abstract",
    ".introduction-section, .introduction",
    ".methods-section, .methods, .methodology",
    ".results-section, .results, .findings",
    ".discussion-section, .discussion",
    ".conclusion-section, .conclusion",
    ".references-section, .references, .ref-list",
]

AUTHOR_SELECTORS = (
    '.author, [rel="author"], .authors, .byline, [itemprop="author"], .citation__authors'
)

DOI_IN_TEXT = re.compile(r"doi[:\s]*(10\.\d{4,}/[-._;()/:a-zA-Z0-9]+)", re.IGNORECASE)
DOI_ANYWHERE = re.compile(r"10\.\d{4,}/[-._;()/:a-zA-Z0-9]+")

FILE_EXTENSION = re.compile(r"\.(pdf|html?|xml|docx?)$", re.IGNORECASE)
BOILERPLATE_SUFFIX = re.compile(
    r"[-_\s]+(book|review|summary|article|paper|report|doc|document)$", re.IGNORECASE
)
BOILERPLATE_PREFIX = re.compile(
    r"^(book|review|summary|article|paper|report|doc|document)[-_\s]+", re.IGNORECASE
)
POSSESSIVE_NAME = re.compile(r"([A-Z][a-z]+(?:['’]s)?\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)")
CAPITALIZED_RUN = re.compile(r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+){1,5})")
GENERIC_LEADING_WORD = re.compile(
    r"^(The|A|An|Study|Research|Analysis|Review|Article|Paper|Report|Document)\s", re.IGNORECASE
)
GENERIC_DIRECTORIES = {"docs", "documents", "files", "pdfs", "articles"}


@dataclass(frozen=True)
class UrlIdentifiers:
    """Study name, title and keywords mined from a URL."""

    study_name: str | None = None
    title: str | None = None
    keywords: str | None = None


def _clean_segment(segment: str) -> str:
    name = FILE_EXTENSION.sub("", unquote(segment))
    name = BOILERPLATE_SUFFIX.sub("", name)
    name = BOILERPLATE_PREFIX.sub("", name)
    return name.strip()


def extract_url_identifiers(url: str) -> UrlIdentifiers:
    """
    Mine a URL path for a candidate study name and keyword list.

    Examples:
        ".../Carrington's%20Conspiracy%20Review.pdf" -> study name "Carrington's Conspiracy"
        ".../docs/vitamin-d_trial-2019.html" -> keywords "vitamin d trial"
    """
    try:
        path = urlparse(url).path
    except ValueError:
        return UrlIdentifiers()

    segments = [s for s in path.split("/") if s]
    if not segments:
        return UrlIdentifiers()

    filename = _clean_segment(segments[-1])
    spaced = re.sub(r"[-_]+", " ", filename)

    study_name: str | None = None

    match = POSSESSIVE_NAME.search(spaced)
    if match and len(match.group(1)) >= 5:
        study_name = match.group(1).strip()

    if study_name is None:
        match = CAPITALIZED_RUN.search(spaced)
        if match:
            candidate = match.group(1).strip()
            if len(candidate) >= 5 and not GENERIC_LEADING_WORD.match(candidate + " "):
                study_name = candidate

    if study_name is None:
        parts = [
            p
            for p in re.split(r"[-_\s]+", filename)
            if re.search(r"[A-Z]", p) and len(p) >= 3 and not p.isdigit()
        ]
        if len(parts) >= 2:
            study_name = " ".join(parts[:3])

    keywords: list[str] = []
    for segment in segments:
        keyword = FILE_EXTENSION.sub("", unquote(segment))
        keyword = re.sub(r"[-_]+", " ", keyword)
        keyword = re.sub(r"\b\d{4}\b", "", keyword)
        keyword = re.sub(r"\s+", " ", keyword).strip()
        if len(keyword) >= 3 and not keyword.isdigit() and keyword.lower() not in GENERIC_DIRECTORIES:
            keywords.append(keyword)

    return UrlIdentifiers(
        study_name=study_name,
        title=study_name,
        keywords=", ".join(keywords) or None,
    )


def _collapse_whitespace(text: str) -> str:
    text = re.sub(r"[ \t\r\f\v ]+", " ", text)
    text = re.sub(r" *\n[ \n]*", "\n", text)
    return text.strip()


def _meta(soup: BeautifulSoup, *names: str) -> str | None:
    for name in names:
        tag = soup.find("meta", attrs={"name": name}) or soup.find("meta", attrs={"property": name})
        if isinstance(tag, Tag):
            value = tag.get("content")
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def _meta_all(soup: BeautifulSoup, name: str) -> list[str]:
    values = []
    for tag in soup.find_all("meta", attrs={"name": name}):
        value = tag.get("content")
        if isinstance(value, str) and value.strip():
            values.append(value.strip())
    return values


class UrlScraper:
    """
    URL extraction adapter.

    Usage:
        scraper = UrlScraper()
        content = await scraper.normalize("https://journal.example/article/123")
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize scraper.

        Args:
            timeout: Request timeout in seconds.
            max_redirects: Redirects followed before giving up.
            transport: Optional httpx transport (tests inject a MockTransport).
        """
        self._timeout = timeout
        self._max_redirects = max_redirects
        self._transport = transport

    async def fetch(self, url: str) -> str:
        """
        GET the page and return its HTML.

        Raises:
            FetchError: With a cause-specific message.
        """
        with tracer.span("fetch", kind=SpanKind.CLIENT) as span:
            span.set_attribute("url", url)
            try:
                async with httpx.AsyncClient(
                    headers={"User-Agent": USER_AGENT, "Accept": ACCEPT},
                    timeout=self._timeout,
                    follow_redirects=True,
                    max_redirects=self._max_redirects,
                    transport=self._transport,
                ) as client:
                    response = await client.get(url)
            except httpx.TimeoutException as e:
                raise FetchError(
                    "Request timeout: The URL took too long to respond", url=url
                ) from e
            except httpx.TooManyRedirects as e:
                raise FetchError(
                    f"Failed to fetch URL: Too many redirects (more than {self._max_redirects})",
                    url=url,
                ) from e
            except httpx.RequestError as e:
                raise FetchError(
                    "Failed to fetch URL: No response from server. "
                    "The site may be down or blocking requests.",
                    url=url,
                ) from e

            span.set_attribute("status_code", response.status_code)
            if response.status_code == 404:
                raise FetchError("URL not found (404)", url=url, status_code=404)
            if response.status_code == 403:
                raise FetchError(
                    "Access denied: This URL blocks automated access", url=url, status_code=403
                )
            if response.status_code >= 400:
                raise FetchError(
                    f"Failed to fetch URL: {response.status_code} {response.reason_phrase}",
                    url=url,
                    status_code=response.status_code,
                )
            return response.text

    def parse(self, html: str, url: str) -> ExtractedContent:
        """Turn fetched HTML into ExtractedContent."""
        soup = BeautifulSoup(html, "lxml")

        # Meta tags live in <head>, read them before stripping page chrome
        metadata = self._extract_metadata(soup, url)

        for tag in soup.select(", ".join(REMOVE_SELECTORS)):
            tag.decompose()

        text = self._extract_text(soup)

        doi = metadata.pop("doi", None)
        if doi is None:
            match = DOI_IN_TEXT.search(text)
            if match:
                doi = match.group(1)
        if doi is None:
            match = DOI_ANYWHERE.search(unquote(url))
            if match:
                doi = match.group(0)
        metadata["doi"] = doi.rstrip(".;,") if doi else None

        return ExtractedContent(
            text=text,
            metadata=DocumentMetadata(**metadata),
            sections=split_sections(text, heading_window=URL_HEADING_WINDOW),
        )

    async def normalize(self, url: str) -> ExtractedContent:
        """Fetch and parse a study URL."""
        html = await self.fetch(url)
        content = self.parse(html, url)
        logger.info("Extracted %d characters from %s", len(content.text), url)
        return content

    def _extract_text(self, soup: BeautifulSoup) -> str:
        main_text = ""
        for selector in CONTENT_SELECTORS:
            element = soup.select_one(selector)
            if element is not None:
                main_text = element.get_text("\n", strip=True)
                if main_text:
                    break

        if len(main_text) < MIN_MAIN_CONTENT_LENGTH:
            body = soup.body or soup
            main_text = body.get_text("\n", strip=True)

        parts = [main_text]
        for selector in EXTRA_SECTION_SELECTORS:
            element = soup.select_one(selector)
            if element is None:
                continue
            section_text = element.get_text("\n", strip=True)
            if len(section_text) > MIN_EXTRA_SECTION_LENGTH and section_text not in main_text:
                parts.append(section_text)

        return _collapse_whitespace("\n\n".join(parts))

    def _extract_metadata(self, soup: BeautifulSoup, url: str) -> dict:
        identifiers = extract_url_identifiers(url)

        title = _meta(soup, "og:title", "citation_title", "DC.Title", "dc.title")
        if title is None:
            h1 = soup.find("h1")
            if h1 is not None:
                title = h1.get_text(" ", strip=True) or None
        if title is None and soup.title is not None:
            title = soup.title.get_text(" ", strip=True) or None
        if title is None:
            title = identifiers.title

        authors = _meta_all(soup, "citation_author")
        if not authors:
            for element in soup.select(AUTHOR_SELECTORS):
                name = element.get_text(" ", strip=True)
                if name and name not in authors:
                    authors.append(name)

        doi = _meta(soup, "citation_doi", "DC.Identifier", "dc.identifier")
        if doi is not None:
            match = DOI_ANYWHERE.search(doi)
            doi = match.group(0) if match else None

        return {
            "title": title,
            "authors": authors[:20],
            "journal": _meta(soup, "citation_journal_title", "DC.Source", "dc.source"),
            "publication_date": _meta(
                soup, "citation_publication_date", "citation_date", "DC.Date", "dc.date"
            ),
            "doi": doi,
            "study_name_from_url": identifiers.study_name,
            "url_keywords": identifiers.keywords,
        }
