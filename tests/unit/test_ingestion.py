"""
Unit Tests for Ingestion

Tests request validation, the URL, PDF, DOI and text adapters, and the
normalizer's insufficient-content checks. Network adapters run against
httpx.MockTransport; PDFs are generated with PyMuPDF.
"""

import asyncio
import base64

import fitz
import httpx
import pytest

from studytrust.config import IngestionSettings
from studytrust.core.enums import InputType
from studytrust.core.exceptions import (
    DOINotFoundError,
    DOIServiceUnavailableError,
    DOITimeoutError,
    FetchError,
    InputError,
    InsufficientContentError,
    PDFCorruptedError,
)
from studytrust.core.schemas import AnalysisRequest, ExtractedContent
from studytrust.ingestion.doi_resolver import (
    DOIResolver,
    parse_crossref_work,
    parse_unpaywall_record,
)
from studytrust.ingestion.normalizer import DocumentNormalizer, check_extracted_text
from studytrust.ingestion.pdf_extractor import (
    PDFExtractor,
    guess_title,
    split_info_authors,
    title_from_file_name,
)
from studytrust.ingestion.sections import split_sections
from studytrust.ingestion.text_input import TextInput, strip_markup
from studytrust.ingestion.url_scraper import UrlScraper, extract_url_identifiers
from studytrust.ingestion.validation import clean_doi, validate_request

LIMITS = IngestionSettings()

PARAGRAPH = (
    "Participants aged 65 and older were randomly assigned to a supervised walking "
    "program or usual care, and blood pressure was measured at baseline and after "
    "twelve weeks by assessors blinded to allocation. "
)


def make_pdf(text: str, metadata: dict | None = None) -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    y = 72
    for line in text.splitlines():
        page.insert_text((72, y), line)
        y += 14
    if metadata:
        doc.set_metadata(metadata)
    data = doc.tobytes()
    doc.close()
    return data


def html_page(body: str, head: str = "") -> str:
    return f"<html><head>{head}</head><body>{body}</body></html>"


def mock_scraper(status: int = 200, html: str = "") -> UrlScraper:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text=html)

    return UrlScraper(transport=httpx.MockTransport(handler))


# =============================================================================
# VALIDATION
# =============================================================================


class TestValidateRequest:
    """Tests for validate_request."""

    def _error(self, input_type: str, content: str) -> str:
        with pytest.raises(InputError) as exc_info:
            validate_request(AnalysisRequest(input_type=input_type, content=content), LIMITS)
        return exc_info.value.message

    def test_unknown_type(self) -> None:
        """Test unsupported input types are rejected."""
        assert self._error("video", "x") == "Invalid input type. Must be one of: url, pdf, doi, text"

    def test_url_required(self) -> None:
        """Test blank URLs."""
        assert self._error("url", "   ") == "URL is required"

    @pytest.mark.parametrize("url", ["ftp://example.org/paper", "example.org/paper", "https://"])
    def test_url_format(self, url: str) -> None:
        """Test non-http URLs and URLs without a host."""
        assert self._error("url", url) == "Invalid URL format. Must start with http:// or https://"

    def test_url_accepted(self) -> None:
        """Test a valid URL is trimmed and passed through."""
        validated = validate_request(
            AnalysisRequest(input_type="URL", content=" https://journal.example/a/1 "), LIMITS
        )
        assert validated.input_type == InputType.URL
        assert validated.payload == "https://journal.example/a/1"

    def test_pdf_not_base64(self) -> None:
        """Test non-base64 PDF content."""
        assert self._error("pdf", "not base64!!") == "Invalid PDF: Content is not valid base64"

    def test_pdf_not_a_pdf(self) -> None:
        """Test base64 content without a PDF header."""
        content = base64.b64encode(b"plain text, definitely not a pdf").decode()
        assert self._error("pdf", content) == (
            "Invalid PDF: File does not appear to be a PDF document"
        )

    def test_pdf_too_large(self) -> None:
        """Test the size limit."""
        limits = IngestionSettings(max_pdf_bytes=16)
        content = base64.b64encode(b"%PDF-1.7" + b"0" * 32).decode()
        with pytest.raises(InputError) as exc_info:
            validate_request(AnalysisRequest(input_type="pdf", content=content), limits)
        assert exc_info.value.message.startswith("PDF file is too large")

    def test_pdf_data_url_accepted(self) -> None:
        """Test a data URL prefix is stripped before decoding."""
        data = make_pdf("Hello")
        content = "data:application/pdf;base64," + base64.b64encode(data).decode()
        validated = validate_request(AnalysisRequest(input_type="pdf", content=content), LIMITS)
        assert validated.payload == data

    def test_doi_required(self) -> None:
        """Test blank DOIs."""
        assert self._error("doi", "") == "DOI is required"

    def test_doi_format(self) -> None:
        """Test strings that are not DOIs."""
        assert self._error("doi", "not-a-doi").startswith("Invalid DOI format")

    def test_doi_prefix_stripped(self) -> None:
        """Test doi.org URLs are reduced to the bare DOI."""
        validated = validate_request(
            AnalysisRequest(input_type="doi", content="https://doi.org/10.1234/walk.2021"), LIMITS
        )
        assert validated.payload == "10.1234/walk.2021"

    def test_text_too_short(self) -> None:
        """Test the minimum text length."""
        assert self._error("text", "too short") == "Text must be at least 100 characters"

    def test_text_accepted(self, study_text: str) -> None:
        """Test long enough text is trimmed and passed through."""
        validated = validate_request(
            AnalysisRequest(input_type="text", content=f"\n{study_text}\n"), LIMITS
        )
        assert validated.payload == study_text.strip()


class TestCleanDoi:
    """Tests for clean_doi."""

    @pytest.mark.parametrize(
        "raw",
        [
            "10.1234/abc",
            "doi:10.1234/abc",
            "doi: 10.1234/abc",
            "https://doi.org/10.1234/abc",
            "http://dx.doi.org/10.1234/abc",
        ],
    )
    def test_prefixes(self, raw: str) -> None:
        """Test every supported prefix is removed."""
        assert clean_doi(raw) == "10.1234/abc"


# =============================================================================
# SECTIONS
# =============================================================================


class TestSplitSections:
    """Tests for heading-based section splitting."""

    def test_line_headings(self) -> None:
        """Test sections delimited by heading lines."""
        text = f"Abstract\n{PARAGRAPH}\n\n2. Methods\n{PARAGRAPH}\n\nRESULTS:\n{PARAGRAPH}"
        sections = split_sections(text)
        assert sections is not None
        assert sections.abstract == PARAGRAPH.strip()
        assert sections.methods == PARAGRAPH.strip()
        assert sections.results == PARAGRAPH.strip()
        assert sections.discussion is None

    def test_short_bodies_dropped(self) -> None:
        """Test bodies under the minimum length do not count."""
        assert split_sections("Abstract\nToo short.\n\nMethods\nAlso short.") is None

    def test_empty_text(self) -> None:
        """Test blank input."""
        assert split_sections("   ") is None


# =============================================================================
# URL ADAPTER
# =============================================================================


class TestUrlIdentifiers:
    """Tests for extract_url_identifiers."""

    def test_keywords_from_path(self) -> None:
        """Test path segments become keywords without years or generic folders."""
        identifiers = extract_url_identifiers("https://example.org/docs/vitamin-d_trial-2019.html")
        assert identifiers.keywords == "vitamin d trial"

    def test_possessive_study_name(self) -> None:
        """Test a possessive name survives boilerplate stripping."""
        identifiers = extract_url_identifiers(
            "https://example.org/files/Carrington's%20Conspiracy%20Review.pdf"
        )
        assert identifiers.study_name == "Carrington's Conspiracy"
        assert identifiers.title == "Carrington's Conspiracy"

    def test_root_url(self) -> None:
        """Test a URL without a path yields nothing."""
        identifiers = extract_url_identifiers("https://example.org/")
        assert identifiers.study_name is None
        assert identifiers.keywords is None


class TestUrlScraperFetch:
    """Tests for HTTP failure translation."""

    @pytest.mark.parametrize(
        "status,message",
        [
            (404, "URL not found (404)"),
            (403, "Access denied: This URL blocks automated access"),
            (500, "Failed to fetch URL: 500 Internal Server Error"),
        ],
    )
    def test_status_errors(self, status: int, message: str) -> None:
        """Test each failing status maps to its message."""
        scraper = mock_scraper(status=status)
        with pytest.raises(FetchError) as exc_info:
            asyncio.run(scraper.fetch("https://journal.example/a/1"))
        assert exc_info.value.message == message
        assert exc_info.value.status_code == status

    def test_timeout(self) -> None:
        """Test timeouts get their own message."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        scraper = UrlScraper(transport=httpx.MockTransport(handler))
        with pytest.raises(FetchError) as exc_info:
            asyncio.run(scraper.fetch("https://journal.example/a/1"))
        assert exc_info.value.message == "Request timeout: The URL took too long to respond"
        assert exc_info.value.status_code is None

    def test_success_returns_html(self) -> None:
        """Test a 200 response body is returned."""
        scraper = mock_scraper(html="<html><body>ok</body></html>")
        html = asyncio.run(scraper.fetch("https://journal.example/a/1"))
        assert "ok" in html


class TestUrlScraperParse:
    """Tests for HTML parsing."""

    def test_meta_tags(self) -> None:
        """Test Highwire citation tags populate the metadata."""
        head = (
            '<meta name="citation_title" content="Walking and Blood Pressure">'
            '<meta name="citation_author" content="Jane Smith">'
            '<meta name="citation_author" content="Robert Jones">'
            '<meta name="citation_journal_title" content="Journal of Hypertension Research">'
            '<meta name="citation_doi" content="doi:10.1234/walk.2021">'
        )
        body = f"<article><p>{PARAGRAPH * 5}</p></article>"
        content = UrlScraper().parse(html_page(body, head), "https://journal.example/a/1")

        assert content.metadata.title == "Walking and Blood Pressure"
        assert content.metadata.authors == ["Jane Smith", "Robert Jones"]
        assert content.metadata.journal == "Journal of Hypertension Research"
        assert content.metadata.doi == "10.1234/walk.2021"
        assert "supervised walking program" in content.text

    def test_chrome_removed(self) -> None:
        """Test scripts, navigation and footers are dropped."""
        body = (
            "<nav>Home | Journals | Login</nav>"
            f"<article><p>{PARAGRAPH * 5}</p></article>"
            "<script>var tracking = 1;</script>"
            "<footer>Copyright Example Publishing</footer>"
        )
        content = UrlScraper().parse(html_page(body), "https://journal.example/a/1")
        assert "Login" not in content.text
        assert "tracking" not in content.text
        assert "Copyright" not in content.text

    def test_small_container_falls_back_to_body(self) -> None:
        """Test a tiny article container is replaced by the whole body."""
        body = f"<article><p>Short teaser.</p></article><div><p>{PARAGRAPH * 5}</p></div>"
        content = UrlScraper().parse(html_page(body), "https://journal.example/a/1")
        assert "Short teaser." in content.text
        assert "blinded to allocation" in content.text

    def test_title_from_h1(self) -> None:
        """Test the first h1 is used when no title meta tag exists."""
        body = f"<h1>Brisk Walking Trial</h1><div><p>{PARAGRAPH * 5}</p></div>"
        content = UrlScraper().parse(html_page(body), "https://journal.example/a/1")
        assert content.metadata.title == "Brisk Walking Trial"

    def test_doi_from_text(self) -> None:
        """Test a DOI printed in the body is picked up without trailing punctuation."""
        body = f"<div><p>{PARAGRAPH * 5}</p><p>doi: 10.5555/test.123.</p></div>"
        content = UrlScraper().parse(html_page(body), "https://journal.example/a/1")
        assert content.metadata.doi == "10.5555/test.123"

    def test_doi_from_url(self) -> None:
        """Test a DOI embedded in the URL path is the last resort."""
        body = f"<div><p>{PARAGRAPH * 5}</p></div>"
        content = UrlScraper().parse(
            html_page(body), "https://journal.example/article/10.1016/j.walk.2020.01.001"
        )
        assert content.metadata.doi == "10.1016/j.walk.2020.01.001"

    def test_url_identifiers_attached(self) -> None:
        """Test URL keywords are carried on the metadata."""
        body = f"<div><p>{PARAGRAPH * 5}</p></div>"
        content = UrlScraper().parse(
            html_page(body), "https://example.org/docs/vitamin-d_trial-2019.html"
        )
        assert content.metadata.url_keywords == "vitamin d trial"

    def test_normalize_fetches_and_parses(self) -> None:
        """Test normalize runs fetch then parse."""
        html = html_page(f"<h1>Walking Trial Results</h1><div><p>{PARAGRAPH * 5}</p></div>")
        content = asyncio.run(mock_scraper(html=html).normalize("https://journal.example/a/1"))
        assert content.metadata.title == "Walking Trial Results"


# =============================================================================
# PDF ADAPTER
# =============================================================================


class TestPDFExtractor:
    """Tests for PDFExtractor."""

    def test_text_and_info_metadata(self) -> None:
        """Test text extraction and document info fields."""
        data = make_pdf(
            "Effects of Walking on Blood Pressure in Older Adults\nAbstract\nWe enrolled adults.",
            metadata={"title": "Walking Trial", "author": "Jane Smith; Robert Jones"},
        )
        content = asyncio.run(PDFExtractor().normalize(data))

        assert "Effects of Walking on Blood Pressure" in content.text
        assert content.metadata.title == "Walking Trial"
        assert content.metadata.authors == ["Jane Smith", "Robert Jones"]

    def test_title_guessed_without_info(self) -> None:
        """Test the first plausible line is the title when info has none."""
        data = make_pdf("Effects of Walking on Blood Pressure in Older Adults\nby the team")
        content = asyncio.run(PDFExtractor().normalize(data))
        assert content.metadata.title == "Effects of Walking on Blood Pressure in Older Adults"

    def test_page_count(self) -> None:
        """Test parse reports the page count."""
        parsed = PDFExtractor().parse(make_pdf("One page only"))
        assert parsed.page_count == 1
        assert parsed.text == "One page only"

    def test_title_from_file_name_fallback(self) -> None:
        """Test the upload's file name titles a PDF with no better candidate."""
        data = make_pdf("\n".join(["results were consistent across sites"] * 8))
        content = asyncio.run(
            PDFExtractor().normalize(data, file_name="uploads/Walking_Trial-2020.pdf")
        )
        assert content.metadata.title == "Walking Trial 2020"

    def test_info_title_beats_file_name(self) -> None:
        """Test document info still wins over the file name."""
        data = make_pdf("One page only", metadata={"title": "Walking Trial"})
        content = asyncio.run(PDFExtractor().normalize(data, file_name="scan_0001.pdf"))
        assert content.metadata.title == "Walking Trial"

    @pytest.mark.parametrize(
        "file_name,expected",
        [
            ("walking_trial.pdf", "walking trial"),
            ("C:\\papers\\Walking-Trial.PDF", "Walking Trial"),
            (".pdf", None),
            (None, None),
        ],
    )
    def test_title_from_file_name(self, file_name, expected) -> None:
        """Test file names are turned into readable titles."""
        assert title_from_file_name(file_name) == expected

    def test_corrupted(self) -> None:
        """Test bytes that are not a PDF."""
        with pytest.raises(PDFCorruptedError):
            PDFExtractor().parse(b"%PDF-1.4 this is not really a pdf")

    def test_guess_title_rules(self) -> None:
        """Test short and lowercase lines are skipped."""
        text = "short\nlowercase line that is long enough\nA Proper Title For The Study"
        assert guess_title(text) == "A Proper Title For The Study"
        assert guess_title("tiny\nlines") is None

    def test_split_info_authors(self) -> None:
        """Test semicolon, comma and 'and' separators."""
        assert split_info_authors("Ann Lee, Bo Kim and Cy Tan") == ["Ann Lee", "Bo Kim", "Cy Tan"]
        assert split_info_authors(None) == []


# =============================================================================
# DOI ADAPTER
# =============================================================================

CROSSREF_WORK = {
    "title": ["Brisk Walking and Blood Pressure"],
    "author": [{"given": "Jane", "family": "Smith"}, {"family": "Jones"}],
    "container-title": ["Journal of Hypertension Research"],
    "published": {"date-parts": [[2021, 3, 5]]},
    "abstract": "<jats:p>Brisk walking lowered systolic blood pressure.</jats:p>",
    "funder": [{"name": "National Institutes of Health"}, {"DOI": "10.13039/x"}],
}

UNPAYWALL_RECORD = {
    "best_oa_location": {"url_for_pdf": "https://oa.example/walk.pdf"},
    "z_authors": [
        {"affiliation": [{"name": "University of Somewhere"}]},
        {"affiliation": [{"name": "University of Somewhere"}]},
    ],
}


def mock_resolver(
    crossref_status: int = 200, unpaywall_status: int = 200, unpaywall_body: bytes | None = None
) -> DOIResolver:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.crossref.org":
            return httpx.Response(crossref_status, json={"message": CROSSREF_WORK})
        if unpaywall_body is not None:
            return httpx.Response(
                unpaywall_status,
                content=unpaywall_body,
                headers={"content-type": "application/json"},
            )
        return httpx.Response(unpaywall_status, json=UNPAYWALL_RECORD)

    return DOIResolver(transport=httpx.MockTransport(handler))


class TestParseCrossrefWork:
    """Tests for Crossref record mapping."""

    def test_fields(self) -> None:
        """Test every mapped field."""
        fields = parse_crossref_work(CROSSREF_WORK)
        assert fields["title"] == "Brisk Walking and Blood Pressure"
        assert fields["authors"] == ["Jane Smith", "Jones"]
        assert fields["journal"] == "Journal of Hypertension Research"
        assert fields["publication_date"] == "2021-03-05"
        assert fields["abstract"] == "Brisk walking lowered systolic blood pressure."
        assert fields["funding"] == ["National Institutes of Health"]

    def test_year_only_date(self) -> None:
        """Test partial date parts."""
        fields = parse_crossref_work({"published": {"date-parts": [[2019]]}})
        assert fields["publication_date"] == "2019"
        assert fields["title"] is None


class TestDOIResolver:
    """Tests for DOIResolver."""

    def test_normalize(self) -> None:
        """Test Crossref and Unpaywall data are merged into ExtractedContent."""
        content = asyncio.run(mock_resolver().normalize("https://doi.org/10.1234/walk"))

        assert content.metadata.doi == "10.1234/walk"
        assert content.metadata.title == "Brisk Walking and Blood Pressure"
        assert content.metadata.open_access_url == "https://oa.example/walk.pdf"
        assert content.metadata.affiliations == ["University of Somewhere"]
        assert content.sections is not None
        assert content.sections.abstract == "Brisk walking lowered systolic blood pressure."
        assert "Title: Brisk Walking and Blood Pressure" in content.text
        assert "DOI: 10.1234/walk" in content.text

    def test_not_found(self) -> None:
        """Test a 404 from Crossref."""
        with pytest.raises(DOINotFoundError):
            asyncio.run(mock_resolver(crossref_status=404).normalize("10.1234/missing"))

    def test_service_unavailable(self) -> None:
        """Test a 5xx from Crossref."""
        with pytest.raises(DOIServiceUnavailableError):
            asyncio.run(mock_resolver(crossref_status=503).normalize("10.1234/walk"))

    def test_timeout(self) -> None:
        """Test a Crossref timeout."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        resolver = DOIResolver(transport=httpx.MockTransport(handler))
        with pytest.raises(DOITimeoutError):
            asyncio.run(resolver.normalize("10.1234/walk"))

    def test_unpaywall_failure_tolerated(self) -> None:
        """Test an Unpaywall failure leaves the Crossref data intact."""
        content = asyncio.run(mock_resolver(unpaywall_status=500).normalize("10.1234/walk"))
        assert content.metadata.title == "Brisk Walking and Blood Pressure"
        assert content.metadata.open_access_url is None

    @pytest.mark.parametrize("body", [b"[]", b"null", b'"not found"'])
    def test_unpaywall_non_object_tolerated(self, body: bytes) -> None:
        """Test a JSON body that is not an object counts as no open-access pointer."""
        content = asyncio.run(mock_resolver(unpaywall_body=body).normalize("10.1234/walk"))
        assert content.metadata.title == "Brisk Walking and Blood Pressure"
        assert content.metadata.open_access_url is None
        assert content.metadata.affiliations == []


class TestParseUnpaywallRecord:
    """Tests for Unpaywall record mapping."""

    def test_record(self) -> None:
        """Test the open-access link and affiliations."""
        fields = parse_unpaywall_record(UNPAYWALL_RECORD)
        assert fields["open_access_url"] == "https://oa.example/walk.pdf"
        assert fields["affiliations"] == ["University of Somewhere"]

    @pytest.mark.parametrize(
        "record",
        [None, [], {"best_oa_location": "closed", "z_authors": ["Jane Smith", None]}],
    )
    def test_malformed_records(self, record) -> None:
        """Test unexpected shapes produce no link and no affiliations."""
        assert parse_unpaywall_record(record) == {"open_access_url": None, "affiliations": []}


# =============================================================================
# NORMALIZER
# =============================================================================


class TestCheckExtractedText:
    """Tests for insufficient-content messages."""

    def test_empty(self) -> None:
        """Test nothing extracted."""
        with pytest.raises(InsufficientContentError) as exc_info:
            check_extracted_text(ExtractedContent(text="   "), InputType.PDF)
        assert exc_info.value.message.startswith(
            "No text content could be extracted from the PDF."
        )

    def test_too_short(self) -> None:
        """Test some text, but not enough."""
        with pytest.raises(InsufficientContentError) as exc_info:
            check_extracted_text(ExtractedContent(text="x" * 40), InputType.URL)
        assert exc_info.value.message.startswith(
            "Only 40 characters were extracted from the URL, but at least 100 characters are needed."
        )

    def test_enough(self) -> None:
        """Test sufficient text passes."""
        check_extracted_text(ExtractedContent(text="x" * 100), InputType.TEXT)


class TestDocumentNormalizer:
    """Tests for adapter dispatch."""

    def test_text_passthrough(self, study_text: str) -> None:
        """Test pasted text is passed through without sections."""
        content = asyncio.run(DocumentNormalizer().normalize(InputType.TEXT, study_text))
        assert content.text == study_text.strip()
        assert content.sections is None

    def test_url_dispatch(self) -> None:
        """Test URL payloads go to the URL adapter."""
        html = html_page(f"<div><p>{PARAGRAPH * 5}</p></div>")
        normalizer = DocumentNormalizer(url_scraper=mock_scraper(html=html))
        content = asyncio.run(normalizer.normalize(InputType.URL, "https://journal.example/a/1"))
        assert "blinded to allocation" in content.text

    def test_short_extraction_rejected(self) -> None:
        """Test thin pages are rejected after extraction."""
        normalizer = DocumentNormalizer(url_scraper=mock_scraper(html=html_page("<p>Hi</p>")))
        with pytest.raises(InsufficientContentError):
            asyncio.run(normalizer.normalize(InputType.URL, "https://journal.example/a/1"))

    def test_pdf_file_name_forwarded(self) -> None:
        """Test the PDF adapter receives the upload's file name."""
        data = make_pdf("\n".join(["results were consistent across sites"] * 8))
        content = asyncio.run(
            DocumentNormalizer().normalize(InputType.PDF, data, file_name="walking_trial.pdf")
        )
        assert content.metadata.title == "walking trial"

    def test_text_markup_stripped(self, study_text: str) -> None:
        """Test pasted HTML is reduced to its text before analysis."""
        pasted = f"<div><script>alert(1)</script><p>{study_text}</p></div>"
        content = asyncio.run(DocumentNormalizer().normalize(InputType.TEXT, pasted))
        assert content.text == study_text.strip()


class TestTextInput:
    """Tests for the pasted-text adapter."""

    def test_plain_text_untouched(self) -> None:
        """Test text without markup, including a bare less-than sign, is kept."""
        text = "Blood pressure fell (p < 0.05) after 12 weeks."
        assert strip_markup(text) == text

    def test_tags_and_entities(self) -> None:
        """Test tags are dropped and entities decoded."""
        assert strip_markup("<b>Results</b>: mean &amp; median") == "Results: mean & median"

    def test_style_removed(self) -> None:
        """Test style bodies do not leak into the text."""
        text = asyncio.run(TextInput().normalize("<style>p {color: red}</style><p>Hello</p>"))
        assert text.text == "Hello"
