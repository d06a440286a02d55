"""
Unit Tests for the HTTP API

Tests the FastAPI routes with an in-memory provider behind TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from studytrust import __version__
from studytrust.api.routes import ERROR_STATUS, create_app
from studytrust.core.enums import ErrorKind
from studytrust.core.exceptions import ProviderAuthError
from studytrust.orchestration.pipeline import PROVIDER_AUTH_MESSAGE, create_pipeline
from studytrust.storage.cache import AnalysisCache


@pytest.fixture
def cache(clock) -> AnalysisCache:
    return AnalysisCache(ttl_seconds=60, clock=clock)


@pytest.fixture
def client(settings, fake_provider, cache) -> TestClient:
    pipeline = create_pipeline(settings, provider=fake_provider, cache=cache)
    return TestClient(create_app(pipeline))


class TestHealth:
    """Tests for service endpoints."""

    def test_health(self, client: TestClient) -> None:
        """Test the health payload."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "version": __version__,
            "service": "studytrust",
        }

    def test_openapi_lists_routes(self, client: TestClient) -> None:
        """Test every route is published."""
        paths = client.get("/openapi.json").json()["paths"]
        assert {"/analyze", "/health", "/metrics", "/cache", "/cache/stats", "/cache/sweep"} <= set(
            paths
        )


class TestAnalyzeEndpoint:
    """Tests for POST /analyze."""

    def test_success(self, client: TestClient, study_text: str) -> None:
        """Test a text analysis round trip."""
        response = client.post("/analyze", json={"input_type": "text", "content": study_text})
        assert response.status_code == 200

        body = response.json()
        assert body["trust_score"]["overall"] == 72
        assert body["trust_score"]["rating"] == "Moderately Reliable"
        assert body["simple_summary"] == "Walking lowered blood pressure."
        assert body["from_cache"] is False

    def test_input_error(self, client: TestClient) -> None:
        """Test input errors return 400 with the error body."""
        response = client.post("/analyze", json={"input_type": "doi", "content": ""})
        assert response.status_code == 400
        assert response.json() == {
            "error": "input",
            "message": "DOI is required",
            "retryable": False,
        }

    def test_unknown_input_type(self, client: TestClient) -> None:
        """Test an unsupported input type is an input error, not a schema error."""
        response = client.post("/analyze", json={"input_type": "video", "content": "x"})
        assert response.status_code == 400
        assert response.json()["error"] == "input"

    def test_missing_field(self, client: TestClient) -> None:
        """Test a malformed body is rejected by request validation."""
        response = client.post("/analyze", json={"input_type": "text"})
        assert response.status_code == 422

    def test_provider_auth_error(
        self, settings, make_provider, cache, study_text: str
    ) -> None:
        """Test provider failures map to their status and fixed message."""
        provider = make_provider(errors=[ProviderAuthError("fake")])
        client = TestClient(
            create_app(create_pipeline(settings, provider=provider, cache=cache))
        )
        response = client.post("/analyze", json={"input_type": "text", "content": study_text})

        assert response.status_code == ERROR_STATUS[ErrorKind.PROVIDER_AUTH]
        assert response.json()["message"] == PROVIDER_AUTH_MESSAGE

    def test_missing_api_key(self, monkeypatch, study_text: str) -> None:
        """Test an app without a provider configured reports an auth failure."""
        monkeypatch.setenv("OPENAI_API_KEY", "")
        client = TestClient(create_app())
        response = client.post("/analyze", json={"input_type": "text", "content": study_text})

        assert response.status_code == 502
        assert response.json()["error"] == "provider_auth"


class TestCacheEndpoints:
    """Tests for cache administration."""

    def _analyze(self, client: TestClient, study_text: str) -> None:
        client.post("/analyze", json={"input_type": "text", "content": study_text})

    def test_stats(self, client: TestClient, study_text: str) -> None:
        """Test stats reflect a miss then a hit."""
        self._analyze(client, study_text)
        self._analyze(client, study_text)

        stats = client.get("/cache/stats").json()
        assert stats["enabled"] is True
        assert stats["size"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    def test_clear(self, client: TestClient, study_text: str) -> None:
        """Test clearing reports how many entries were dropped."""
        self._analyze(client, study_text)
        response = client.delete("/cache")
        assert response.json() == {"removed": 1}
        assert client.get("/cache/stats").json()["size"] == 0

    def test_sweep(self, client: TestClient, clock, study_text: str) -> None:
        """Test the sweep drops only expired entries."""
        self._analyze(client, study_text)
        assert client.post("/cache/sweep").json() == {"removed": 0}
        clock.advance(61)
        assert client.post("/cache/sweep").json() == {"removed": 1}


class TestMetricsEndpoint:
    """Tests for GET /metrics."""

    def test_counts_exposed(self, client: TestClient, study_text: str) -> None:
        """Test pipeline counters appear after a request."""
        client.post("/analyze", json={"input_type": "text", "content": study_text})
        metrics = client.get("/metrics").json()

        assert metrics["studytrust_analyses_total"] == {"input_type=text": 1.0}
        assert metrics["studytrust_provider_requests_total"]["phase=phase1"] == 1.0
