"""
StudyTrust Test Configuration

Shared fixtures and test utilities.
"""

import json
import os
from typing import Any, Generator

import pytest

# Set test environment before any imports
os.environ.setdefault("STUDYTRUST_DEBUG", "true")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from studytrust.llm.base import LLMResponse, Message  # noqa: E402

STUDY_TEXT = """Title: Daily Walking and Blood Pressure in Older Adults

Authors: Jane Smith, Robert Jones

Journal: Journal of Hypertension Research

Published: 2021-03-15

DOI: 10.1234/jhr.2021.0042

Abstract
We conducted a randomized controlled trial of a supervised walking program in
412 participants aged 65 years or older. Systolic blood pressure fell by 6.1 mmHg
in the walking group (Smith et al., 2019) compared with usual care [1].

Methods
Participants were recruited from three community clinics and randomized with
concealed allocation. Outcome assessors were blinded to group assignment.

Results
The walking group showed a mean reduction of 6.1 mmHg (95% CI 4.2 to 8.0).

Discussion
Walking is a low-cost intervention with meaningful effects on blood pressure.

References
[1] Brown A. Exercise and hypertension. J Hypertens. 2018.
Smith et al., 2019. Walking programs in older adults. Lancet.
"""


def phase_one_payload() -> dict[str, Any]:
    """Provider response covering the phase one categories."""
    return {
        "evidenceHierarchy": {"level": "rct", "position": 2, "qualityWithinLevel": "high"},
        "methodology": {
            "score": 20,
            "maxScore": 25,
            "details": "Well-concealed randomization",
            "issues": ["Single region"],
            "strengths": ["Blinded assessors"],
        },
        "evidenceStrength": {"score": 15, "maxScore": 20},
        "reproducibility": {"score": 10, "maxScore": 15},
        "statisticalValidity": {"score": 16, "maxScore": 20},
        "fallacies": [
            {"type": "Hasty generalization", "description": "Overreach", "severity": "medium"}
        ],
        "simpleSummary": "Walking lowered blood pressure.",
        "technicalCritique": "Adequately powered trial.",
        "keyTakeaways": [{"point": "Walking helps", "importance": "high", "category": "result"}],
        "recommendations": ["Replicate in other regions"],
    }


def phase_two_payload() -> dict[str, Any]:
    """Provider response covering the phase two categories."""
    return {
        "bias": {
            "score": 14,
            "maxScore": 20,
            "details": "No industry funding",
            "issues": ["Volunteer bias"],
            "strengths": ["Independent funding"],
        },
        "confounders": [{"factor": "Diet", "description": "Not controlled"}],
        "expertContext": {"consensus": "Exercise lowers blood pressure", "controversies": []},
        "causalInference": {
            "canEstablishCausality": True,
            "confidence": "medium",
            "reasoning": "Randomized design",
        },
        "biasReport": "Low risk of funding bias.",
        "recommendations": ["Report adherence"],
    }


class FakeProvider:
    """
    In-memory provider that answers each phase with a canned JSON payload.

    Errors queued in `errors` are raised, one per call, before any payload
    is returned.
    """

    def __init__(
        self,
        phase_one: dict[str, Any] | str | None = None,
        phase_two: dict[str, Any] | str | None = None,
        errors: list[Exception] | None = None,
    ) -> None:
        self.phase_one = phase_one if phase_one is not None else {}
        self.phase_two = phase_two if phase_two is not None else {}
        self.errors = list(errors or [])
        self.calls: list[list[Message]] = []

    @property
    def name(self) -> str:
        return "fake"

    @property
    def model(self) -> str:
        return "fake-model"

    async def acomplete(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        self.calls.append(messages)
        if self.errors:
            raise self.errors.pop(0)

        user = messages[-1].content
        payload = self.phase_one if user.startswith("PHASE 1") else self.phase_two
        content = payload if isinstance(payload, str) else json.dumps(payload)
        return LLMResponse(
            content=content,
            model=self.model,
            provider=self.name,
            usage={"input_tokens": 10, "output_tokens": 20},
            finish_reason="stop",
        )

    async def acomplete_json(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        return await self.acomplete(messages, temperature=temperature, max_tokens=max_tokens)


class FakeClock:
    """Manually advanced clock for cache TTL tests."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def no_sleep(seconds: float) -> None:
    """Backoff sleep that returns immediately."""
    return None


@pytest.fixture(autouse=True)
def reset_globals() -> Generator[None, None, None]:
    """Reset settings and metrics before each test."""
    from studytrust.config import reset_settings
    from studytrust.observability.metrics import reset_metrics

    reset_settings()
    reset_metrics()
    yield
    reset_settings()
    reset_metrics()


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch):
    """Settings with a dummy API key and fast retries."""
    from studytrust.config import LLMSettings, RetrySettings, Settings

    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return Settings(
        llm=LLMSettings(OPENAI_API_KEY="test-key"),
        retry=RetrySettings(STUDYTRUST_RETRY_BASE_DELAY=0.0, STUDYTRUST_RETRY_JITTER=0.0),
    )


@pytest.fixture
def study_text() -> str:
    """A small but complete study."""
    return STUDY_TEXT


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Provider returning complementary phase payloads."""
    return FakeProvider(phase_one=phase_one_payload(), phase_two=phase_two_payload())


@pytest.fixture
def make_provider():
    """FakeProvider class, for tests that need custom payloads or errors."""
    return FakeProvider


@pytest.fixture
def clock() -> FakeClock:
    """Manually advanced clock."""
    return FakeClock()


@pytest.fixture
def phase_payloads() -> tuple[dict[str, Any], dict[str, Any]]:
    """Fresh copies of the complementary phase payloads."""
    return phase_one_payload(), phase_two_payload()


@pytest.fixture
def instant_sleep():
    """Backoff sleep that returns immediately."""
    return no_sleep
