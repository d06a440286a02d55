"""
AI Analysis Orchestrator

Issues the two analysis phases concurrently against the provider, parses
each response and merges them.

Failure semantics:
- If either phase fails, the sibling is cancelled and the error propagates.
- Cancelling the caller cancels both phases.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from tenacity import RetryCallState

from studytrust.analysis.merge import merge_phases
from studytrust.analysis.parser import parse_phase_response
from studytrust.analysis.prompts import (
    PHASE_SYSTEM_PROMPTS,
    build_analysis_prompt,
    build_phase_prompt,
)
from studytrust.analysis.retry import call_with_retry
from studytrust.config import Settings, get_settings
from studytrust.core.enums import AnalysisPhase
from studytrust.core.schemas import (
    ExtractedContent,
    MergedAnalysis,
    PartialAnalysisResult,
    StudyMetadata,
)
from studytrust.llm.base import LLMProvider, LLMResponse, build_messages
from studytrust.observability.metrics import PipelineMetrics, get_pipeline_metrics
from studytrust.observability.tracer import SpanKind, get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


class AnalysisOrchestrator:
    """
    Two-phase provider analysis.

    Usage:
        orchestrator = AnalysisOrchestrator(provider)
        merged = await orchestrator.analyze(content, metadata)
    """

    def __init__(
        self,
        provider: LLMProvider,
        settings: Settings | None = None,
        metrics: PipelineMetrics | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            provider: Analysis provider.
            settings: Settings (defaults to global).
            metrics: Metrics facade (defaults to global registry).
            sleep: Backoff sleep, replaceable in tests.
        """
        self._provider = provider
        self._settings = settings or get_settings()
        self._metrics = metrics or get_pipeline_metrics()
        self._sleep = sleep

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    async def run_phase(self, phase: AnalysisPhase, study_prompt: str) -> PartialAnalysisResult:
        """Run one phase with retries and parse its response."""
        llm = self._settings.llm
        messages = build_messages(
            system=PHASE_SYSTEM_PROMPTS[phase],
            user=build_phase_prompt(phase, study_prompt),
        )
        labels = {"phase": phase.value}

        def count_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            self._metrics.provider_retries.inc(
                labels={"phase": phase.value, "error": type(error).__name__}
            )

        async def attempt() -> LLMResponse:
            self._metrics.provider_requests.inc(labels=labels)
            return await self._provider.acomplete_json(
                messages,
                temperature=llm.temperature,
                max_tokens=llm.openai_max_tokens // 2,
            )

        with tracer.span(f"phase.{phase.value}", kind=SpanKind.CLIENT) as span:
            span.set_attribute("provider", self._provider.name)
            span.set_attribute("model", self._provider.model)
            started = time.perf_counter()
            try:
                response = await call_with_retry(
                    attempt, self._settings.retry, sleep=self._sleep, on_retry=count_retry
                )
            finally:
                self._metrics.provider_latency.observe(time.perf_counter() - started, labels)

            span.set_attribute("output_tokens", response.output_tokens)
            span.set_attribute("finish_reason", response.finish_reason)
            return parse_phase_response(response.content, phase, provider=self._provider.name)

    async def analyze(
        self,
        content: ExtractedContent,
        metadata: StudyMetadata,
        source_url: str | None = None,
    ) -> MergedAnalysis:
        """
        Run both phases concurrently and merge them.

        Raises:
            ProviderError: From either phase, after its retries are exhausted.
        """
        study_prompt = build_analysis_prompt(content, metadata, source_url)

        tasks = [
            asyncio.create_task(self.run_phase(AnalysisPhase.PHASE_ONE, study_prompt)),
            asyncio.create_task(self.run_phase(AnalysisPhase.PHASE_TWO, study_prompt)),
        ]
        try:
            phase_one, phase_two = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        logger.info(
            "Analysis phases complete (%s, %s)",
            ", ".join(c.value for c in phase_one.scores) or "no categories",
            ", ".join(c.value for c in phase_two.scores) or "no categories",
        )
        return merge_phases(phase_one, phase_two)
