"""
StudyTrust Pipeline

Entry point that runs the analysis graph for one request and translates every
failure into an AnalysisFailedError with a user-facing message.
"""

from __future__ import annotations

import logging

from studytrust.analysis.orchestrator import AnalysisOrchestrator
from studytrust.config import Settings, get_settings
from studytrust.core.enums import ErrorKind
from studytrust.core.exceptions import (
    AnalysisFailedError,
    DOIServiceUnavailableError,
    DOITimeoutError,
    ExtractionError,
    FetchError,
    InputError,
    MissingAPIKeyError,
    ProviderAuthError,
    ProviderError,
    ProviderRequestError,
    ProviderResponseError,
    ScoringError,
)
from studytrust.core.schemas import AnalysisRequest, AnalysisResult, MergedAnalysis, PipelineState
from studytrust.ingestion.normalizer import DocumentNormalizer
from studytrust.llm.base import LLMProvider
from studytrust.llm.factory import create_provider
from studytrust.observability.metrics import PipelineMetrics, get_pipeline_metrics
from studytrust.observability.tracer import get_tracer
from studytrust.orchestration.dependencies import PipelineDependencies
from studytrust.orchestration.graph import build_pipeline_graph
from studytrust.storage.cache import AnalysisCache

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

PROVIDER_AUTH_MESSAGE = (
    "AI provider authentication failed. Please check your API key configuration."
)
PROVIDER_UNAVAILABLE_MESSAGE = (
    "AI analysis service is temporarily unavailable. Please try again in a moment."
)
PROVIDER_RESPONSE_MESSAGE = "AI analysis returned invalid data. Please try again."
SCORING_MESSAGE = "AI analysis did not return a usable result. Please try again."
INTERNAL_MESSAGE = "Analysis failed unexpectedly. Please try again."


def _extraction_retryable(error: ExtractionError) -> bool:
    if isinstance(error, (DOITimeoutError, DOIServiceUnavailableError)):
        return True
    if isinstance(error, FetchError):
        return error.status_code is None or error.status_code >= 500
    return False


def translate_error(error: Exception) -> AnalysisFailedError:
    """
    Map an internal error to its user-facing failure.

    Input and extraction messages pass through verbatim; provider, scoring
    and unexpected failures get fixed messages.
    """
    if isinstance(error, AnalysisFailedError):
        return error
    if isinstance(error, InputError):
        return AnalysisFailedError(ErrorKind.INPUT, error.message)
    if isinstance(error, ExtractionError):
        return AnalysisFailedError(
            ErrorKind.EXTRACTION, error.message, retryable=_extraction_retryable(error)
        )
    if isinstance(error, (ProviderAuthError, MissingAPIKeyError)):
        return AnalysisFailedError(ErrorKind.PROVIDER_AUTH, PROVIDER_AUTH_MESSAGE)
    if isinstance(error, (ProviderResponseError, ProviderRequestError)):
        return AnalysisFailedError(
            ErrorKind.PROVIDER_RESPONSE,
            PROVIDER_RESPONSE_MESSAGE,
            retryable=isinstance(error, ProviderResponseError),
        )
    if isinstance(error, ProviderError):
        # Rate limit, timeout and 5xx after retries are exhausted
        return AnalysisFailedError(
            ErrorKind.PROVIDER_UNAVAILABLE, PROVIDER_UNAVAILABLE_MESSAGE, retryable=True
        )
    if isinstance(error, ScoringError):
        return AnalysisFailedError(ErrorKind.SCORING, SCORING_MESSAGE, retryable=True)
    return AnalysisFailedError(ErrorKind.INTERNAL, INTERNAL_MESSAGE, retryable=True)


class StudyAnalysisPipeline:
    """
    Run the study analysis workflow.

    One instance owns the compiled graph and the collaborators shared across
    requests, including the analysis cache. Concurrent `analyze_study` calls
    on the same instance are supported.

    Usage:
        pipeline = create_pipeline()
        result = await pipeline.analyze_study(AnalysisRequest(input_type="doi", content="10.1/x"))
    """

    def __init__(
        self,
        normalizer: DocumentNormalizer,
        orchestrator: AnalysisOrchestrator,
        cache: AnalysisCache[MergedAnalysis] | None = None,
        settings: Settings | None = None,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        """Initialize pipeline.

        Args:
            normalizer: Document normalizer with its adapters
            orchestrator: Two-phase provider analysis
            cache: Analysis cache (None disables caching)
            settings: Settings (defaults to global)
            metrics: Metrics facade (defaults to global registry)
        """
        self.settings = settings or get_settings()
        self.metrics = metrics or get_pipeline_metrics()
        self.cache = cache
        self.dependencies = PipelineDependencies(
            normalizer=normalizer,
            orchestrator=orchestrator,
            cache=cache,
            settings=self.settings,
            metrics=self.metrics,
        )
        self.graph = build_pipeline_graph()

    async def analyze_study(self, request: AnalysisRequest) -> AnalysisResult:
        """Analyze one study.

        Args:
            request: Input type and raw content

        Returns:
            Complete AnalysisResult

        Raises:
            AnalysisFailedError: For every failure, chained to its cause.
        """
        input_label = {"input_type": request.input_type}
        self.metrics.analyses_total.inc(labels=input_label)
        self.metrics.analyses_in_flight.inc()

        with tracer.span("pipeline.analyze_study") as span:
            span.set_attribute("input_type", request.input_type)
            try:
                final = await self.graph.ainvoke(
                    PipelineState(request=request),
                    config={"configurable": {"dependencies": self.dependencies}},
                )

                # LangGraph returns a dict, convert to PipelineState
                if isinstance(final, dict):
                    final = PipelineState.model_validate(final)

                if final.result is None:
                    raise ScoringError("Pipeline finished without a result")

                span.set_attribute("overall", final.result.trust_score.overall)
                span.set_attribute("from_cache", final.result.from_cache)
                return final.result

            except Exception as e:
                failure = translate_error(e)
                self.metrics.analyses_failed.inc(labels={"kind": failure.kind.value})
                span.set_attribute("error_kind", failure.kind.value)

                if failure.kind == ErrorKind.INTERNAL:
                    logger.exception("Unexpected failure analyzing %s input", request.input_type)
                else:
                    logger.warning(
                        "Analysis of %s input failed (%s): %s",
                        request.input_type,
                        failure.kind.value,
                        e,
                    )

                if failure is e:
                    raise
                raise failure from e

            finally:
                self.metrics.analyses_in_flight.dec()


def create_pipeline(
    settings: Settings | None = None,
    *,
    provider: LLMProvider | None = None,
    cache: AnalysisCache[MergedAnalysis] | None = None,
) -> StudyAnalysisPipeline:
    """Build a pipeline with its adapters, provider and cache.

    Args:
        settings: Settings (defaults to global)
        provider: Analysis provider (defaults to one built from settings)
        cache: Analysis cache (defaults to a fresh cache with the configured TTL)

    Raises:
        MissingAPIKeyError: If no provider is given and no API key is configured.
    """
    settings = settings or get_settings()
    metrics = get_pipeline_metrics()
    provider = provider or create_provider(settings)
    cache = cache if cache is not None else AnalysisCache(ttl_seconds=settings.cache.ttl_seconds)

    return StudyAnalysisPipeline(
        normalizer=DocumentNormalizer.from_settings(settings),
        orchestrator=AnalysisOrchestrator(provider, settings=settings, metrics=metrics),
        cache=cache,
        settings=settings,
        metrics=metrics,
    )


async def analyze_study(
    request: AnalysisRequest, *, pipeline: StudyAnalysisPipeline | None = None
) -> AnalysisResult:
    """
    Analyze one study.

    Without a pipeline a fresh one is built for this call, so nothing is
    cached across calls; pass a long-lived pipeline to share its cache.

    Raises:
        AnalysisFailedError: For every failure, chained to its cause.
    """
    if pipeline is None:
        try:
            pipeline = create_pipeline()
        except MissingAPIKeyError as e:
            logger.error("No analysis provider configured: %s", e)
            raise translate_error(e) from e
    return await pipeline.analyze_study(request)
