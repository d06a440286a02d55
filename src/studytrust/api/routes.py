"""
StudyTrust API Routes

FastAPI routes for study analysis and cache administration.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from studytrust import __version__
from studytrust.core.enums import ErrorKind
from studytrust.core.exceptions import AnalysisFailedError, MissingAPIKeyError
from studytrust.core.schemas import AnalysisRequest, AnalysisResult
from studytrust.observability.metrics import get_registry
from studytrust.orchestration.pipeline import (
    StudyAnalysisPipeline,
    create_pipeline,
    translate_error,
)

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INPUT: 400,
    ErrorKind.EXTRACTION: 422,
    ErrorKind.PROVIDER_AUTH: 502,
    ErrorKind.PROVIDER_UNAVAILABLE: 503,
    ErrorKind.PROVIDER_RESPONSE: 502,
    ErrorKind.SCORING: 502,
    ErrorKind.INTERNAL: 500,
}


# =============================================================================
# RESPONSE MODELS
# =============================================================================


class ErrorResponse(BaseModel):
    """Body returned for a failed analysis."""

    error: ErrorKind
    message: str
    retryable: bool


class CacheClearResponse(BaseModel):
    """Entries dropped from the cache."""

    removed: int


# =============================================================================
# DEPENDENCIES
# =============================================================================


def get_pipeline(request: Request) -> StudyAnalysisPipeline:
    """Pipeline bound to the app, built on first use."""
    pipeline = request.app.state.pipeline
    if pipeline is None:
        try:
            pipeline = create_pipeline()
        except MissingAPIKeyError as e:
            raise translate_error(e) from e
        request.app.state.pipeline = pipeline
    return pipeline


async def analysis_failed_handler(request: Request, exc: AnalysisFailedError) -> JSONResponse:
    """Render an AnalysisFailedError as its status and error body."""
    body = ErrorResponse(error=exc.kind, message=exc.user_message, retryable=exc.retryable)
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        content=body.model_dump(mode="json"),
    )


# =============================================================================
# ROUTER
# =============================================================================

router = APIRouter(tags=["studytrust"])


@router.post("/analyze", response_model=AnalysisResult)
async def analyze(
    body: AnalysisRequest, pipeline: StudyAnalysisPipeline = Depends(get_pipeline)
) -> AnalysisResult:
    """Analyze one study and return its trust score and critique.

    Args:
        body: Input type and raw content

    Returns:
        Complete analysis result
    """
    return await pipeline.analyze_study(body)


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        Health status and version info
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "studytrust",
    }


@router.get("/metrics")
async def get_metrics() -> dict:
    """Get current metrics.

    Returns:
        Dictionary of metric values
    """
    return get_registry().get_all()


@router.get("/cache/stats")
async def cache_stats(pipeline: StudyAnalysisPipeline = Depends(get_pipeline)) -> dict:
    """Analysis cache statistics."""
    if pipeline.cache is None:
        return {"enabled": False}
    return {"enabled": True, **pipeline.cache.stats}


@router.delete("/cache", response_model=CacheClearResponse)
async def clear_cache(
    pipeline: StudyAnalysisPipeline = Depends(get_pipeline),
) -> CacheClearResponse:
    """Drop every cached analysis."""
    if pipeline.cache is None:
        return CacheClearResponse(removed=0)
    removed = pipeline.cache.size
    pipeline.cache.clear()
    logger.info("Cleared %d cached analyses", removed)
    return CacheClearResponse(removed=removed)


@router.post("/cache/sweep", response_model=CacheClearResponse)
async def sweep_cache(
    pipeline: StudyAnalysisPipeline = Depends(get_pipeline),
) -> CacheClearResponse:
    """Drop expired cached analyses."""
    if pipeline.cache is None:
        return CacheClearResponse(removed=0)
    return CacheClearResponse(removed=pipeline.cache.clear_expired())


# =============================================================================
# APP FACTORY
# =============================================================================


def create_app(pipeline: StudyAnalysisPipeline | None = None):
    """Create FastAPI application.

    Args:
        pipeline: Pipeline to serve (built from settings on first request if None)

    Returns:
        Configured FastAPI app
    """
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware

    app = FastAPI(
        title="StudyTrust API",
        description="Trust scoring and critique of scientific studies",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.pipeline = pipeline
    app.add_exception_handler(AnalysisFailedError, analysis_failed_handler)
    app.include_router(router)

    return app
