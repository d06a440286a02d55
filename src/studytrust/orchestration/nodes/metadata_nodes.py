"""
StudyTrust Metadata Nodes

Node functions for metadata extraction and citation verification.
"""

from __future__ import annotations

from datetime import datetime, timezone

from langchain_core.runnables import RunnableConfig

from studytrust.core.enums import GraphNode
from studytrust.core.schemas import PipelineState
from studytrust.metadata.extractor import extract_metadata
from studytrust.metadata.validator import validate_metadata
from studytrust.observability.tracer import get_tracer
from studytrust.orchestration.dependencies import get_dependencies
from studytrust.verification.citations import (
    analyze_citation_quality,
    extract_citations,
    verify_citations,
)

tracer = get_tracer(__name__)


async def extract_metadata_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Extract metadata heuristically and cross-check it against the text.

    Node: EXTRACT_METADATA
    Input: content
    Output: metadata
    """
    deps = get_dependencies(config)
    labels = {"stage": GraphNode.EXTRACT_METADATA.value}

    with tracer.span("node.extract_metadata") as span, deps.metrics.stage_latency.time(labels):
        extracted = extract_metadata(state.content)
        metadata = validate_metadata(
            extracted, state.content.text, today=datetime.now(timezone.utc).date()
        )
        span.set_attribute("has_title", metadata.title is not None)
        span.set_attribute("author_count", len(metadata.authors))
        span.set_attribute("unverified_fields", ",".join(metadata.unverified_fields))
        return {"metadata": metadata}


async def verify_citations_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Verify in-text citations against the references section.

    Node: VERIFY_CITATIONS
    Input: content, metadata
    Output: citation_verification, metadata (with citation_quality)
    """
    deps = get_dependencies(config)
    labels = {"stage": GraphNode.VERIFY_CITATIONS.value}

    with tracer.span("node.verify_citations") as span, deps.metrics.stage_latency.time(labels):
        citations = extract_citations(state.content, state.metadata)
        verification = verify_citations(citations, state.content, state.metadata)
        quality = analyze_citation_quality(verification, state.content)

        span.set_attribute("total_citations", verification.total_citations)
        span.set_attribute("verified_count", verification.verified_count)
        span.set_attribute("quality", quality.quality.value)

        return {
            "citation_verification": verification,
            "metadata": state.metadata.model_copy(update={"citation_quality": quality}),
        }
