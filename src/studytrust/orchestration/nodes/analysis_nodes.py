"""
StudyTrust Analysis Nodes

Node functions for the cache lookup and the two-phase provider analysis.
"""

from __future__ import annotations

import logging

from langchain_core.runnables import RunnableConfig

from studytrust.core.enums import GraphNode
from studytrust.core.schemas import PipelineState
from studytrust.observability.tracer import get_tracer
from studytrust.orchestration.dependencies import get_dependencies
from studytrust.storage.cache import make_cache_key

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


async def check_cache_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Look up a previous analysis of the same raw request.

    Node: CHECK_CACHE
    Input: request
    Output: cache_key, analysis and from_cache on a hit
    """
    deps = get_dependencies(config)
    labels = {"stage": GraphNode.CHECK_CACHE.value}

    with tracer.span("node.check_cache") as span, deps.metrics.stage_latency.time(labels):
        # Raw request content, not extracted text
        cache_key = make_cache_key(state.request.input_type, state.request.content)
        cached = deps.cache.get(cache_key) if deps.cache is not None else None

        type_labels = {"input_type": state.input_type.value}
        if cached is None:
            deps.metrics.cache_misses.inc(labels=type_labels)
            span.set_attribute("hit", False)
            return {"cache_key": cache_key}

        deps.metrics.cache_hits.inc(labels=type_labels)
        span.set_attribute("hit", True)
        logger.info("Reusing cached analysis for %s input", state.input_type.value)
        return {"cache_key": cache_key, "analysis": cached, "from_cache": True}


async def ai_analysis_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Run both provider phases, merge them and cache the merged analysis.

    Node: AI_ANALYSIS
    Input: content, metadata, source_url, cache_key
    Output: analysis
    """
    deps = get_dependencies(config)
    labels = {"stage": GraphNode.AI_ANALYSIS.value}

    with tracer.span("node.ai_analysis") as span, deps.metrics.stage_latency.time(labels):
        span.set_attribute("provider", deps.orchestrator.provider.name)
        analysis = await deps.orchestrator.analyze(
            state.content, state.metadata, state.source_url
        )

        if deps.cache is not None and state.cache_key:
            deps.cache.set(state.cache_key, analysis)

        return {"analysis": analysis}
