"""
StudyTrust Orchestration Graph

LangGraph workflow for one study analysis:

    validate_input -> normalize -> extract_metadata -> verify_citations
        -> check_cache -> (hit: score | miss: ai_analysis -> score) -> assemble

Node functions live in the `nodes/` package; collaborators travel in
`config["configurable"]["dependencies"]`.
"""

from __future__ import annotations

from typing import Literal

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph

from studytrust.core.enums import GraphNode
from studytrust.core.schemas import PipelineState
from studytrust.orchestration.nodes import (
    ai_analysis_node,
    assemble_node,
    check_cache_node,
    extract_metadata_node,
    normalize_node,
    score_node,
    validate_input_node,
    verify_citations_node,
)


# =============================================================================
# CONDITIONAL EDGES
# =============================================================================


def route_after_cache(state: PipelineState) -> Literal["ai_analysis", "score"]:
    """Skip the provider when the cache already holds the analysis."""
    if state.from_cache and state.analysis is not None:
        return GraphNode.SCORE.value
    return GraphNode.AI_ANALYSIS.value


# =============================================================================
# GRAPH BUILDER
# =============================================================================


def build_pipeline_graph() -> CompiledStateGraph:
    """Build the analysis workflow graph.

    Returns:
        Compiled LangGraph StateGraph
    """
    graph = StateGraph(PipelineState)

    graph.add_node(GraphNode.VALIDATE_INPUT.value, validate_input_node)
    graph.add_node(GraphNode.NORMALIZE.value, normalize_node)
    graph.add_node(GraphNode.EXTRACT_METADATA.value, extract_metadata_node)
    graph.add_node(GraphNode.VERIFY_CITATIONS.value, verify_citations_node)
    graph.add_node(GraphNode.CHECK_CACHE.value, check_cache_node)
    graph.add_node(GraphNode.AI_ANALYSIS.value, ai_analysis_node)
    graph.add_node(GraphNode.SCORE.value, score_node)
    graph.add_node(GraphNode.ASSEMBLE.value, assemble_node)

    graph.add_edge(START, GraphNode.VALIDATE_INPUT.value)
    graph.add_edge(GraphNode.VALIDATE_INPUT.value, GraphNode.NORMALIZE.value)
    graph.add_edge(GraphNode.NORMALIZE.value, GraphNode.EXTRACT_METADATA.value)
    graph.add_edge(GraphNode.EXTRACT_METADATA.value, GraphNode.VERIFY_CITATIONS.value)
    graph.add_edge(GraphNode.VERIFY_CITATIONS.value, GraphNode.CHECK_CACHE.value)

    graph.add_conditional_edges(
        GraphNode.CHECK_CACHE.value,
        route_after_cache,
        {
            GraphNode.AI_ANALYSIS.value: GraphNode.AI_ANALYSIS.value,
            GraphNode.SCORE.value: GraphNode.SCORE.value,
        },
    )

    graph.add_edge(GraphNode.AI_ANALYSIS.value, GraphNode.SCORE.value)
    graph.add_edge(GraphNode.SCORE.value, GraphNode.ASSEMBLE.value)
    graph.add_edge(GraphNode.ASSEMBLE.value, END)

    return graph.compile()
