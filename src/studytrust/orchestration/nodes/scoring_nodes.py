"""
StudyTrust Scoring Nodes

Node functions for trust scoring and final result assembly.
"""

from __future__ import annotations

from langchain_core.runnables import RunnableConfig

from studytrust.core.enums import GraphNode
from studytrust.core.schemas import AnalysisResult, PipelineState
from studytrust.observability.tracer import get_tracer
from studytrust.orchestration.dependencies import get_dependencies
from studytrust.scoring.trust_score import apply_citation_penalty, calculate_trust_score

tracer = get_tracer(__name__)

DEFAULT_SUMMARY = "Analysis completed, but summary could not be generated."
DEFAULT_CRITIQUE = "Analysis completed, but technical critique could not be generated."
DEFAULT_BIAS_REPORT = "Analysis completed, but bias report could not be generated."


async def score_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Compute the trust score from the merged analysis.

    Node: SCORE
    Input: analysis, metadata
    Output: trust_score
    """
    deps = get_dependencies(config)
    labels = {"stage": GraphNode.SCORE.value}

    with tracer.span("node.score") as span, deps.metrics.stage_latency.time(labels):
        analysis = state.analysis
        breakdown = apply_citation_penalty(analysis.breakdown, state.metadata.citation_quality)
        trust_score = calculate_trust_score(
            breakdown, analysis.flaw_detection, analysis.evidence_hierarchy
        )
        span.set_attribute("overall", trust_score.overall)
        span.set_attribute("rating", trust_score.rating.value)
        span.set_attribute("adjustment", trust_score.adjustment)
        return {"trust_score": trust_score}


async def assemble_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Build the AnalysisResult, filling missing narratives with defaults.

    Node: ASSEMBLE
    Input: metadata, trust_score, analysis, citation_verification, from_cache
    Output: result
    """
    deps = get_dependencies(config)
    labels = {"stage": GraphNode.ASSEMBLE.value}

    with tracer.span("node.assemble") as span, deps.metrics.stage_latency.time(labels):
        analysis = state.analysis
        result = AnalysisResult(
            metadata=state.metadata,
            trust_score=state.trust_score,
            evidence_hierarchy=analysis.evidence_hierarchy,
            flaw_detection=analysis.flaw_detection,
            expert_context=analysis.expert_context,
            causal_inference=analysis.causal_inference,
            simple_summary=analysis.simple_summary or DEFAULT_SUMMARY,
            technical_critique=analysis.technical_critique or DEFAULT_CRITIQUE,
            bias_report=analysis.bias_report or DEFAULT_BIAS_REPORT,
            recommendations=analysis.recommendations,
            key_takeaways=analysis.key_takeaways,
            study_limitations=analysis.study_limitations,
            replication_info=analysis.replication_info,
            citation_verification=state.citation_verification,
            from_cache=state.from_cache,
        )
        span.set_attribute("from_cache", state.from_cache)
        return {"result": result}
