"""
StudyTrust Orchestration Layer

LangGraph workflow and the pipeline entry point.
"""

from studytrust.orchestration.dependencies import PipelineDependencies, get_dependencies
from studytrust.orchestration.graph import build_pipeline_graph, route_after_cache
from studytrust.orchestration.pipeline import (
    StudyAnalysisPipeline,
    analyze_study,
    create_pipeline,
    translate_error,
)

__all__ = [
    "StudyAnalysisPipeline",
    "analyze_study",
    "create_pipeline",
    "translate_error",
    "build_pipeline_graph",
    "route_after_cache",
    "PipelineDependencies",
    "get_dependencies",
]
