"""StudyTrust Pipeline Nodes Package."""

from studytrust.orchestration.nodes.analysis_nodes import ai_analysis_node, check_cache_node
from studytrust.orchestration.nodes.ingestion_nodes import normalize_node, validate_input_node
from studytrust.orchestration.nodes.metadata_nodes import (
    extract_metadata_node,
    verify_citations_node,
)
from studytrust.orchestration.nodes.scoring_nodes import assemble_node, score_node

__all__ = [
    "validate_input_node",
    "normalize_node",
    "extract_metadata_node",
    "verify_citations_node",
    "check_cache_node",
    "ai_analysis_node",
    "score_node",
    "assemble_node",
]
