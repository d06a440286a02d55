"""
StudyTrust Analysis Layer

Prompting, retry, parsing and merging of the two provider phases.
"""

from studytrust.analysis.merge import merge_category, merge_phases
from studytrust.analysis.orchestrator import AnalysisOrchestrator
from studytrust.analysis.parser import decode_json_object, materialize_phase, parse_phase_response
from studytrust.analysis.prompts import (
    PHASE_ONE_SYSTEM_PROMPT,
    PHASE_TWO_SYSTEM_PROMPT,
    build_analysis_prompt,
    build_content_block,
)
from studytrust.analysis.retry import call_with_retry, is_retryable

__all__ = [
    "AnalysisOrchestrator",
    "build_analysis_prompt",
    "build_content_block",
    "PHASE_ONE_SYSTEM_PROMPT",
    "PHASE_TWO_SYSTEM_PROMPT",
    "call_with_retry",
    "is_retryable",
    "decode_json_object",
    "materialize_phase",
    "parse_phase_response",
    "merge_category",
    "merge_phases",
]
