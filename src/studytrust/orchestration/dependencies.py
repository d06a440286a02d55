"""
Pipeline Dependencies

Collaborators the graph nodes need, passed through
`config["configurable"]["dependencies"]`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from langchain_core.runnables import RunnableConfig

from studytrust.config import Settings
from studytrust.core.exceptions import ConfigurationError
from studytrust.core.schemas import MergedAnalysis
from studytrust.observability.metrics import PipelineMetrics
from studytrust.storage.cache import AnalysisCache

if TYPE_CHECKING:
    from studytrust.analysis.orchestrator import AnalysisOrchestrator
    from studytrust.ingestion.normalizer import DocumentNormalizer


@dataclass
class PipelineDependencies:
    """Everything a node may reach for besides the state itself."""

    normalizer: "DocumentNormalizer"
    orchestrator: "AnalysisOrchestrator"
    cache: AnalysisCache[MergedAnalysis] | None
    settings: Settings
    metrics: PipelineMetrics


def get_dependencies(config: RunnableConfig) -> PipelineDependencies:
    """Pull the dependencies out of a node's runnable config."""
    configurable = config.get("configurable", {})
    dependencies = configurable.get("dependencies")
    if dependencies is None:
        raise ConfigurationError("Pipeline graph invoked without dependencies")
    return dependencies
