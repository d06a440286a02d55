"""
StudyTrust Ingestion Nodes

Node functions for request validation and document normalization.
"""

from __future__ import annotations

from langchain_core.runnables import RunnableConfig

from studytrust.core.enums import GraphNode, InputType
from studytrust.core.schemas import PipelineState
from studytrust.ingestion.validation import validate_request
from studytrust.observability.tracer import get_tracer
from studytrust.orchestration.dependencies import get_dependencies

tracer = get_tracer(__name__)


async def validate_input_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Validate the request and clean its payload.

    Node: VALIDATE_INPUT
    Input: request
    Output: input_type, payload, source_url
    """
    deps = get_dependencies(config)
    labels = {"stage": GraphNode.VALIDATE_INPUT.value}

    with tracer.span("node.validate_input") as span, deps.metrics.stage_latency.time(labels):
        validated = validate_request(state.request, deps.settings.ingestion)
        span.set_attribute("input_type", validated.input_type.value)

        source_url = validated.payload if validated.input_type == InputType.URL else None
        return {
            "input_type": validated.input_type,
            "payload": validated.payload,
            "source_url": source_url,
        }


async def normalize_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Extract text, metadata hints and sections from the payload.

    Node: NORMALIZE
    Input: input_type, payload, request.file_name
    Output: content
    """
    deps = get_dependencies(config)
    labels = {"stage": GraphNode.NORMALIZE.value}

    with tracer.span("node.normalize") as span, deps.metrics.stage_latency.time(labels):
        content = await deps.normalizer.normalize(
            state.input_type, state.payload, file_name=state.request.file_name
        )
        span.set_attribute("text_length", len(content.text))
        return {"content": content}
