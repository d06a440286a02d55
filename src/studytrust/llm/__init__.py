"""
StudyTrust LLM Abstraction Layer

Provider interface used by the analysis orchestrator.
"""

from studytrust.llm.base import BaseLLMProvider, LLMProvider, LLMResponse, Message, build_messages
from studytrust.llm.factory import create_provider
from studytrust.llm.openai_provider import OpenAIProvider, translate_openai_error

__all__ = [
    # Base
    "BaseLLMProvider",
    "LLMProvider",
    "LLMResponse",
    "Message",
    "build_messages",
    # Providers
    "OpenAIProvider",
    "translate_openai_error",
    "create_provider",
]
