"""
LLM Factory

Creates the configured analysis provider.
"""

import logging
from typing import Literal

from studytrust.config import Settings, get_settings
from studytrust.core.exceptions import ConfigurationError, MissingAPIKeyError
from studytrust.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)

ProviderType = Literal["openai"]


def create_provider(
    settings: Settings | None = None,
    provider: ProviderType = "openai",
    model: str | None = None,
) -> BaseLLMProvider:
    """
    Create a provider instance.

    Args:
        settings: Settings to read credentials from (defaults to global).
        provider: Provider name.
        model: Model override.

    Returns:
        Configured provider.

    Raises:
        MissingAPIKeyError: If the provider's API key is not configured.
        ConfigurationError: If the provider is unknown.
    """
    llm = (settings or get_settings()).llm

    if provider == "openai":
        from studytrust.llm.openai_provider import OpenAIProvider

        if not llm.openai_api_key:
            raise MissingAPIKeyError("OPENAI_API_KEY")

        logger.info("Using OpenAI provider with model %s", model or llm.openai_model)
        return OpenAIProvider(
            model=model or llm.openai_model,
            api_key=llm.openai_api_key,
            base_url=llm.openai_base_url,
            timeout=llm.openai_timeout,
        )

    raise ConfigurationError(f"Unknown provider: {provider}", {"provider": provider})
