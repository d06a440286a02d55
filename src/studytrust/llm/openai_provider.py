"""
OpenAI Provider

Analysis provider for the OpenAI chat completions API (or any compatible
endpoint via `base_url`).
"""

from typing import Any

import openai
from openai import AsyncOpenAI

from studytrust.core.exceptions import (
    ProviderAuthError,
    ProviderError,
    ProviderRateLimitError,
    ProviderRequestError,
    ProviderResponseError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from studytrust.llm.base import BaseLLMProvider, LLMResponse, Message


def _retry_after(error: openai.RateLimitError) -> float | None:
    try:
        return float(error.response.headers.get("Retry-After"))
    except (AttributeError, TypeError, ValueError):
        return None


def translate_openai_error(error: openai.OpenAIError, provider: str = "openai") -> ProviderError:
    """
    Map an OpenAI SDK error to a ProviderError.

    Auth and other 4xx errors are not retryable; rate limits, timeouts,
    connection failures and 5xx responses are.
    """
    if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ProviderAuthError(provider, message=str(error), status_code=error.status_code)
    if isinstance(error, openai.RateLimitError):
        return ProviderRateLimitError(provider, retry_after=_retry_after(error))
    # APITimeoutError is a subclass of APIConnectionError
    if isinstance(error, openai.APITimeoutError):
        return ProviderTimeoutError(provider, message=str(error))
    if isinstance(error, openai.APIConnectionError):
        return ProviderUnavailableError(provider, message=str(error))
    if isinstance(error, openai.APIStatusError):
        if error.status_code >= 500:
            return ProviderUnavailableError(provider, str(error), status_code=error.status_code)
        return ProviderRequestError(provider, str(error), status_code=error.status_code)
    return ProviderResponseError(f"OpenAI error: {error}", provider=provider)


class OpenAIProvider(BaseLLMProvider):
    """
    OpenAI API provider.

    SDK-level retries are disabled; retry policy lives in the analysis layer.
    """

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 240.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        """
        Initialize OpenAI provider.

        Args:
            model: Model name.
            api_key: OpenAI API key.
            base_url: Custom base URL (for compatible endpoints or proxies).
            timeout: Request timeout.
            client: Preconfigured client (tests).
        """
        super().__init__(model, api_key, base_url, timeout)

        if client is None:
            client_kwargs: dict[str, Any] = {"timeout": timeout, "max_retries": 0}
            if api_key:
                client_kwargs["api_key"] = api_key
            if base_url:
                client_kwargs["base_url"] = base_url
            client = AsyncOpenAI(**client_kwargs)
        self._client = client

    @property
    def name(self) -> str:
        return "openai"

    async def acomplete(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Async completion."""
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[m.to_dict() for m in messages],
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs,
            )
        except openai.OpenAIError as e:
            raise translate_openai_error(e, self.name) from e

        if not response.choices:
            raise ProviderResponseError("OpenAI returned no choices", provider=self.name)

        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model,
            provider=self.name,
            usage={
                "input_tokens": response.usage.prompt_tokens if response.usage else 0,
                "output_tokens": response.usage.completion_tokens if response.usage else 0,
            },
            finish_reason=response.choices[0].finish_reason,
        )
