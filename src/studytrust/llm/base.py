"""
LLM Provider Base

Abstract base class and protocol for analysis providers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class Message:
    """Chat message."""

    role: str  # system, user, assistant
    content: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dict for API calls."""
        return {"role": self.role, "content": self.content}


@dataclass
class LLMResponse:
    """Response from the provider."""

    content: str
    model: str
    provider: str
    usage: dict[str, int] = field(default_factory=dict)
    finish_reason: str | None = None

    @property
    def input_tokens(self) -> int:
        return self.usage.get("input_tokens", 0)

    @property
    def output_tokens(self) -> int:
        return self.usage.get("output_tokens", 0)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for analysis providers."""

    @property
    def name(self) -> str: ...

    @property
    def model(self) -> str: ...

    async def acomplete(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> LLMResponse: ...

    async def acomplete_json(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> LLMResponse: ...


class BaseLLMProvider(ABC):
    """
    Abstract base class for providers.

    Subclasses implement `acomplete` and translate their SDK errors into
    ProviderError subclasses with the `retryable` flag set correctly.
    """

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = 240.0,
    ) -> None:
        """
        Initialize provider.

        Args:
            model: Model identifier.
            api_key: API key.
            base_url: Custom API endpoint.
            timeout: Request timeout in seconds.
        """
        self._model = model
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'openai')."""
        ...

    @property
    def model(self) -> str:
        return self._model

    @abstractmethod
    async def acomplete(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Async completion.

        Args:
            messages: List of chat messages.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens to generate.
            **kwargs: Provider-specific arguments.

        Returns:
            LLMResponse with generated content.
        """
        ...

    async def acomplete_json(
        self,
        messages: list[Message],
        temperature: float = 0.0,
        max_tokens: int | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Async completion with JSON mode."""
        return await self.acomplete(
            messages,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
            **kwargs,
        )


def build_messages(system: str | None = None, user: str | None = None) -> list[Message]:
    """
    Build a message list.

    Args:
        system: System prompt.
        user: User message.

    Returns:
        List of Message objects.
    """
    messages: list[Message] = []
    if system:
        messages.append(Message(role="system", content=system))
    if user:
        messages.append(Message(role="user", content=user))
    return messages
