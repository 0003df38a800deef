"""Base class for model providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any

from ...errors import ModelCallError
from ...types.types import Message
from ..events import StreamDone, StreamError, StreamEvent, TextDelta

if TYPE_CHECKING:
    from ...core.cancellation import CancellationToken

# Provider registry - providers register themselves here
_PROVIDER_REGISTRY: dict[str, type[ModelProvider]] = {}


def register_provider(name: str):
    """
    Decorator to register a model provider class.

    Usage:
        @register_provider("scripted")
        class ScriptedProvider(ModelProvider):
            ...

    Args:
        name: Provider name

    Returns:
        Decorator function
    """

    def decorator(cls: type[ModelProvider]) -> type[ModelProvider]:
        _PROVIDER_REGISTRY[name.lower()] = cls
        return cls

    return decorator


class ModelProvider(ABC):
    """
    Base class for model providers.

    A provider turns the conversation into an ordered stream of typed events.
    Wire formats are the provider's concern; the loop only sees events.
    """

    model: str | None = None

    async def validate(self) -> None:
        """Check the provider is usable before the loop starts.

        Raises:
            ConfigurationError: If credentials or other required settings are missing
        """
        return None

    @abstractmethod
    def stream(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
        system_prompt: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Stream a model response.

        Args:
            messages: Conversation messages, without the system message
            tools: Function-calling schemas for the available tools
            system_prompt: System prompt, passed separately from messages
            cancel_token: Token the provider may check to stop producing events

        Yields:
            StreamEvent instances: text/reasoning deltas, tool-call start/delta/end
            or complete tool_call events, error, and a final done(usage)
        """

    async def complete(
        self,
        messages: list[Message],
        system_prompt: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> str:
        """
        Run a tool-less request and return the response text.

        Raises:
            ModelCallError: If the stream reports an error
        """
        parts: list[str] = []
        async for event in self.stream(messages, None, system_prompt, cancel_token):
            if isinstance(event, TextDelta):
                parts.append(event.content)
            elif isinstance(event, StreamError):
                raise ModelCallError(event.message, status_code=event.status_code)
            elif isinstance(event, StreamDone):
                break
        return "".join(parts)


def get_provider(provider_name: str, **kwargs) -> ModelProvider:
    """
    Get a model provider instance by name from the registry.

    Args:
        provider_name: Name the provider was registered under
        **kwargs: Provider-specific initialization parameters

    Returns:
        ModelProvider instance

    Raises:
        ValueError: If no provider is registered under that name
    """
    provider_class = _PROVIDER_REGISTRY.get(provider_name.lower())
    if provider_class is None:
        available = ", ".join(sorted(_PROVIDER_REGISTRY)) or "none"
        raise ValueError(
            f"Unknown model provider: {provider_name}. Registered providers: {available}."
        )
    return provider_class(**kwargs)
