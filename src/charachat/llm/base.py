from abc import ABC, abstractmethod
from typing import Any

from .models import ChatMessage, StreamingResponse


class LLMProvider(ABC):
    """Abstract base class for chat-completion backends.

    This module hides the design decision of which backend protocol is used.
    Implementations must handle backend-specific details like:
    - API client setup and authentication
    - Request/response format conversion (content blocks, flattened prompts)
    - Mapping backend failures onto ProviderError

    Every implementation presents the same streaming contract, even when the
    backend itself only answers with a single completion.

    Providers are single-use per request and own their HTTP clients:
        async with provider:
            async for fragment in await provider.chat_completion_stream(messages):
                ...
    """

    @abstractmethod
    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        """Generate a streaming chat completion.

        Args:
            messages: Conversation history, system message first
            model: Model to use (None uses provider's default)
            temperature: Sampling temperature (0.0 to 2.0)
            max_tokens: Maximum tokens to generate
            **kwargs: Provider-specific parameters

        Returns:
            StreamingResponse that yields text fragments.

        Raises:
            ProviderError: The backend rejected the request (raised on iteration)
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the backend client."""
        pass

    async def __aenter__(self) -> "LLMProvider":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close the provider, ignoring a loop that shut down first.

        See https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
