import logging
from collections.abc import AsyncIterator
from typing import Any

import openai
from openai import AsyncOpenAI

from ...errors import ProviderError
from ..base import LLMProvider
from ..models import ChatMessage, ImageBlock, StreamingResponse, TextBlock

logger = logging.getLogger(__name__)


def to_openai_messages(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Convert chat messages to the Chat Completions wire format.

    Plain-text messages keep a string content; messages with content blocks
    become a list of ``text`` / ``image_url`` parts.
    """
    converted: list[dict[str, Any]] = []

    for msg in messages:
        if isinstance(msg.content, str):
            converted.append({"role": msg.role, "content": msg.content})
            continue

        parts: list[dict[str, Any]] = []
        for block in msg.content:
            if isinstance(block, TextBlock):
                parts.append({"type": "text", "text": block.text})
            elif isinstance(block, ImageBlock):
                parts.append({"type": "image_url", "image_url": {"url": block.uri}})
        converted.append({"role": msg.role, "content": parts})

    return converted


class OpenAICompatibleProvider(LLMProvider):
    """Streaming provider for any OpenAI-compatible Chat Completions endpoint.

    Hidden design decisions:
    - OpenAI SDK client initialization against a custom base URL
    - Content block conversion to ``image_url`` parts
    - Translation of SDK errors into ProviderError
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str | None = None,
        **client_kwargs: Any
    ):
        """Initialize the provider.

        Args:
            api_key: Backend API key
            model: Default model to use
            base_url: Optional custom API base URL
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        self._model = model
        self._base_url = base_url
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            **client_kwargs
        )
        self._current_stream_response: StreamingResponse | None = None

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

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
            messages: Conversation history
            model: Model to use (overrides default)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            **kwargs: Additional request parameters

        Returns:
            StreamingResponse that yields text fragments
        """
        model_to_use = model or self._model
        response = StreamingResponse(self._chat_stream_generator(
            model_to_use, to_openai_messages(messages), temperature, max_tokens, **kwargs
        ))
        self._current_stream_response = response
        return response

    async def _chat_stream_generator(
        self,
        model: str,
        messages: list[dict[str, Any]],
        temperature: float,
        max_tokens: int | None,
        **kwargs: Any,
    ) -> AsyncIterator[str]:
        """Internal generator for Chat Completions streaming with usage capture."""
        request_params: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "stream": True,
            **kwargs,
        }
        if max_tokens is not None:
            request_params["max_tokens"] = max_tokens

        logger.info("Chat request: model=%s messages=%d base_url=%s", model, len(messages), self._base_url)

        try:
            stream = await self._client.chat.completions.create(**request_params)

            async for chunk in stream:
                usage = getattr(chunk, "usage", None)
                if usage is not None and self._current_stream_response is not None:
                    self._current_stream_response.set_usage({
                        "prompt_tokens": usage.prompt_tokens,
                        "completion_tokens": usage.completion_tokens,
                        "total_tokens": usage.total_tokens,
                    })
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except openai.APIStatusError as e:
            raise ProviderError(
                f"Backend rejected request for model '{model}'",
                status=e.status_code,
                body=e.response.text,
            ) from e
        except openai.APIConnectionError as e:
            raise ProviderError(
                f"Could not reach backend for model '{model}': {e}",
                status=None,
                body=str(e),
            ) from e

    async def close(self) -> None:
        """Close the OpenAI client.

        Note: Uses the OpenAI SDK's async context manager for proper cleanup.
        See: https://github.com/openai/openai-python#async-usage
        """
        await self._client.close()
