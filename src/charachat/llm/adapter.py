"""Single entry point from a requested model name to a fragment stream."""

import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from .base import LLMProvider
from .factory import create_llm_provider
from .models import ChatMessage, StreamingResponse
from .registry import BackendKind, BackendRegistry

logger = logging.getLogger(__name__)

ProviderFactory = Callable[..., LLMProvider]


class ProviderAdapter:
    """Selects a backend by model name and normalizes its reply into fragments.

    Hidden design decisions:
    - Registry lookup (case-insensitive) instead of per-model branches
    - One provider instance per request, closed when its stream ends
    - System prompt placement ahead of the history

    The adapter never retries; callers decide what to do with errors.
    """

    def __init__(
        self,
        registry: BackendRegistry,
        temperature: float = 0.7,
        max_tokens: int | None = 4096,
        provider_factory: ProviderFactory = create_llm_provider,
    ) -> None:
        self._registry = registry
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._provider_factory = provider_factory

    @property
    def registry(self) -> BackendRegistry:
        return self._registry

    def backend_for(self, model: str) -> BackendKind:
        """Get the backend kind that would serve a model."""
        return self._registry.kind_for(model)

    async def stream_reply(
        self,
        model: str,
        system_prompt: str,
        history: list[ChatMessage],
        **kwargs: Any,
    ) -> StreamingResponse:
        """Start a reply for the given history.

        Args:
            model: Requested model identifier (matched case-insensitively)
            system_prompt: Character system prompt
            history: Ordered user/assistant turns, text or content blocks
            **kwargs: Extra provider request parameters

        Returns:
            StreamingResponse of fragments. Iterating it may raise ProviderError.

        Raises:
            ConfigurationError: The selected backend is missing its credential
        """
        route = self._registry.resolve(model)
        provider = self._provider_factory(
            route.kind,
            api_key=route.endpoint.api_key,
            base_url=route.endpoint.base_url,
            model=route.model,
        )

        messages = [ChatMessage(role="system", content=system_prompt), *history]
        logger.info(
            "Routing model=%s to %s (%d messages)", route.model, route.kind.value, len(messages)
        )

        try:
            stream = await provider.chat_completion_stream(
                messages,
                model=route.model,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                **kwargs,
            )
        except BaseException:
            await provider.close()
            raise
        return StreamingResponse(self._owned_stream(provider, stream))

    async def _owned_stream(
        self,
        provider: LLMProvider,
        stream: StreamingResponse,
    ) -> AsyncIterator[str]:
        """Yield non-empty fragments, closing the provider however the stream ends."""
        async with provider:
            try:
                async for fragment in stream:
                    if fragment:
                        yield fragment
            finally:
                await stream.aclose()
