from collections.abc import AsyncIterator
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class StreamingResponse:
    """Wrapper for streaming LLM responses that captures usage info.

    Acts as an async iterator for text fragments while storing token usage
    that becomes available at the end of the stream.

    Usage:
        stream = await provider.chat_completion_stream(messages)
        async for fragment in stream:
            print(fragment, end="")
        # After iteration, usage is available when the backend reported it
        print(stream.usage)
    """

    def __init__(self, async_iter: AsyncIterator[str]):
        """Initialize with an async iterator of text fragments.

        Args:
            async_iter: Async iterator yielding text fragments
        """
        self._iter = async_iter
        self._usage: dict[str, Any] | None = None

    @property
    def usage(self) -> dict[str, Any] | None:
        """Get token usage info (available after iteration completes)."""
        return self._usage

    def set_usage(self, usage: dict[str, Any]) -> None:
        """Set token usage info (called by provider at end of stream)."""
        self._usage = usage

    def __aiter__(self) -> "StreamingResponse":
        """Return self as async iterator."""
        return self

    async def __anext__(self) -> str:
        """Get next fragment from the underlying iterator."""
        return await self._iter.__anext__()

    async def aclose(self) -> None:
        """Close the underlying generator, releasing its resources."""
        close = getattr(self._iter, "aclose", None)
        if close is not None:
            await close()


class TextBlock(BaseModel):
    """Text part of a multimodal message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ImageBlock(BaseModel):
    """Image part of a multimodal message, as an absolute URL or data URI."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image"] = "image"
    uri: str


ContentBlock = Annotated[TextBlock | ImageBlock, Field(discriminator="type")]


class ChatMessage(BaseModel):
    """Represents a chat message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'user', 'assistant', or 'system'")
    content: str | list[ContentBlock] = Field(
        description="Plain text, or content blocks when the message carries images"
    )

    @property
    def text(self) -> str:
        """Concatenated text of the message, ignoring image blocks."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(block.text for block in self.content if isinstance(block, TextBlock))

    @property
    def has_images(self) -> bool:
        return not isinstance(self.content, str) and any(
            isinstance(block, ImageBlock) for block in self.content
        )
