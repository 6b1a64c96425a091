"""Conversion of chat history into provider content.

Hidden design decisions:
- Which entries become multimodal (only those carrying image references)
- How local image references are inlined (magic-byte MIME sniffing, base64)
- Degradation when an image cannot be read (keep the reference, log it)
"""

import base64
import logging
from typing import Literal

from pydantic import BaseModel, Field

from ..blobs import BlobStore
from ..errors import BlobNotFoundError
from ..llm.models import ChatMessage, ContentBlock, ImageBlock, TextBlock

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/jpeg"

PASSTHROUGH_PREFIXES = ("data:", "http://", "https://")


class HistoryEntry(BaseModel):
    """One linear history turn as received from the client."""

    role: Literal["user", "assistant"]
    content: str = Field(default="")
    image_refs: list[str] | None = Field(default=None, description="Image references attached to this turn")


def sniff_image_mime(data: bytes) -> str:
    """Detect an image MIME type from its leading bytes.

    The file extension is never consulted. Unknown signatures fall back to JPEG.
    """
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:4] == b"\x89PNG":
        return "image/png"
    if data[:4] == b"GIF8":
        return "image/gif"
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:2] == b"BM":
        return "image/bmp"
    return DEFAULT_IMAGE_MIME


def to_data_uri(data: bytes) -> str:
    """Encode raw image bytes as a ``data:<mime>;base64,`` URI."""
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{sniff_image_mime(data)};base64,{payload}"


class MultimodalFormatter:
    """Turns history entries into ChatMessages for the provider adapter."""

    def __init__(self, blobs: BlobStore) -> None:
        self._blobs = blobs

    async def inline_image(self, ref: str) -> str:
        """Resolve an image reference to something a backend can fetch.

        Absolute URLs and data URIs pass through. Local references are read
        from the blob store and inlined. Unreadable references are returned
        unchanged so one broken image never fails the whole turn.
        """
        if ref.startswith(PASSTHROUGH_PREFIXES):
            return ref

        try:
            data = await self._blobs.resolve(ref)
        except BlobNotFoundError as e:
            logger.warning("Image reference %s could not be read: %s", ref, e)
            return ref
        except OSError as e:
            logger.warning("Failed to read image %s: %s", ref, e)
            return ref

        return to_data_uri(data)

    async def format_entry(self, entry: HistoryEntry) -> ChatMessage:
        """Format one entry; text-only entries come back unchanged."""
        if not entry.image_refs:
            return ChatMessage(role=entry.role, content=entry.content)

        blocks: list[ContentBlock] = []
        if entry.content.strip():
            blocks.append(TextBlock(text=entry.content))
        for ref in entry.image_refs:
            blocks.append(ImageBlock(uri=await self.inline_image(ref)))

        return ChatMessage(role=entry.role, content=blocks)

    async def format_history(self, entries: list[HistoryEntry]) -> list[ChatMessage]:
        """Format a whole history, preserving order."""
        return [await self.format_entry(entry) for entry in entries]
