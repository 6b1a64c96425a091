"""Client side of the event-stream transport.

Hidden design decisions:
- Event reassembly when network reads split events (or UTF-8 characters) arbitrarily
- Which lines carry payload (only ``data: `` lines inside an event)
- Tolerance for malformed payloads (skipped, never fatal)
- How the running content is folded and published

One decoder instance serves one request. Every call site that reads the
chat stream (send, regenerate, reply drafting) goes through this module.
"""

import codecs
import json
import logging
from collections.abc import AsyncIterable, Callable

from ..errors import DecodeError

logger = logging.getLogger(__name__)

EVENT_DELIMITER = "\n\n"
DATA_PREFIX = "data: "

UpdateCallback = Callable[[str], None]


def parse_payload(raw: str) -> str | None:
    """Parse one ``data:`` payload.

    Returns:
        The fragment carried by the payload, or None for payloads without
        a non-empty string ``content`` field

    Raises:
        DecodeError: If the payload is not valid JSON
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Malformed event payload: {raw[:80]!r}") from e

    if isinstance(data, dict):
        content = data.get("content")
        if isinstance(content, str) and content:
            return content
    return None


class SSEDecoder:
    """Incremental event-stream decoder with a running content accumulator.

    Usage:
        decoder = SSEDecoder(on_update=lambda content: print(content))
        async for chunk in response.aiter_bytes():
            decoder.feed(chunk)
        decoder.finish()
        print(decoder.content)
    """

    def __init__(self, on_update: UpdateCallback | None = None) -> None:
        """Initialize an empty decoder.

        Args:
            on_update: Called with the cumulative content after every fragment
        """
        self._on_update = on_update
        self._buffer = ""
        self._content = ""
        self._skipped = 0
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def content(self) -> str:
        """Content accumulated so far."""
        return self._content

    @property
    def skipped_lines(self) -> int:
        """Number of data lines dropped because their payload was malformed."""
        return self._skipped

    def feed(self, chunk: str | bytes) -> list[str]:
        """Append one network read and process every complete event in the buffer.

        Args:
            chunk: Raw bytes or already-decoded text

        Returns:
            Fragments applied during this call, in order
        """
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk

        fragments: list[str] = []
        while (index := self._buffer.find(EVENT_DELIMITER)) != -1:
            block = self._buffer[:index]
            self._buffer = self._buffer[index + len(EVENT_DELIMITER):]
            fragments.extend(self._apply_event(block))
        return fragments

    def finish(self) -> list[str]:
        """Process residual text left without a trailing blank line.

        Call once after the transport signals completion.
        """
        self._buffer += self._utf8.decode(b"", final=True)
        residual, self._buffer = self._buffer, ""
        if not residual.strip():
            return []

        fragments: list[str] = []
        for block in residual.split(EVENT_DELIMITER):
            fragments.extend(self._apply_event(block))
        return fragments

    def _apply_event(self, block: str) -> list[str]:
        fragments: list[str] = []
        for raw_line in block.split("\n"):
            line = raw_line.strip()
            if not line.startswith(DATA_PREFIX):
                continue

            try:
                fragment = parse_payload(line[len(DATA_PREFIX):])
            except DecodeError as e:
                # Heartbeats and other control lines land here
                self._skipped += 1
                logger.debug("Skipping event line: %s", e)
                continue

            if fragment is None:
                continue

            self._content += fragment
            fragments.append(fragment)
            if self._on_update is not None:
                self._on_update(self._content)
        return fragments


async def decode_stream(
    chunks: AsyncIterable[str | bytes],
    on_update: UpdateCallback | None = None,
) -> str:
    """Drain a chunked event stream and return the accumulated content."""
    decoder = SSEDecoder(on_update)
    async for chunk in chunks:
        decoder.feed(chunk)
    decoder.finish()
    return decoder.content
