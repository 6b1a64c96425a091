"""Server side of the event-stream transport.

Each fragment becomes one ``data: {"content": ...}`` event terminated by a
blank line. There is no terminal sentinel: the stream simply closes.
"""

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

logger = logging.getLogger(__name__)

EVENT_STREAM_MEDIA_TYPE = "text/event-stream; charset=utf-8"

EVENT_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(fragment: str) -> str:
    """Frame one fragment as an event."""
    return "data: " + json.dumps({"content": fragment}, ensure_ascii=False) + "\n\n"


async def encode_stream(fragments: AsyncIterable[str]) -> AsyncIterator[str]:
    """Encode a fragment stream into events.

    Empty fragments are skipped. If the source fails after streaming began,
    the error is logged and re-raised so the transport closes abruptly
    instead of emitting a malformed trailing event.
    """
    sent = 0
    try:
        async for fragment in fragments:
            if not fragment:
                continue
            sent += 1
            yield encode_event(fragment)
    except Exception:
        logger.exception("Stream failed after %d events; closing transport", sent)
        raise
    logger.debug("Stream closed cleanly after %d events", sent)
