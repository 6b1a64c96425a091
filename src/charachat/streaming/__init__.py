"""Event-stream transport for chat replies.

Module structure:
- encoder.py: fragments to ``data:`` events (server)
- decoder.py: chunked bytes back to accumulated content (client)
"""

from .decoder import SSEDecoder, decode_stream, parse_payload
from .encoder import EVENT_STREAM_HEADERS, EVENT_STREAM_MEDIA_TYPE, encode_event, encode_stream

__all__ = [
    "EVENT_STREAM_HEADERS",
    "EVENT_STREAM_MEDIA_TYPE",
    "SSEDecoder",
    "decode_stream",
    "encode_event",
    "encode_stream",
    "parse_payload",
]
