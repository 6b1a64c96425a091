"""Tests for the event-stream encoder and decoder."""
import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from charachat.errors import DecodeError
from charachat.streaming import SSEDecoder, decode_stream, encode_event, encode_stream, parse_payload

fragment_lists = st.lists(st.text(min_size=1, max_size=20), min_size=1, max_size=8)


def _wire(fragments: list[str]) -> bytes:
    return "".join(encode_event(f) for f in fragments).encode("utf-8")


def _split(data: bytes, cuts: list[int]) -> list[bytes]:
    points = sorted({0, len(data), *cuts})
    return [data[a:b] for a, b in zip(points, points[1:])]


async def _agen(items):
    for item in items:
        yield item


class TestEncodeEvent:
    """Tests for framing single fragments."""

    def test_frames_fragment_as_data_event(self):
        """Test one fragment becomes one data line and a blank line."""
        assert encode_event("Hi") == 'data: {"content": "Hi"}\n\n'

    def test_keeps_non_ascii_readable(self):
        """Test non-ASCII text is not escaped."""
        assert encode_event("héllo 世界") == 'data: {"content": "héllo 世界"}\n\n'

    def test_newlines_never_break_framing(self):
        """Test embedded newlines are escaped inside the JSON payload."""
        event = encode_event("line one\n\nline two")
        assert event.count("\n\n") == 1
        assert event.endswith("\n\n")


class TestEncodeStream:
    """Tests for encoding fragment streams."""

    @pytest.mark.asyncio
    async def test_skips_empty_fragments(self):
        """Test empty fragments produce no events."""
        events = [e async for e in encode_stream(_agen(["a", "", "b"]))]
        assert events == [encode_event("a"), encode_event("b")]

    @pytest.mark.asyncio
    async def test_reraises_source_failure(self):
        """Test a failing source ends the stream with its error."""
        async def failing():
            yield "partial"
            raise RuntimeError("backend dropped")

        events = []
        with pytest.raises(RuntimeError, match="backend dropped"):
            async for event in encode_stream(failing()):
                events.append(event)
        assert events == [encode_event("partial")]


class TestParsePayload:
    """Tests for single payload parsing."""

    def test_returns_content(self):
        """Test a well-formed payload yields its content."""
        assert parse_payload('{"content": "x"}') == "x"

    @pytest.mark.parametrize("raw", ['{"content": ""}', '{"other": 1}', "42", '["content"]', '{"content": 5}'])
    def test_payloads_without_text_content_are_ignored(self, raw):
        """Test valid JSON without a non-empty string content yields None."""
        assert parse_payload(raw) is None

    @pytest.mark.parametrize("raw", ["{not json", "[DONE]", ""])
    def test_malformed_json_raises(self, raw):
        """Test invalid JSON raises DecodeError."""
        with pytest.raises(DecodeError):
            parse_payload(raw)


class TestSSEDecoder:
    """Tests for incremental decoding."""

    def test_single_event(self):
        """Test one complete event is applied immediately."""
        decoder = SSEDecoder()
        assert decoder.feed(encode_event("Hello")) == ["Hello"]
        assert decoder.content == "Hello"

    def test_partial_event_waits_for_delimiter(self):
        """Test an event split across reads is applied once complete."""
        decoder = SSEDecoder()
        assert decoder.feed('data: {"cont') == []
        assert decoder.feed('ent": "Hi"}\n') == []
        assert decoder.feed("\n") == ["Hi"]

    def test_on_update_receives_cumulative_content(self):
        """Test the callback sees the running content after each fragment."""
        seen = []
        decoder = SSEDecoder(on_update=seen.append)
        decoder.feed(_wire(["Hi", " there", "!"]))
        assert seen == ["Hi", "Hi there", "Hi there!"]

    def test_malformed_lines_are_skipped(self):
        """Test heartbeats, comments and junk leave the content untouched."""
        decoder = SSEDecoder()
        decoder.feed(
            encode_event("a")
            + ": keep-alive\n\n"
            + "event: ping\ndata: [DONE]\n\n"
            + "data: {broken\n\n"
            + 'data: {"role": "assistant"}\n\n'
            + encode_event("b")
        )
        assert decoder.content == "ab"
        assert decoder.skipped_lines == 2

    def test_residual_is_flushed_on_finish(self):
        """Test an event without the trailing blank line is applied by finish."""
        decoder = SSEDecoder()
        decoder.feed(encode_event("a") + 'data: {"content": "b"}')
        assert decoder.content == "a"
        assert decoder.finish() == ["b"]
        assert decoder.content == "ab"

    def test_finish_on_empty_buffer(self):
        """Test finish with nothing pending is a no-op."""
        decoder = SSEDecoder()
        decoder.feed(encode_event("a"))
        assert decoder.finish() == []
        assert decoder.content == "a"

    def test_multibyte_character_split_across_reads(self):
        """Test a UTF-8 character cut between two reads survives."""
        data = encode_event("世").encode("utf-8")
        cut = data.index("世".encode("utf-8")) + 1
        decoder = SSEDecoder()
        decoder.feed(data[:cut])
        decoder.feed(data[cut:])
        assert decoder.content == "世"

    @given(fragments=fragment_lists, data=st.data())
    @settings(max_examples=100)
    def test_content_independent_of_chunking(self, fragments, data):
        """Property: any byte-level split of the wire yields the same content."""
        wire = _wire(fragments)
        cuts = data.draw(st.lists(st.integers(min_value=0, max_value=len(wire)), max_size=10))

        decoder = SSEDecoder()
        for chunk in _split(wire, cuts):
            decoder.feed(chunk)
        decoder.finish()

        assert decoder.content == "".join(fragments)

    @given(fragments=fragment_lists)
    def test_updates_are_prefixes_of_final_content(self, fragments):
        """Property: every published update is a prefix of the next."""
        seen = []
        decoder = SSEDecoder(on_update=seen.append)
        decoder.feed(_wire(fragments))
        decoder.finish()

        assert len(seen) == len(fragments)
        for earlier, later in zip(seen, seen[1:]):
            assert later.startswith(earlier)
        assert seen[-1] == "".join(fragments)


class TestDecodeStream:
    """Tests for draining a chunk iterator."""

    @pytest.mark.asyncio
    async def test_drains_and_returns_content(self):
        """Test the helper returns the accumulated content."""
        wire = _wire(["one ", "two"])
        content = await decode_stream(_agen([wire[:7], wire[7:]]))
        assert content == "one two"

    @pytest.mark.asyncio
    async def test_str_chunks(self):
        """Test already-decoded text chunks are accepted."""
        payload = json.dumps({"content": "ok"})
        assert await decode_stream(_agen([f"data: {payload}"])) == "ok"
