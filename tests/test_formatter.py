"""Tests for history formatting and the filesystem blob store."""
import asyncio
import base64

import pytest
from hypothesis import given
from hypothesis import strategies as st

from charachat.blobs import FilesystemBlobStore
from charachat.chat import HistoryEntry, MultimodalFormatter
from charachat.chat.formatter import sniff_image_mime, to_data_uri
from charachat.errors import BlobNotFoundError
from charachat.llm import ImageBlock, TextBlock

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


class TestSniffImageMime:
    """Tests for magic-byte MIME detection."""

    @pytest.mark.parametrize(
        "data,expected",
        [
            (b"\xff\xd8\xff\xe0rest", "image/jpeg"),
            (PNG_BYTES, "image/png"),
            (b"GIF89a....", "image/gif"),
            (b"RIFF\x00\x00\x00\x00WEBPVP8 ", "image/webp"),
            (b"BM\x00\x00", "image/bmp"),
            (b"not an image", "image/jpeg"),
            (b"", "image/jpeg"),
        ],
    )
    def test_signatures(self, data, expected):
        """Test each known signature and the JPEG fallback."""
        assert sniff_image_mime(data) == expected

    def test_data_uri_round_trips_bytes(self):
        """Test the data URI carries the sniffed type and the original bytes."""
        uri = to_data_uri(PNG_BYTES)
        header, payload = uri.split(",", 1)
        assert header == "data:image/png;base64"
        assert base64.b64decode(payload) == PNG_BYTES


class TestMultimodalFormatter:
    """Tests for converting history entries into provider messages."""

    @pytest.fixture
    def formatter(self, blobs):
        return MultimodalFormatter(blobs)

    @given(
        role=st.sampled_from(["user", "assistant"]),
        content=st.text(max_size=50),
    )
    def test_text_only_entries_unchanged(self, role, content):
        """Property: entries without images become plain-text messages verbatim."""
        formatter = MultimodalFormatter(FilesystemBlobStore("unused"))
        message = asyncio.run(formatter.format_entry(HistoryEntry(role=role, content=content)))
        assert message.role == role
        assert message.content == content

    @pytest.mark.asyncio
    async def test_stored_image_is_inlined(self, formatter, blobs):
        """Test a local reference becomes a data URI sniffed from the bytes."""
        ref = await blobs.store(PNG_BYTES, "chat", "photo.jpg")
        message = await formatter.format_entry(
            HistoryEntry(role="user", content="look", image_refs=[ref])
        )

        assert message.content[0] == TextBlock(text="look")
        image = message.content[1]
        assert isinstance(image, ImageBlock)
        assert image.uri.startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_absolute_urls_pass_through(self, formatter):
        """Test http(s) URLs and data URIs are not rewritten."""
        refs = ["https://example.com/cat.png", "data:image/gif;base64,R0lG"]
        message = await formatter.format_entry(HistoryEntry(role="user", content="x", image_refs=refs))
        assert [b.uri for b in message.content if isinstance(b, ImageBlock)] == refs

    @pytest.mark.asyncio
    async def test_missing_image_degrades_to_reference(self, formatter):
        """Test an unreadable reference is kept instead of failing the turn."""
        message = await formatter.format_entry(
            HistoryEntry(role="user", content="hi", image_refs=["/api/uploads/gone.png"])
        )
        assert message.content[1] == ImageBlock(uri="/api/uploads/gone.png")

    @pytest.mark.asyncio
    async def test_blank_text_omitted_for_image_only_turn(self, formatter):
        """Test an image-only turn carries no empty text block."""
        message = await formatter.format_entry(
            HistoryEntry(role="user", content="  ", image_refs=["https://example.com/a.png"])
        )
        assert message.content == [ImageBlock(uri="https://example.com/a.png")]
        assert message.has_images
        assert message.text == ""

    @pytest.mark.asyncio
    async def test_history_order_preserved(self, formatter):
        """Test format_history keeps entry order."""
        entries = [
            HistoryEntry(role="user", content="1"),
            HistoryEntry(role="assistant", content="2"),
            HistoryEntry(role="user", content="3"),
        ]
        messages = await formatter.format_history(entries)
        assert [m.content for m in messages] == ["1", "2", "3"]


class TestFilesystemBlobStore:
    """Tests for the filesystem blob store."""

    @pytest.mark.asyncio
    async def test_store_and_resolve(self, blobs):
        """Test stored bytes come back through their reference."""
        ref = await blobs.store(b"bytes", "avatar", "Me.PNG")
        assert ref.startswith("/api/uploads/avatar_")
        assert ref.endswith(".png")
        assert await blobs.resolve(ref) == b"bytes"

    @pytest.mark.asyncio
    async def test_references_are_unique(self, blobs):
        """Test two uploads of the same file get distinct references."""
        first = await blobs.store(b"a", "chat", "x.png")
        second = await blobs.store(b"a", "chat", "x.png")
        assert first != second

    @pytest.mark.asyncio
    async def test_legacy_and_bare_forms_resolve(self, blobs):
        """Test /uploads/ and bare names map onto the same file."""
        ref = await blobs.store(b"data", "chat")
        name = ref.rsplit("/", 1)[-1]
        assert await blobs.resolve(f"/uploads/{name}") == b"data"
        assert await blobs.resolve(name) == b"data"

    @pytest.mark.asyncio
    async def test_missing_blob(self, blobs):
        """Test resolving an unknown reference raises BlobNotFoundError."""
        with pytest.raises(BlobNotFoundError):
            await blobs.resolve("/api/uploads/nothing.png")

    @pytest.mark.parametrize("ref", ["/api/uploads/../secret", "../secret", "/etc/passwd", "/api/uploads/"])
    def test_escaping_references_rejected(self, blobs, ref):
        """Test references outside the upload directory are refused."""
        with pytest.raises(BlobNotFoundError):
            blobs.path_for(ref)
