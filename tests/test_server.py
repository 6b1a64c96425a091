"""Tests for the HTTP API, driven through an in-process ASGI transport."""
import httpx
import pytest

from charachat.config import DEFAULT_SYSTEM_PROMPT
from charachat.errors import ProviderError
from charachat.llm import BackendRegistry, ProviderAdapter
from charachat.server import create_app
from charachat.streaming import encode_event

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def _chat_body(content: str = "Hello", **extra):
    return {"messages": [{"role": "user", "content": content}], "character": {"prompt": "You are terse."}, **extra}


class TestChatRoute:
    """Tests for POST /api/chat."""

    @pytest.mark.asyncio
    async def test_streams_events(self, http, script):
        """Test fragments arrive as data events in order."""
        response = await http.post("/api/chat", json=_chat_body())

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.text == encode_event("Hi") + encode_event(" there") + encode_event("!")
        assert script.last.closed

    @pytest.mark.asyncio
    async def test_system_prompt_and_history(self, http, script):
        """Test the character prompt leads and the history follows in order."""
        body = {
            "messages": [
                {"role": "user", "content": "A"},
                {"role": "assistant", "content": "B"},
                {"role": "user", "content": "C", "imageUrls": ["https://example.com/c.png"]},
            ],
            "character": {"prompt": "You are terse."},
        }
        await http.post("/api/chat", json=body)

        sent = script.last.calls[0]["messages"]
        assert [m.role for m in sent] == ["system", "user", "assistant", "user"]
        assert sent[0].content == "You are terse."
        assert sent[3].has_images
        assert sent[3].text == "C"

    @pytest.mark.asyncio
    async def test_default_system_prompt(self, http, script):
        """Test an empty character prompt falls back to the configured one."""
        await http.post("/api/chat", json={"messages": [{"role": "user", "content": "Hi"}], "character": {}})
        assert script.last.calls[0]["messages"][0].content == DEFAULT_SYSTEM_PROMPT

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "extra,expected",
        [
            ({}, "deepseek-chat"),
            ({"character": {"prompt": "p", "model": "deepseek-reasoner"}}, "deepseek-reasoner"),
            ({"model": "top-level", "character": {"prompt": "p", "model": "deepseek-reasoner"}}, "top-level"),
        ],
    )
    async def test_effective_model(self, http, script, extra, expected):
        """Test top-level model beats the character's, which beats the default."""
        await http.post("/api/chat", json=_chat_body(**extra))
        assert script.last.calls[0]["model"] == expected

    @pytest.mark.asyncio
    async def test_missing_credential_is_configuration_error(self, settings, store, blobs):
        """Test a backend without credentials answers 500 with kind=configuration."""
        bare = settings.model_copy(update={"deepseek_api_key": None})
        app = create_app(bare, store=store, blobs=blobs, adapter=ProviderAdapter(BackendRegistry.from_settings(bare)))
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
            response = await client.post("/api/chat", json=_chat_body())

        assert response.status_code == 500
        assert response.json()["kind"] == "configuration"
        assert "DEEPSEEK_API_KEY" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_backend_rejection_is_provider_error(self, http, script):
        """Test an up-front backend failure answers 502 with the upstream status."""
        script.error = ProviderError("rejected", status=401, body='{"error": "bad key"}')
        response = await http.post("/api/chat", json=_chat_body())

        assert response.status_code == 502
        payload = response.json()
        assert payload["kind"] == "provider"
        assert payload["status"] == 401
        assert payload["body"] == '{"error": "bad key"}'

    @pytest.mark.asyncio
    async def test_empty_reply_closes_stream(self, http, script):
        """Test a reply with no fragments is an empty, successful stream."""
        script.fragments = []
        response = await http.post("/api/chat", json=_chat_body())
        assert response.status_code == 200
        assert response.text == ""

    @pytest.mark.asyncio
    async def test_invalid_body(self, http):
        """Test schema violations answer 400 with an error message."""
        response = await http.post("/api/chat", json={"messages": [{"role": "robot", "content": "x"}]})
        assert response.status_code == 400
        assert "error" in response.json()


class TestMessageRoutes:
    """Tests for /api/messages."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, http, character):
        """Test created messages are listed oldest first in camelCase."""
        for role, content in (("user", "Hi"), ("assistant", "Hello")):
            response = await http.post(
                "/api/messages", json={"content": content, "role": role, "characterId": character.id}
            )
            assert response.status_code == 200

        response = await http.get("/api/messages", params={"characterId": character.id})
        messages = response.json()["messages"]
        assert [(m["role"], m["content"]) for m in messages] == [("user", "Hi"), ("assistant", "Hello")]
        assert messages[0]["characterId"] == character.id
        assert "createdAt" in messages[0]

    @pytest.mark.asyncio
    async def test_limit(self, http, store, character):
        """Test the limit query parameter."""
        for i in range(3):
            await store.create_message(str(i), "user", character.id)
        response = await http.get("/api/messages", params={"characterId": character.id, "limit": 2})
        assert len(response.json()["messages"]) == 2

    @pytest.mark.asyncio
    async def test_requires_content_or_images(self, http, character):
        """Test a message with neither text nor images is refused."""
        response = await http.post("/api/messages", json={"role": "user", "characterId": character.id})
        assert response.status_code == 400

        response = await http.post(
            "/api/messages",
            json={"role": "user", "characterId": character.id, "images": ["/api/uploads/a.png"]},
        )
        assert response.status_code == 200
        assert response.json()["message"]["images"] == ["/api/uploads/a.png"]

    @pytest.mark.asyncio
    async def test_missing_character_id(self, http):
        """Test listing without characterId is a 400."""
        response = await http.get("/api/messages")
        assert response.status_code == 400
        assert "characterId" in response.json()["error"]

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, http, store, character):
        """Test single delete, 404 for unknown ids and bulk clear."""
        message = await store.create_message("a", "user", character.id)
        await store.create_message("b", "user", character.id)

        assert (await http.delete(f"/api/messages/{message.id}")).status_code == 200
        assert (await http.delete(f"/api/messages/{message.id}")).status_code == 404

        response = await http.delete("/api/messages", params={"characterId": character.id})
        assert response.json()["removed"] == 1


class TestConversationRoutes:
    """Tests for /api/conversations."""

    @pytest.mark.asyncio
    async def test_lifecycle(self, http, character):
        """Test create, list with counts, rename and delete."""
        created = (await http.post("/api/conversations", json={"characterId": character.id})).json()
        conversation = created["conversation"]
        assert conversation["title"] == "New chat"

        await http.post(
            "/api/messages",
            json={"content": "hi", "role": "user", "characterId": character.id, "conversationId": conversation["id"]},
        )
        listed = (await http.get("/api/conversations", params={"characterId": character.id})).json()
        assert listed["conversations"][0]["messageCount"] == 1

        renamed = await http.patch(f"/api/conversations/{conversation['id']}", json={"title": "Renamed"})
        assert renamed.json()["conversation"]["title"] == "Renamed"

        assert (await http.delete(f"/api/conversations/{conversation['id']}")).status_code == 200
        assert (await http.delete(f"/api/conversations/{conversation['id']}")).status_code == 404
        assert (await http.patch("/api/conversations/999", json={"title": "x"})).status_code == 404


class TestCharacterRoutes:
    """Tests for /api/characters."""

    @pytest.mark.asyncio
    async def test_first_listing_seeds_starters(self, http):
        """Test an empty account gets the two starter characters once."""
        first = (await http.get("/api/characters")).json()["characters"]
        second = (await http.get("/api/characters")).json()["characters"]

        assert {c["name"] for c in first} == {"AI Assistant", "Programming Expert"}
        assert len(second) == 2

    @pytest.mark.asyncio
    async def test_create_update_delete(self, http):
        """Test character CRUD through the API."""
        response = await http.post(
            "/api/characters", json={"name": "Nova", "prompt": "You are Nova.", "bubbleAiOpacity": 0.8}
        )
        character = response.json()["character"]
        assert character["bubbleAiOpacity"] == 0.8
        assert character["model"] == "deepseek-chat"

        updated = await http.put(f"/api/characters/{character['id']}", json={"model": "gemini-2.0-flash"})
        assert updated.json()["character"]["model"] == "gemini-2.0-flash"
        assert updated.json()["character"]["prompt"] == "You are Nova."

        assert (await http.delete(f"/api/characters/{character['id']}")).status_code == 200
        assert (await http.put(f"/api/characters/{character['id']}", json={"name": "x"})).status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"name": "Nova"}, {"name": "  ", "prompt": "p"}, {"prompt": "p"}])
    async def test_name_and_prompt_required(self, http, body):
        """Test creation without a name or prompt is a 400."""
        response = await http.post("/api/characters", json=body)
        assert response.status_code == 400


class TestUploadRoutes:
    """Tests for image upload and retrieval."""

    @pytest.mark.asyncio
    async def test_upload_and_serve(self, http):
        """Test an uploaded image is served back with an immutable cache header."""
        response = await http.post(
            "/api/upload",
            files={"file": ("cat.png", PNG_BYTES, "image/png")},
            data={"type": "avatar"},
        )
        payload = response.json()
        assert response.status_code == 200
        assert payload["url"].startswith("/api/uploads/avatar_")
        assert payload["url"].endswith(payload["filename"])

        served = await http.get(payload["url"])
        assert served.status_code == 200
        assert served.content == PNG_BYTES
        assert served.headers["content-type"] == "image/png"
        assert "immutable" in served.headers["cache-control"]

    @pytest.mark.asyncio
    async def test_rejects_non_images(self, http):
        """Test non-image uploads are refused."""
        response = await http.post("/api/upload", files={"file": ("notes.txt", b"hello", "text/plain")})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_rejects_oversized_files(self, http):
        """Test uploads above 10 MiB are refused."""
        big = b"\xff\xd8\xff" + b"\x00" * (10 * 1024 * 1024)
        response = await http.post("/api/upload", files={"file": ("big.jpg", big, "image/jpeg")})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_serve_missing_and_traversal(self, http):
        """Test unknown files are 404 and dotted paths are refused."""
        assert (await http.get("/api/uploads/none.png")).status_code == 404
        assert (await http.get("/api/uploads/a..png")).status_code == 400
