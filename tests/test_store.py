"""Tests for chat store backends.

Every test runs against both the in-memory and the SQLite backend.
"""
import pytest

from charachat.store import CharacterDraft, create_chat_store
from charachat.store.in_memory import InMemoryChatStore
from charachat.store.sqlite import SQLiteChatStore


@pytest.fixture(params=["memory", "sqlite"])
async def chat_store(request, tmp_path):
    """Connected store for each backend."""
    if request.param == "sqlite":
        store = create_chat_store("sqlite", path=tmp_path / "chat.db")
    else:
        store = create_chat_store("memory")
    await store.connect()
    yield store
    await store.disconnect()


@pytest.fixture
async def persona(chat_store):
    return await chat_store.create_character(CharacterDraft(name="Ada", prompt="You are Ada."))


class TestCreateChatStore:
    """Tests for the store factory."""

    def test_backends(self, tmp_path):
        """Test each supported name builds its backend."""
        assert isinstance(create_chat_store("memory"), InMemoryChatStore)
        assert isinstance(create_chat_store("sqlite", path=tmp_path / "x.db"), SQLiteChatStore)

    def test_name_is_case_insensitive_and_path_optional(self, tmp_path):
        """Test backend names ignore case and memory ignores a configured path."""
        assert isinstance(create_chat_store(" Memory ", path=tmp_path / "unused.db"), InMemoryChatStore)
        assert isinstance(create_chat_store("SQLITE"), SQLiteChatStore)

    def test_unknown_backend(self):
        """Test an unsupported name raises ValueError."""
        with pytest.raises(ValueError):
            create_chat_store("postgres")


class TestCharacters:
    """Tests for character CRUD."""

    @pytest.mark.asyncio
    async def test_create_applies_defaults(self, chat_store, persona):
        """Test unset fields take their defaults."""
        assert persona.name == "Ada"
        assert persona.prompt == "You are Ada."
        assert persona.model == "deepseek-chat"
        assert persona.background is None
        assert await chat_store.get_character(persona.id) == persona

    @pytest.mark.asyncio
    async def test_list_newest_first_and_scoped_to_user(self, chat_store, persona):
        """Test listing order and per-user isolation."""
        second = await chat_store.create_character(CharacterDraft(name="Bob", prompt="p"))
        await chat_store.create_character(CharacterDraft(name="Eve", prompt="p"), user_id="other")

        listed = await chat_store.list_characters()
        assert [c.id for c in listed] == [second.id, persona.id]
        assert await chat_store.get_character(persona.id, user_id="other") is None

    @pytest.mark.asyncio
    async def test_update_changes_only_given_fields(self, chat_store, persona):
        """Test a partial update keeps the other fields."""
        updated = await chat_store.update_character(persona.id, CharacterDraft(model="gemini-2.0-flash"))
        assert updated.model == "gemini-2.0-flash"
        assert updated.prompt == "You are Ada."
        assert await chat_store.update_character("999", CharacterDraft(name="x")) is None

    @pytest.mark.asyncio
    async def test_delete_cascades(self, chat_store, persona):
        """Test deleting a character removes its conversations and messages."""
        conversation = await chat_store.create_conversation(persona.id)
        await chat_store.create_message("hi", "user", persona.id, conversation.id)

        assert await chat_store.delete_character(persona.id)
        assert await chat_store.get_character(persona.id) is None
        assert await chat_store.get_messages("default", persona.id) == []
        assert await chat_store.list_conversations(persona.id) == []
        assert not await chat_store.delete_character(persona.id)


class TestMessages:
    """Tests for message persistence."""

    @pytest.mark.asyncio
    async def test_oldest_first(self, chat_store, persona):
        """Test messages come back in creation order."""
        for text in ("one", "two", "three"):
            await chat_store.create_message(text, "user", persona.id)

        messages = await chat_store.get_messages("default", persona.id)
        assert [m.content for m in messages] == ["one", "two", "three"]

    @pytest.mark.asyncio
    async def test_limit(self, chat_store, persona):
        """Test the limit keeps the oldest messages."""
        for i in range(5):
            await chat_store.create_message(str(i), "assistant", persona.id)

        messages = await chat_store.get_messages("default", persona.id, limit=2)
        assert [m.content for m in messages] == ["0", "1"]

    @pytest.mark.asyncio
    async def test_conversation_filter(self, chat_store, persona):
        """Test a conversation id narrows the result; omitting it returns everything."""
        conversation = await chat_store.create_conversation(persona.id)
        await chat_store.create_message("loose", "user", persona.id)
        await chat_store.create_message("threaded", "user", persona.id, conversation.id)

        scoped = await chat_store.get_messages("default", persona.id, conversation.id)
        assert [m.content for m in scoped] == ["threaded"]
        assert len(await chat_store.get_messages("default", persona.id)) == 2

    @pytest.mark.asyncio
    async def test_images_round_trip(self, chat_store, persona):
        """Test image references are stored with the message."""
        created = await chat_store.create_message(
            "", "user", persona.id, images=["/api/uploads/chat_1_ab.png"]
        )
        assert created.images == ["/api/uploads/chat_1_ab.png"]

        [loaded] = await chat_store.get_messages("default", persona.id)
        assert loaded.images == ["/api/uploads/chat_1_ab.png"]
        assert loaded.role == "user"

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, chat_store, persona):
        """Test single deletes and bulk clear counts."""
        first = await chat_store.create_message("a", "user", persona.id)
        await chat_store.create_message("b", "assistant", persona.id)
        await chat_store.create_message("c", "user", persona.id)

        assert await chat_store.delete_message(first.id)
        assert not await chat_store.delete_message(first.id)
        assert await chat_store.clear_messages("default", persona.id) == 2
        assert await chat_store.get_messages("default", persona.id) == []


class TestConversations:
    """Tests for conversation bookkeeping."""

    @pytest.mark.asyncio
    async def test_message_bumps_conversation(self, chat_store, persona):
        """Test a new message moves its conversation to the top with a fresh count."""
        older = await chat_store.create_conversation(persona.id, "Older")
        newer = await chat_store.create_conversation(persona.id, "Newer")

        listed = await chat_store.list_conversations(persona.id)
        assert [c.id for c in listed] == [newer.id, older.id]

        await chat_store.create_message("back again", "user", persona.id, older.id)
        listed = await chat_store.list_conversations(persona.id)
        assert [c.id for c in listed] == [older.id, newer.id]
        assert listed[0].message_count == 1
        assert listed[1].message_count == 0
        assert listed[0].updated_at >= older.updated_at

    @pytest.mark.asyncio
    async def test_rename(self, chat_store, persona):
        """Test renaming keeps the id and reports unknown ids."""
        conversation = await chat_store.create_conversation(persona.id)
        assert conversation.title == "New chat"

        renamed = await chat_store.rename_conversation(conversation.id, "Trip plans")
        assert renamed.id == conversation.id
        assert renamed.title == "Trip plans"
        assert await chat_store.rename_conversation("999", "x") is None

    @pytest.mark.asyncio
    async def test_delete_removes_messages(self, chat_store, persona):
        """Test deleting a conversation removes only its messages."""
        conversation = await chat_store.create_conversation(persona.id)
        await chat_store.create_message("gone", "user", persona.id, conversation.id)
        await chat_store.create_message("kept", "user", persona.id)

        assert await chat_store.delete_conversation(conversation.id)
        assert [m.content for m in await chat_store.get_messages("default", persona.id)] == ["kept"]
        assert not await chat_store.delete_conversation(conversation.id)
