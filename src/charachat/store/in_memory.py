"""In-memory chat store backend.

Simple dict-based storage for session-only use.
Data is lost when the application exits.
"""

from itertools import count

from .base import ChatStore
from .models import (
    DEFAULT_CONVERSATION_TITLE,
    DEFAULT_USER_ID,
    Character,
    CharacterDraft,
    Conversation,
    Role,
    StoredMessage,
    utcnow,
)

UNTITLED_CHARACTER = "Untitled character"


class InMemoryChatStore(ChatStore):
    """In-memory chat store (session-only).

    Suitable for tests and throwaway servers.
    """

    def __init__(self):
        self._ids = count(1)
        self._characters: dict[str, Character] = {}
        self._conversations: dict[str, Conversation] = {}
        self._messages: dict[str, StoredMessage] = {}

    async def connect(self) -> None:
        """Initialize store (no-op for in-memory)."""
        pass

    async def disconnect(self) -> None:
        """Close store (no-op for in-memory)."""
        pass

    def _next_id(self) -> str:
        return str(next(self._ids))

    async def list_characters(self, user_id: str = DEFAULT_USER_ID) -> list[Character]:
        owned = [c for c in self._characters.values() if c.user_id == user_id]
        return list(reversed(owned))

    async def get_character(self, character_id: str, user_id: str = DEFAULT_USER_ID) -> Character | None:
        character = self._characters.get(character_id)
        if character is None or character.user_id != user_id:
            return None
        return character

    async def create_character(self, draft: CharacterDraft, user_id: str = DEFAULT_USER_ID) -> Character:
        fields = draft.changes()
        fields.setdefault("name", UNTITLED_CHARACTER)
        character = Character(id=self._next_id(), user_id=user_id, **fields)
        self._characters[character.id] = character
        return character

    async def update_character(
        self,
        character_id: str,
        draft: CharacterDraft,
        user_id: str = DEFAULT_USER_ID
    ) -> Character | None:
        existing = await self.get_character(character_id, user_id)
        if existing is None:
            return None
        updated = existing.model_copy(update={**draft.changes(), "updated_at": utcnow()})
        self._characters[character_id] = updated
        return updated

    async def delete_character(self, character_id: str, user_id: str = DEFAULT_USER_ID) -> bool:
        if await self.get_character(character_id, user_id) is None:
            return False
        del self._characters[character_id]
        self._conversations = {
            k: c for k, c in self._conversations.items() if c.character_id != character_id
        }
        self._messages = {
            k: m for k, m in self._messages.items() if m.character_id != character_id
        }
        return True

    def _with_count(self, conversation: Conversation) -> Conversation:
        n = sum(1 for m in self._messages.values() if m.conversation_id == conversation.id)
        return conversation.model_copy(update={"message_count": n})

    async def list_conversations(self, character_id: str, user_id: str = DEFAULT_USER_ID) -> list[Conversation]:
        matches = [
            c for c in self._conversations.values()
            if c.character_id == character_id and c.user_id == user_id
        ]
        matches.sort(key=lambda c: (c.updated_at, int(c.id)), reverse=True)
        return [self._with_count(c) for c in matches]

    async def create_conversation(
        self,
        character_id: str,
        title: str = DEFAULT_CONVERSATION_TITLE,
        user_id: str = DEFAULT_USER_ID
    ) -> Conversation:
        conversation = Conversation(
            id=self._next_id(),
            user_id=user_id,
            character_id=character_id,
            title=title,
        )
        self._conversations[conversation.id] = conversation
        return conversation

    async def rename_conversation(self, conversation_id: str, title: str) -> Conversation | None:
        existing = self._conversations.get(conversation_id)
        if existing is None:
            return None
        updated = existing.model_copy(update={"title": title, "updated_at": utcnow()})
        self._conversations[conversation_id] = updated
        return self._with_count(updated)

    async def delete_conversation(self, conversation_id: str) -> bool:
        if self._conversations.pop(conversation_id, None) is None:
            return False
        self._messages = {
            k: m for k, m in self._messages.items() if m.conversation_id != conversation_id
        }
        return True

    def _matching(self, user_id: str, character_id: str, conversation_id: str | None) -> list[StoredMessage]:
        return [
            m for m in self._messages.values()
            if m.user_id == user_id
            and m.character_id == character_id
            and (conversation_id is None or m.conversation_id == conversation_id)
        ]

    async def get_messages(
        self,
        user_id: str,
        character_id: str,
        conversation_id: str | None = None,
        limit: int = 50
    ) -> list[StoredMessage]:
        return self._matching(user_id, character_id, conversation_id)[:limit]

    async def create_message(
        self,
        content: str,
        role: Role,
        character_id: str,
        conversation_id: str | None = None,
        user_id: str = DEFAULT_USER_ID,
        images: list[str] | None = None
    ) -> StoredMessage:
        message = StoredMessage(
            id=self._next_id(),
            content=content,
            role=role,
            character_id=character_id,
            conversation_id=conversation_id,
            user_id=user_id,
            images=images or [],
        )
        self._messages[message.id] = message

        if conversation_id in self._conversations:
            conversation = self._conversations[conversation_id]
            self._conversations[conversation_id] = conversation.model_copy(
                update={"updated_at": message.created_at}
            )
        return message

    async def delete_message(self, message_id: str) -> bool:
        return self._messages.pop(message_id, None) is not None

    async def clear_messages(
        self,
        user_id: str,
        character_id: str,
        conversation_id: str | None = None
    ) -> int:
        doomed = self._matching(user_id, character_id, conversation_id)
        for message in doomed:
            del self._messages[message.id]
        return len(doomed)

    @property
    def backend_type(self) -> str:
        return "memory"
