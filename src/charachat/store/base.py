"""Abstract base class for chat store backends.

This module defines the interface for persisting characters, conversations
and messages. The abstraction hides:
- Storage format and id allocation
- Persistence mechanism (in-memory, SQLite)
- Connection management
- Cascade rules (deleting a character drops its conversations and messages)
"""

from abc import ABC, abstractmethod

from .models import (
    DEFAULT_CONVERSATION_TITLE,
    DEFAULT_USER_ID,
    Character,
    CharacterDraft,
    Conversation,
    Role,
    StoredMessage,
)


class ChatStore(ABC):
    """Abstract chat store backend.

    Every method is scoped by ``user_id``; the application runs as the
    single ``"default"`` user.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize the store backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the store backend gracefully."""

    # Characters

    @abstractmethod
    async def list_characters(self, user_id: str = DEFAULT_USER_ID) -> list[Character]:
        """List characters, newest first."""

    @abstractmethod
    async def get_character(self, character_id: str, user_id: str = DEFAULT_USER_ID) -> Character | None:
        """Fetch one character."""

    @abstractmethod
    async def create_character(self, draft: CharacterDraft, user_id: str = DEFAULT_USER_ID) -> Character:
        """Create a character; unset draft fields take their defaults."""

    @abstractmethod
    async def update_character(
        self,
        character_id: str,
        draft: CharacterDraft,
        user_id: str = DEFAULT_USER_ID
    ) -> Character | None:
        """Apply the provided draft fields; None when the character is unknown."""

    @abstractmethod
    async def delete_character(self, character_id: str, user_id: str = DEFAULT_USER_ID) -> bool:
        """Delete a character with its conversations and messages."""

    # Conversations

    @abstractmethod
    async def list_conversations(self, character_id: str, user_id: str = DEFAULT_USER_ID) -> list[Conversation]:
        """List a character's conversations, most recently updated first."""

    @abstractmethod
    async def create_conversation(
        self,
        character_id: str,
        title: str = DEFAULT_CONVERSATION_TITLE,
        user_id: str = DEFAULT_USER_ID
    ) -> Conversation:
        """Create an empty conversation."""

    @abstractmethod
    async def rename_conversation(self, conversation_id: str, title: str) -> Conversation | None:
        """Change a conversation title; None when it does not exist."""

    @abstractmethod
    async def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and its messages."""

    # Messages

    @abstractmethod
    async def get_messages(
        self,
        user_id: str,
        character_id: str,
        conversation_id: str | None = None,
        limit: int = 50
    ) -> list[StoredMessage]:
        """Get messages oldest first, at most ``limit``.

        Without ``conversation_id`` every message of the character is returned.
        """

    @abstractmethod
    async def create_message(
        self,
        content: str,
        role: Role,
        character_id: str,
        conversation_id: str | None = None,
        user_id: str = DEFAULT_USER_ID,
        images: list[str] | None = None
    ) -> StoredMessage:
        """Persist a message and bump its conversation's ``updated_at``."""

    @abstractmethod
    async def delete_message(self, message_id: str) -> bool:
        """Delete one message; False when it does not exist."""

    @abstractmethod
    async def clear_messages(
        self,
        user_id: str,
        character_id: str,
        conversation_id: str | None = None
    ) -> int:
        """Delete matching messages and return how many were removed."""

    @property
    @abstractmethod
    def backend_type(self) -> str:
        """Get the backend type identifier."""
