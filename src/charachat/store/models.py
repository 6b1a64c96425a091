"""Data models for the chat store.

These models define persisted characters, conversations and messages,
independent of the storage backend used. Field aliases are camelCase so the
HTTP layer can emit the same JSON the browser client expects.
"""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_USER_ID = "default"
DEFAULT_AVATAR = "/placeholder.svg"
DEFAULT_USER_AVATAR = "/placeholder-user.jpg"
DEFAULT_CHARACTER_MODEL = "deepseek-chat"
DEFAULT_CONVERSATION_TITLE = "New chat"

Role = Literal["user", "assistant"]


def utcnow() -> datetime:
    return datetime.now(UTC)


class StoreModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Character(StoreModel):
    """A persona: system prompt, model choice and display options."""

    id: str
    user_id: str = Field(default=DEFAULT_USER_ID)
    name: str
    avatar: str = Field(default=DEFAULT_AVATAR)
    prompt: str = Field(default="", description="System prompt sent with every turn")
    model: str = Field(default=DEFAULT_CHARACTER_MODEL)
    background: str | None = None
    background_size: str = Field(default="cover")
    background_position: str = Field(default="center")
    background_repeat: str = Field(default="no-repeat")
    user_avatar: str = Field(default=DEFAULT_USER_AVATAR)
    bubble_user_opacity: float = Field(default=1.0, ge=0.0, le=1.0)
    bubble_ai_opacity: float = Field(default=1.0, ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class CharacterDraft(StoreModel):
    """Fields accepted when creating or updating a character.

    Unset fields keep their defaults on create and their current value on update.
    """

    name: str | None = None
    avatar: str | None = None
    prompt: str | None = None
    model: str | None = None
    background: str | None = None
    background_size: str | None = None
    background_position: str | None = None
    background_repeat: str | None = None
    user_avatar: str | None = None
    bubble_user_opacity: float | None = Field(default=None, ge=0.0, le=1.0)
    bubble_ai_opacity: float | None = Field(default=None, ge=0.0, le=1.0)

    def changes(self) -> dict:
        """Return only the fields that were actually provided."""
        return self.model_dump(exclude_none=True)


class Conversation(StoreModel):
    """A named thread of messages with one character."""

    id: str
    user_id: str = Field(default=DEFAULT_USER_ID)
    character_id: str
    title: str = Field(default=DEFAULT_CONVERSATION_TITLE)
    message_count: int = Field(default=0, description="Number of stored messages in this thread")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow, description="Bumped on every message append")


class StoredMessage(StoreModel):
    """A persisted chat message."""

    id: str
    content: str = ""
    role: Role
    character_id: str
    conversation_id: str | None = None
    user_id: str = Field(default=DEFAULT_USER_ID)
    images: list[str] = Field(default_factory=list, description="Image references (blob store refs or URLs)")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
