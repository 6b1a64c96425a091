"""Request bodies accepted by the HTTP API.

Field aliases are camelCase to match the browser client; Python code uses
the snake_case names.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..chat.formatter import HistoryEntry
from ..store.models import DEFAULT_CONVERSATION_TITLE, DEFAULT_USER_ID, CharacterDraft, Role


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatTurn(ApiModel):
    """One history turn in a chat request."""

    role: Literal["user", "assistant"]
    content: str = ""
    image_urls: list[str] | None = Field(default=None, description="Image references for this turn")

    def to_entry(self) -> HistoryEntry:
        return HistoryEntry(role=self.role, content=self.content, image_refs=self.image_urls)


class CharacterPayload(ApiModel):
    """The subset of a character the chat endpoint needs."""

    prompt: str = ""
    model: str | None = None


class ChatRequest(ApiModel):
    """Body of ``POST /api/chat``."""

    messages: list[ChatTurn] = Field(default_factory=list)
    character: CharacterPayload = Field(default_factory=CharacterPayload)
    model: str | None = Field(default=None, description="Overrides the character's model")

    def effective_model(self, default_model: str) -> str:
        """Top-level model, else the character's, else the configured default."""
        return self.model or self.character.model or default_model


class MessageCreate(ApiModel):
    """Body of ``POST /api/messages``."""

    content: str = ""
    role: Role
    character_id: str
    conversation_id: str | None = None
    user_id: str = DEFAULT_USER_ID
    images: list[str] | None = None


class ConversationCreate(ApiModel):
    """Body of ``POST /api/conversations``."""

    character_id: str
    user_id: str = DEFAULT_USER_ID
    title: str = DEFAULT_CONVERSATION_TITLE


class ConversationUpdate(ApiModel):
    """Body of ``PATCH /api/conversations/{id}``."""

    title: str


class CharacterCreate(CharacterDraft):
    """Body of ``POST /api/characters``; name and prompt are required."""

    name: str
    prompt: str
    user_id: str = DEFAULT_USER_ID

    def to_draft(self) -> CharacterDraft:
        return CharacterDraft.model_validate(self.model_dump(exclude={"user_id"}))
