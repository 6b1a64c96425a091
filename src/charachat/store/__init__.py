"""Chat store module for charachat.

Persists characters, conversations and messages.
"""

from .base import ChatStore
from .factory import create_chat_store
from .models import Character, CharacterDraft, Conversation, StoredMessage

__all__ = [
    "Character",
    "CharacterDraft",
    "ChatStore",
    "Conversation",
    "StoredMessage",
    "create_chat_store",
]
