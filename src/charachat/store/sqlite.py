"""SQLite chat store backend.

Provides persistent storage for characters, conversations and messages
using a SQLite database file. Uses aiosqlite for async access.
"""

import json
import logging
from pathlib import Path

import aiosqlite

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

logger = logging.getLogger(__name__)

UNTITLED_CHARACTER = "Untitled character"


def _timestamp() -> str:
    # Fixed width so text ordering matches time ordering
    return utcnow().isoformat(timespec="microseconds")


CHARACTER_COLUMNS = (
    "name", "avatar", "prompt", "model", "background", "background_size",
    "background_position", "background_repeat", "user_avatar",
    "bubble_user_opacity", "bubble_ai_opacity",
)

CONVERSATION_SELECT = """
    SELECT c.id, c.user_id, c.character_id, c.title, c.created_at, c.updated_at,
           (SELECT COUNT(*) FROM messages m WHERE m.conversation_id = c.id) AS message_count
    FROM conversations c
"""


def _character_from_row(row: aiosqlite.Row) -> Character:
    data = dict(row)
    data["id"] = str(data["id"])
    return Character.model_validate(data)


def _conversation_from_row(row: aiosqlite.Row) -> Conversation:
    data = dict(row)
    data["id"] = str(data["id"])
    data["character_id"] = str(data["character_id"])
    return Conversation.model_validate(data)


def _message_from_row(row: aiosqlite.Row) -> StoredMessage:
    data = dict(row)
    data["id"] = str(data["id"])
    data["character_id"] = str(data["character_id"])
    if data["conversation_id"] is not None:
        data["conversation_id"] = str(data["conversation_id"])
    data["images"] = json.loads(data["images"] or "[]")
    return StoredMessage.model_validate(data)


class SQLiteChatStore(ChatStore):
    """SQLite-backed chat store.

    Ids are SQLite integer row ids exposed as strings. Deleting a character
    or conversation cascades through foreign keys.
    """

    def __init__(self, path: str | Path = "./charachat.db"):
        self._db_path = Path(path)
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._db_path)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._create_schema()
        logger.info("Chat store ready at %s", self._db_path)

    async def _create_schema(self) -> None:
        """Create database tables."""
        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS characters (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL DEFAULT 'default',
                name TEXT NOT NULL,
                avatar TEXT NOT NULL DEFAULT '/placeholder.svg',
                prompt TEXT NOT NULL DEFAULT '',
                model TEXT NOT NULL DEFAULT 'deepseek-chat',
                background TEXT,
                background_size TEXT NOT NULL DEFAULT 'cover',
                background_position TEXT NOT NULL DEFAULT 'center',
                background_repeat TEXT NOT NULL DEFAULT 'no-repeat',
                user_avatar TEXT NOT NULL DEFAULT '/placeholder-user.jpg',
                bubble_user_opacity REAL NOT NULL DEFAULT 1.0,
                bubble_ai_opacity REAL NOT NULL DEFAULT 1.0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS conversations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL DEFAULT 'default',
                character_id INTEGER NOT NULL,
                title TEXT NOT NULL DEFAULT 'New chat',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY (character_id) REFERENCES characters(id) ON DELETE CASCADE
            )
        """)

        await self._connection.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL DEFAULT 'default',
                character_id INTEGER NOT NULL,
                conversation_id INTEGER,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                images TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY (character_id) REFERENCES characters(id) ON DELETE CASCADE,
                FOREIGN KEY (conversation_id) REFERENCES conversations(id) ON DELETE CASCADE
            )
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_messages_owner
            ON messages(user_id, character_id, created_at)
        """)

        await self._connection.execute("""
            CREATE INDEX IF NOT EXISTS idx_messages_conversation
            ON messages(conversation_id)
        """)

        await self._connection.commit()

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    # Characters

    async def list_characters(self, user_id: str = DEFAULT_USER_ID) -> list[Character]:
        async with self._connection.execute(
            "SELECT * FROM characters WHERE user_id = ? ORDER BY created_at DESC, id DESC",
            (user_id,)
        ) as cursor:
            rows = await cursor.fetchall()
        return [_character_from_row(row) for row in rows]

    async def get_character(self, character_id: str, user_id: str = DEFAULT_USER_ID) -> Character | None:
        async with self._connection.execute(
            "SELECT * FROM characters WHERE id = ? AND user_id = ?",
            (character_id, user_id)
        ) as cursor:
            row = await cursor.fetchone()
        return _character_from_row(row) if row else None

    async def create_character(self, draft: CharacterDraft, user_id: str = DEFAULT_USER_ID) -> Character:
        fields = draft.changes()
        fields.setdefault("name", UNTITLED_CHARACTER)
        # Validate defaults through the model before writing
        template = Character(id="0", user_id=user_id, **fields)
        now = _timestamp()

        values = [getattr(template, column) for column in CHARACTER_COLUMNS]
        placeholders = ", ".join("?" for _ in range(len(CHARACTER_COLUMNS) + 3))
        cursor = await self._connection.execute(
            f"INSERT INTO characters (user_id, {', '.join(CHARACTER_COLUMNS)}, created_at, updated_at) "
            f"VALUES ({placeholders})",
            (user_id, *values, now, now)
        )
        await self._connection.commit()
        return await self.get_character(str(cursor.lastrowid), user_id)

    async def update_character(
        self,
        character_id: str,
        draft: CharacterDraft,
        user_id: str = DEFAULT_USER_ID
    ) -> Character | None:
        if await self.get_character(character_id, user_id) is None:
            return None

        changes = {k: v for k, v in draft.changes().items() if k in CHARACTER_COLUMNS}
        changes["updated_at"] = _timestamp()
        assignments = ", ".join(f"{column} = ?" for column in changes)
        await self._connection.execute(
            f"UPDATE characters SET {assignments} WHERE id = ?",
            (*changes.values(), character_id)
        )
        await self._connection.commit()
        return await self.get_character(character_id, user_id)

    async def delete_character(self, character_id: str, user_id: str = DEFAULT_USER_ID) -> bool:
        cursor = await self._connection.execute(
            "DELETE FROM characters WHERE id = ? AND user_id = ?",
            (character_id, user_id)
        )
        await self._connection.commit()
        return cursor.rowcount > 0

    # Conversations

    async def _get_conversation(self, conversation_id: str) -> Conversation | None:
        async with self._connection.execute(
            CONVERSATION_SELECT + " WHERE c.id = ?",
            (conversation_id,)
        ) as cursor:
            row = await cursor.fetchone()
        return _conversation_from_row(row) if row else None

    async def list_conversations(self, character_id: str, user_id: str = DEFAULT_USER_ID) -> list[Conversation]:
        async with self._connection.execute(
            CONVERSATION_SELECT
            + " WHERE c.character_id = ? AND c.user_id = ? ORDER BY c.updated_at DESC, c.id DESC",
            (character_id, user_id)
        ) as cursor:
            rows = await cursor.fetchall()
        return [_conversation_from_row(row) for row in rows]

    async def create_conversation(
        self,
        character_id: str,
        title: str = DEFAULT_CONVERSATION_TITLE,
        user_id: str = DEFAULT_USER_ID
    ) -> Conversation:
        now = _timestamp()
        cursor = await self._connection.execute("""
            INSERT INTO conversations (user_id, character_id, title, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
        """, (user_id, character_id, title, now, now))
        await self._connection.commit()
        return await self._get_conversation(str(cursor.lastrowid))

    async def rename_conversation(self, conversation_id: str, title: str) -> Conversation | None:
        cursor = await self._connection.execute(
            "UPDATE conversations SET title = ?, updated_at = ? WHERE id = ?",
            (title, _timestamp(), conversation_id)
        )
        await self._connection.commit()
        if cursor.rowcount == 0:
            return None
        return await self._get_conversation(conversation_id)

    async def delete_conversation(self, conversation_id: str) -> bool:
        cursor = await self._connection.execute(
            "DELETE FROM conversations WHERE id = ?",
            (conversation_id,)
        )
        await self._connection.commit()
        return cursor.rowcount > 0

    # Messages

    async def get_messages(
        self,
        user_id: str,
        character_id: str,
        conversation_id: str | None = None,
        limit: int = 50
    ) -> list[StoredMessage]:
        query = "SELECT * FROM messages WHERE user_id = ? AND character_id = ?"
        params: list = [user_id, character_id]
        if conversation_id is not None:
            query += " AND conversation_id = ?"
            params.append(conversation_id)
        query += " ORDER BY created_at ASC, id ASC LIMIT ?"
        params.append(limit)

        async with self._connection.execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [_message_from_row(row) for row in rows]

    async def create_message(
        self,
        content: str,
        role: Role,
        character_id: str,
        conversation_id: str | None = None,
        user_id: str = DEFAULT_USER_ID,
        images: list[str] | None = None
    ) -> StoredMessage:
        now = _timestamp()
        cursor = await self._connection.execute("""
            INSERT INTO messages
            (user_id, character_id, conversation_id, role, content, images, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            user_id,
            character_id,
            conversation_id,
            role,
            content,
            json.dumps(images or []),
            now,
            now
        ))

        if conversation_id is not None:
            await self._connection.execute(
                "UPDATE conversations SET updated_at = ? WHERE id = ?",
                (now, conversation_id)
            )

        await self._connection.commit()

        async with self._connection.execute(
            "SELECT * FROM messages WHERE id = ?",
            (cursor.lastrowid,)
        ) as select:
            row = await select.fetchone()
        return _message_from_row(row)

    async def delete_message(self, message_id: str) -> bool:
        cursor = await self._connection.execute(
            "DELETE FROM messages WHERE id = ?",
            (message_id,)
        )
        await self._connection.commit()
        return cursor.rowcount > 0

    async def clear_messages(
        self,
        user_id: str,
        character_id: str,
        conversation_id: str | None = None
    ) -> int:
        query = "DELETE FROM messages WHERE user_id = ? AND character_id = ?"
        params: list = [user_id, character_id]
        if conversation_id is not None:
            query += " AND conversation_id = ?"
            params.append(conversation_id)

        cursor = await self._connection.execute(query, params)
        await self._connection.commit()
        return cursor.rowcount

    @property
    def backend_type(self) -> str:
        return "sqlite"

    @property
    def db_path(self) -> Path:
        return self._db_path
