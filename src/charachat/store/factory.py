"""Chat store selection by backend name."""

from pathlib import Path

from .base import ChatStore

STORE_BACKENDS = ("memory", "sqlite")


def create_chat_store(backend: str = "memory", path: str | Path | None = None) -> ChatStore:
    """Build the store named by ``backend`` (case-insensitive).

    ``path`` is the SQLite database file and is ignored by the in-memory
    store, so callers can pass their configured path unconditionally.

    Raises:
        ValueError: Unknown backend name
    """
    name = backend.strip().lower()

    if name == "memory":
        from .in_memory import InMemoryChatStore
        return InMemoryChatStore()

    if name == "sqlite":
        from .sqlite import SQLiteChatStore
        return SQLiteChatStore(path) if path is not None else SQLiteChatStore()

    raise ValueError(f"Unknown store backend {backend!r}; expected one of {', '.join(STORE_BACKENDS)}")
