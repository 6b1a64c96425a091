"""Pytest configuration and shared fixtures."""
from typing import Any

import httpx
import pytest

from charachat.blobs import FilesystemBlobStore
from charachat.client import ChatApiClient, ChatListener, Message, Notification, TurnState
from charachat.config import Settings
from charachat.llm import BackendRegistry, LLMProvider, ProviderAdapter, StreamingResponse
from charachat.llm.models import ChatMessage
from charachat.server import create_app
from charachat.store import CharacterDraft
from charachat.store.in_memory import InMemoryChatStore

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


class FakeProvider(LLMProvider):
    """Provider that replays scripted fragments, or fails on first read."""

    def __init__(self, fragments: list[str] | None = None, error: Exception | None = None):
        self.fragments = fragments or []
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        **kwargs: Any
    ) -> StreamingResponse:
        self.calls.append({"messages": messages, "model": model, "temperature": temperature})
        return StreamingResponse(self._generate())

    async def _generate(self):
        if self.error is not None:
            raise self.error
        for fragment in self.fragments:
            yield fragment

    async def close(self) -> None:
        self.closed = True


class ProviderScript:
    """provider_factory stand-in that hands out one FakeProvider per request."""

    def __init__(self, fragments: list[str] | None = None, error: Exception | None = None):
        self.fragments = fragments or []
        self.error = error
        self.created: list[tuple[Any, dict[str, Any], FakeProvider]] = []

    def __call__(self, kind, **config) -> FakeProvider:
        provider = FakeProvider(list(self.fragments), self.error)
        self.created.append((kind, config, provider))
        return provider

    @property
    def last(self) -> FakeProvider:
        return self.created[-1][2]


class RecordingListener(ChatListener):
    """Listener that records every callback."""

    def __init__(self) -> None:
        self.updates: list[str] = []
        self.states: list[TurnState] = []
        self.notifications: list[Notification] = []
        self.changes = 0

    def messages_changed(self) -> None:
        self.changes += 1

    def message_updated(self, message: Message) -> None:
        self.updates.append(message.content)

    def state_changed(self, state: TurnState) -> None:
        self.states.append(state)

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with a primary credential and throwaway paths."""
    return Settings(
        deepseek_api_key="sk-test",
        store_backend="memory",
        db_path=str(tmp_path / "chat.db"),
        upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def script() -> ProviderScript:
    return ProviderScript(["Hi", " there", "!"])


@pytest.fixture
def store() -> InMemoryChatStore:
    return InMemoryChatStore()


@pytest.fixture
def blobs(tmp_path) -> FilesystemBlobStore:
    return FilesystemBlobStore(tmp_path / "uploads")


@pytest.fixture
def app(settings, store, blobs, script):
    adapter = ProviderAdapter(BackendRegistry.from_settings(settings), provider_factory=script)
    return create_app(settings, store=store, blobs=blobs, adapter=adapter)


@pytest.fixture
async def http(app):
    """httpx client wired straight to the ASGI app."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def api(http) -> ChatApiClient:
    return ChatApiClient(client=http)


@pytest.fixture
async def character(store):
    return await store.create_character(CharacterDraft(name="Tester", prompt="You are terse."))


@pytest.fixture
def make_script():
    """Factory for provider scripts with custom fragments or errors."""
    return ProviderScript


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()
