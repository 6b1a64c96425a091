"""HTTP client for the charachat API.

Hidden design decisions:
- httpx.AsyncClient lifecycle (owned or injected)
- Translation of chat endpoint failures into ConfigurationError / ProviderError
- JSON envelope unwrapping for the persistence routes
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from ..errors import ConfigurationError, ProviderError
from ..store.models import DEFAULT_USER_ID, Character, Conversation, StoredMessage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(10.0, read=120.0)


def _error_from_response(response: httpx.Response) -> Exception:
    """Build the exception for a failed ``/api/chat`` call (body already read)."""
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        message = str(payload.get("error") or f"Chat request failed with HTTP {response.status_code}")
        if payload.get("kind") == "configuration":
            return ConfigurationError(message)
        if payload.get("kind") == "provider":
            return ProviderError(
                message,
                status=payload.get("status") or response.status_code,
                body=str(payload.get("body") or ""),
            )

    return ProviderError(
        f"Chat request failed with HTTP {response.status_code}",
        status=response.status_code,
        body=response.text,
    )


class ChatApiClient:
    """Async client for the chat and persistence routes.

    Usage:
        async with ChatApiClient("http://127.0.0.1:8000") as api:
            async for chunk in api.stream_chat(history, {"prompt": "..."}):
                ...
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8000",
        user_id: str = DEFAULT_USER_ID,
        client: httpx.AsyncClient | None = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ):
        """Initialize the client.

        Args:
            base_url: Server address
            user_id: User scope for persistence calls
            client: Pre-built httpx client (its base_url is used as is)
            timeout: Request timeout for an owned client
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._user_id = user_id

    @property
    def user_id(self) -> str:
        return self._user_id

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ChatApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def stream_chat(
        self,
        messages: list[dict[str, Any]],
        character: dict[str, Any],
        model: str | None = None,
    ) -> AsyncIterator[bytes]:
        """POST a chat request and yield raw response chunks as they arrive.

        Raises:
            ConfigurationError: The server reports a missing backend credential
            ProviderError: The backend failed, or the server could not be reached
        """
        body: dict[str, Any] = {"messages": messages, "character": character}
        if model:
            body["model"] = model

        try:
            async with self._client.stream("POST", "/api/chat", json=body) as response:
                if response.status_code >= 400:
                    await response.aread()
                    raise _error_from_response(response)
                async for chunk in response.aiter_bytes():
                    yield chunk
        except httpx.TransportError as e:
            raise ProviderError(f"Could not reach chat server: {e}", status=None, body=str(e)) from e

    async def _json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        response = await self._client.request(method, url, **kwargs)
        response.raise_for_status()
        return response.json()

    async def get_messages(
        self,
        character_id: str,
        conversation_id: str | None = None,
        limit: int = 50,
    ) -> list[StoredMessage]:
        params: dict[str, Any] = {"userId": self._user_id, "characterId": character_id, "limit": limit}
        if conversation_id:
            params["conversationId"] = conversation_id
        data = await self._json("GET", "/api/messages", params=params)
        return [StoredMessage.model_validate(m) for m in data.get("messages", [])]

    async def create_message(
        self,
        content: str,
        role: str,
        character_id: str,
        conversation_id: str | None = None,
        images: list[str] | None = None,
    ) -> StoredMessage:
        body = {
            "content": content,
            "role": role,
            "characterId": character_id,
            "conversationId": conversation_id,
            "userId": self._user_id,
            "images": images,
        }
        data = await self._json("POST", "/api/messages", json=body)
        return StoredMessage.model_validate(data["message"])

    async def delete_message(self, message_id: str) -> bool:
        response = await self._client.delete(f"/api/messages/{message_id}")
        if response.status_code == 404:
            return False
        response.raise_for_status()
        return True

    async def clear_messages(self, character_id: str, conversation_id: str | None = None) -> int:
        params: dict[str, Any] = {"userId": self._user_id, "characterId": character_id}
        if conversation_id:
            params["conversationId"] = conversation_id
        data = await self._json("DELETE", "/api/messages", params=params)
        return int(data.get("removed", 0))

    async def list_characters(self) -> list[Character]:
        data = await self._json("GET", "/api/characters", params={"userId": self._user_id})
        return [Character.model_validate(c) for c in data.get("characters", [])]

    async def list_conversations(self, character_id: str) -> list[Conversation]:
        data = await self._json(
            "GET", "/api/conversations", params={"userId": self._user_id, "characterId": character_id}
        )
        return [Conversation.model_validate(c) for c in data.get("conversations", [])]

    async def create_conversation(self, character_id: str, title: str | None = None) -> Conversation:
        body: dict[str, Any] = {"characterId": character_id, "userId": self._user_id}
        if title:
            body["title"] = title
        data = await self._json("POST", "/api/conversations", json=body)
        return Conversation.model_validate(data["conversation"])

    async def upload_image(self, data: bytes, filename: str, content_type: str, kind: str = "chat") -> str:
        """Upload an image and return its reference URL."""
        payload = await self._json(
            "POST",
            "/api/upload",
            files={"file": (filename, data, content_type)},
            data={"type": kind},
        )
        logger.debug("Uploaded %s as %s", filename, payload["url"])
        return payload["url"]
