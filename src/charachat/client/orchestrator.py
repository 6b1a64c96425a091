"""Client-side conversation orchestration.

Hidden design decisions:
- Turn state machine and the single in-flight request per orchestrator
- Supersession: a new turn cancels the current one and waits for it to settle
- Draft lifecycle: created empty, replaced wholesale per decoded update,
  persisted once on completion, removed when it ends empty
- History shaping: error bubbles are never replayed, and only the newest
  user turn carries image references
- Failure containment: errors become one error bubble and one notification;
  every public operation returns a TurnOutcome instead of raising
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import httpx

from ..errors import CancellationSignal, ConfigurationError, NoTargetError, ProviderError
from ..store.models import Character, StoredMessage
from ..streaming import SSEDecoder
from .api import ChatApiClient
from .cancellation import CancellationToken
from .listener import ChatListener
from .models import (
    Message,
    Notification,
    NotificationLevel,
    Sender,
    TurnOutcome,
    TurnState,
    TurnStatus,
    role_from_sender,
    sender_from_role,
)

logger = logging.getLogger(__name__)

ERROR_BUBBLE_TEXT = (
    "Sorry, something went wrong while sending your message. "
    "Check your connection or try again later."
)

COMPOSE_PROMPT = """You are a reply-drafting assistant. Using the conversation so far, draft the next message the user will send.

Rules:
1) You write as the user. The other party is the assistant, playing the character "{name}".
2) Write in the first person and match the user's wording and tone; never present yourself as an AI.
3) Output only the message body: no "User:" or "Assistant:" labels, no explanations, no greetings or sign-offs.
4) If useful, briefly acknowledge the other party's point before responding.
5) If the history reveals the user's name or identity, keep writing as that person.
Write 2-4 substantive sentences; where it fits, end with one natural follow-up question."""

PERSIST_FAILURES = (httpx.HTTPError, ValueError)


class ChatOrchestrator:
    """Runs conversational turns against the chat API.

    Usage:
        async with ChatApiClient(url) as api:
            chat = ChatOrchestrator(api, listener=my_listener)
            await chat.load_messages(character.id)
            outcome = await chat.send_message("Hello", character)
    """

    def __init__(
        self,
        api: ChatApiClient,
        listener: ChatListener | None = None,
        default_model: str = "deepseek-chat",
        history_limit: int = 50,
    ):
        """Initialize the orchestrator.

        Args:
            api: Chat API client used for streaming and persistence
            listener: Receives state, message and notification callbacks
            default_model: Model used for reply drafting
            history_limit: Messages loaded per conversation
        """
        self._api = api
        self._listener = listener or ChatListener()
        self._default_model = default_model
        self._history_limit = history_limit

        self._messages: list[Message] = []
        self._state = TurnState.IDLE
        self._token: CancellationToken | None = None
        self._idle = asyncio.Event()
        self._idle.set()

        self._character_id: str | None = None
        self._conversation_id: str | None = None

    @property
    def messages(self) -> list[Message]:
        """Snapshot of the local conversation."""
        return list(self._messages)

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def busy(self) -> bool:
        return not self._idle.is_set()

    @property
    def conversation_id(self) -> str | None:
        return self._conversation_id

    # Turn bookkeeping

    def _set_state(self, state: TurnState) -> None:
        if state != self._state:
            self._state = state
            self._listener.state_changed(state)

    async def _begin_turn(self) -> CancellationToken:
        while not self._idle.is_set():
            if self._token is not None:
                logger.info("Superseding in-flight turn")
                self._token.cancel()
            await self._idle.wait()

        self._idle.clear()
        token = CancellationToken()
        self._token = token
        return token

    def _end_turn(self, token: CancellationToken) -> None:
        if self._token is token:
            self._token = None
        self._set_state(TurnState.IDLE)
        self._idle.set()

    def cancel_current_request(self) -> None:
        """Cancel the in-flight request, if any. Idempotent."""
        if self._token is not None:
            self._token.cancel()

    # Local message list

    def _append(self, message: Message) -> None:
        self._messages.append(message)
        self._listener.messages_changed()

    def _remove(self, message: Message) -> None:
        if message in self._messages:
            self._messages.remove(message)
            self._listener.messages_changed()

    def _apply_update(self, draft: Message, content: str) -> None:
        draft.content = content
        self._listener.message_updated(draft)

    def _notify(self, title: str, detail: str = "", level: NotificationLevel = NotificationLevel.INFO) -> None:
        self._listener.notify(Notification(title=title, detail=detail, level=level))

    def build_history(self, upto: Message | None = None) -> list[dict[str, Any]]:
        """Shape local messages into the chat request history.

        Args:
            upto: Last message to include (inclusive); defaults to the whole list

        Returns:
            ``{role, content, imageUrls?}`` turns. Error bubbles and empty
            drafts are skipped; only the newest user turn keeps its images.
        """
        selected: list[Message] = []
        for message in self._messages:
            if not message.is_error and (message.content or message.image_refs):
                selected.append(message)
            if message is upto:
                break

        newest_user = max(
            (i for i, m in enumerate(selected) if m.sender == Sender.USER),
            default=None,
        )

        history: list[dict[str, Any]] = []
        for i, message in enumerate(selected):
            turn: dict[str, Any] = {"role": role_from_sender(message.sender), "content": message.content}
            if i == newest_user and message.image_refs:
                turn["imageUrls"] = list(message.image_refs)
            history.append(turn)
        return history

    # Persistence

    async def _persist(self, message: Message) -> bool:
        """Save a message; failures are logged and reported as False."""
        try:
            record = await self._api.create_message(
                content=message.content,
                role=role_from_sender(message.sender),
                character_id=message.character_id,
                conversation_id=message.conversation_id,
                images=message.image_refs,
            )
        except PERSIST_FAILURES as e:
            logger.warning("Failed to persist %s message %s: %s", message.sender.value, message.id, e)
            return False
        message.record_id = record.id
        return True

    # Streaming

    async def _request_stream(
        self,
        history: list[dict[str, Any]],
        character: dict[str, Any],
        on_update: Callable[[str], None],
        model: str | None = None,
        track_state: bool = True,
    ) -> str:
        decoder = SSEDecoder(on_update)
        async for chunk in self._api.stream_chat(history, character, model=model):
            if track_state and self._state == TurnState.AWAITING_STREAM:
                self._set_state(TurnState.STREAMING)
            decoder.feed(chunk)
        decoder.finish()
        return decoder.content

    async def _stream_into_draft(
        self,
        token: CancellationToken,
        draft: Message,
        history: list[dict[str, Any]],
        character: Character,
    ) -> TurnOutcome:
        """Stream a reply into ``draft`` and persist it."""
        self._set_state(TurnState.AWAITING_STREAM)
        try:
            await token.run(self._request_stream(
                history,
                {"prompt": character.prompt, "model": character.model},
                lambda content: self._apply_update(draft, content),
            ))
        except CancellationSignal:
            logger.info("Turn cancelled after %d characters", len(draft.content))
            if not draft.content:
                self._remove(draft)
                return TurnOutcome(TurnStatus.CANCELLED)
            return TurnOutcome(TurnStatus.CANCELLED, message=draft)
        except (ConfigurationError, ProviderError, httpx.HTTPError) as e:
            return self._fail(draft, e)

        if not draft.content:
            logger.warning("Backend returned an empty reply")
            self._remove(draft)
            return TurnOutcome(TurnStatus.COMPLETED)

        self._set_state(TurnState.PERSISTING_AI)
        await self._persist(draft)
        return TurnOutcome(TurnStatus.COMPLETED, message=draft)

    def _fail(self, draft: Message, error: Exception) -> TurnOutcome:
        logger.error("Chat turn failed: %s", error)
        if not draft.content:
            self._remove(draft)

        bubble = Message(
            content=ERROR_BUBBLE_TEXT,
            sender=Sender.AI,
            character_id=draft.character_id,
            conversation_id=draft.conversation_id,
            is_error=True,
        )
        self._append(bubble)
        self._notify("Send failed", str(error), NotificationLevel.ERROR)
        return TurnOutcome(TurnStatus.FAILED, message=bubble, error=error)

    # Operations

    async def send_message(
        self,
        content: str,
        character: Character,
        image_refs: list[str] | None = None,
        conversation_id: str | None = None,
    ) -> TurnOutcome:
        """Send a user message and stream the character's reply.

        A turn already in flight is superseded. Blank content without images
        is ignored.
        """
        if not content.strip() and not image_refs:
            return TurnOutcome(TurnStatus.SKIPPED)

        token = await self._begin_turn()
        persist_user: asyncio.Task | None = None
        try:
            if conversation_id is None and self._character_id == character.id:
                conversation_id = self._conversation_id

            user_message = Message(
                content=content.strip(),
                sender=Sender.USER,
                character_id=character.id,
                conversation_id=conversation_id,
                image_refs=list(image_refs) if image_refs else None,
            )
            self._append(user_message)
            self._set_state(TurnState.USER_MESSAGE_APPENDED)
            history = self.build_history()

            self._set_state(TurnState.PERSISTING_USER)
            persist_user = asyncio.create_task(self._persist(user_message))

            draft = Message(
                content="",
                sender=Sender.AI,
                character_id=character.id,
                conversation_id=conversation_id,
            )
            self._append(draft)
            return await self._stream_into_draft(token, draft, history, character)
        finally:
            if persist_user is not None:
                await persist_user
            self._end_turn(token)

    async def regenerate_last_message(self, character: Character) -> TurnOutcome:
        """Replace the latest AI reply with a freshly streamed one.

        The old reply's record is deleted; the new content streams into the
        same local message and is saved as a new record. The user message it
        answers is left untouched.
        """
        token = await self._begin_turn()
        try:
            try:
                target, prompt = self._regenerate_target()
            except NoTargetError as e:
                self._notify("Nothing to regenerate", str(e))
                return TurnOutcome(TurnStatus.SKIPPED, error=e)

            if target.record_id is not None:
                try:
                    await self._api.delete_message(target.record_id)
                except PERSIST_FAILURES as e:
                    logger.warning("Failed to delete message record %s: %s", target.record_id, e)
                target.record_id = None

            self._apply_update(target, "")
            history = self.build_history(upto=prompt)
            return await self._stream_into_draft(token, target, history, character)
        finally:
            self._end_turn(token)

    def _regenerate_target(self) -> tuple[Message, Message]:
        """Find the newest AI reply and the closest user message before it."""
        for i in range(len(self._messages) - 1, -1, -1):
            candidate = self._messages[i]
            if candidate.sender != Sender.AI or candidate.is_error:
                continue
            for j in range(i - 1, -1, -1):
                if self._messages[j].sender == Sender.USER:
                    return candidate, self._messages[j]
            break
        raise NoTargetError("No AI reply with a preceding user message")

    async def load_messages(self, character_id: str, conversation_id: str | None = None) -> TurnOutcome:
        """Replace the local conversation with stored history."""
        try:
            records = await self._api.get_messages(character_id, conversation_id, self._history_limit)
        except PERSIST_FAILURES as e:
            logger.error("Failed to load messages for character %s: %s", character_id, e)
            self._notify("Load failed", "Could not load message history", NotificationLevel.ERROR)
            return TurnOutcome(TurnStatus.FAILED, error=e)

        self._character_id = character_id
        self._conversation_id = conversation_id
        self._messages = [self._from_record(record) for record in records]
        self._listener.messages_changed()
        return TurnOutcome(TurnStatus.COMPLETED)

    async def switch_conversation(self, character_id: str, conversation_id: str | None = None) -> TurnOutcome:
        """Cancel any in-flight turn and load another conversation.

        The load holds the turn slot, so a send issued meanwhile waits for it.
        """
        token = await self._begin_turn()
        try:
            return await self.load_messages(character_id, conversation_id)
        finally:
            self._end_turn(token)

    @staticmethod
    def _from_record(record: StoredMessage) -> Message:
        return Message(
            id=record.id,
            record_id=record.id,
            content=record.content,
            sender=sender_from_role(record.role),
            character_id=record.character_id,
            conversation_id=record.conversation_id,
            image_refs=record.images or None,
            timestamp=record.created_at,
        )

    async def clear_conversation(self, character_id: str, conversation_id: str | None = None) -> TurnOutcome:
        """Delete stored messages for a conversation and clear the local list."""
        token = await self._begin_turn()
        try:
            try:
                removed = await self._api.clear_messages(character_id, conversation_id)
            except PERSIST_FAILURES as e:
                logger.error("Failed to clear messages for character %s: %s", character_id, e)
                self._notify("Clear failed", str(e), NotificationLevel.ERROR)
                return TurnOutcome(TurnStatus.FAILED, error=e)

            logger.info("Cleared %d stored messages", removed)
            self._messages = []
            self._listener.messages_changed()
            return TurnOutcome(TurnStatus.COMPLETED)
        finally:
            self._end_turn(token)

    async def compose_reply(
        self,
        character: Character,
        on_update: Callable[[str], None] | None = None,
    ) -> str:
        """Draft the user's next message from the current history.

        Runs beside the turn machine and never touches the message list.

        Returns:
            The drafted text, or an empty string on failure
        """
        history = [
            {"role": role_from_sender(m.sender), "content": m.content}
            for m in self._messages
            if not m.is_error and m.content
        ]
        prompt = COMPOSE_PROMPT.format(name=character.name)

        try:
            draft = await self._request_stream(
                history,
                {"prompt": prompt},
                on_update or (lambda content: None),
                model=self._default_model,
                track_state=False,
            )
        except (ConfigurationError, ProviderError, httpx.HTTPError) as e:
            logger.error("Reply drafting failed: %s", e)
            self._notify("Drafting failed", str(e), NotificationLevel.ERROR)
            return ""

        if not draft.strip():
            self._notify("Drafting failed", "The model returned no content", NotificationLevel.ERROR)
            return ""
        return draft
