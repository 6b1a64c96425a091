"""Data models for the chat client.

Hides the client-side representation of messages and turn bookkeeping.
The client speaks in senders (``user`` / ``ai``); the store and the API speak
in roles (``user`` / ``assistant``).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import uuid4


class Sender(str, Enum):
    """Who a locally displayed message belongs to."""

    USER = "user"
    AI = "ai"


_ROLE_BY_SENDER = {Sender.USER: "user", Sender.AI: "assistant"}
_SENDER_BY_ROLE = {role: sender for sender, role in _ROLE_BY_SENDER.items()}


def role_from_sender(sender: Sender) -> str:
    """Map a sender onto the store/API role vocabulary."""
    return _ROLE_BY_SENDER[sender]


def sender_from_role(role: str) -> Sender:
    """Map a store/API role onto the sender vocabulary.

    Raises:
        ValueError: For roles other than ``user`` and ``assistant``
    """
    try:
        return _SENDER_BY_ROLE[role]
    except KeyError:
        raise ValueError(f"Unknown message role: {role!r}") from None


@dataclass
class Message:
    """A message shown in the conversation.

    An AI draft's content is replaced wholesale on every decoded update.
    """

    content: str
    sender: Sender
    character_id: str
    conversation_id: str | None = None
    image_refs: list[str] | None = None
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.now)
    record_id: str | None = None  # Store id once persisted
    is_error: bool = False        # Synthetic error bubble, never persisted or replayed


class TurnState(str, Enum):
    """Phases of one conversational turn."""

    IDLE = "idle"
    USER_MESSAGE_APPENDED = "user_message_appended"
    PERSISTING_USER = "persisting_user"
    AWAITING_STREAM = "awaiting_stream"
    STREAMING = "streaming"
    PERSISTING_AI = "persisting_ai"


class TurnStatus(str, Enum):
    """How an orchestrator operation ended."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"  # Token cancelled; not an error
    FAILED = "failed"        # Error bubble and notification were emitted
    SKIPPED = "skipped"      # Nothing to do (blank input, no regenerate target)


@dataclass(frozen=True)
class TurnOutcome:
    """Result of one orchestrator operation."""

    status: TurnStatus
    message: Message | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status == TurnStatus.COMPLETED


class NotificationLevel(str, Enum):
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A transient user-facing notice (toast)."""

    title: str
    detail: str = ""
    level: NotificationLevel = NotificationLevel.INFO
