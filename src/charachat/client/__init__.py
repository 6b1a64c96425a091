"""Chat client: API access, cancellation and turn orchestration."""

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
from .orchestrator import ChatOrchestrator

__all__ = [
    "CancellationToken",
    "ChatApiClient",
    "ChatListener",
    "ChatOrchestrator",
    "Message",
    "Notification",
    "NotificationLevel",
    "Sender",
    "TurnOutcome",
    "TurnState",
    "TurnStatus",
    "role_from_sender",
    "sender_from_role",
]
