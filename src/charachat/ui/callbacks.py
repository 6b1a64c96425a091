"""Listener bridging the chat orchestrator to Textual widgets.

Hides how orchestrator events become widget updates. The orchestrator runs
in async workers on the app's own event loop, so widgets are updated directly.
"""

from typing import TYPE_CHECKING

from ..client import ChatListener, Message, Notification, NotificationLevel, TurnState

if TYPE_CHECKING:
    from textual.app import App

    from ..client import ChatOrchestrator
    from .widgets import ChatHistoryWidget, StatusBar


class TUIListener(ChatListener):
    """Forwards orchestrator events to the chat history, status bar and toasts."""

    def __init__(
        self,
        app: "App",
        history: "ChatHistoryWidget",
        status: "StatusBar",
    ) -> None:
        self.app = app
        self.history = history
        self.status = status
        self.orchestrator: "ChatOrchestrator | None" = None

    def messages_changed(self) -> None:
        if self.orchestrator is not None:
            self.history.sync(self.orchestrator.messages)

    def message_updated(self, message: Message) -> None:
        self.history.update_message(message)
        # Only the draft is updated while streaming; it need not be the last bubble
        if self.orchestrator is not None and self.orchestrator.state == TurnState.STREAMING:
            self.history.set_streaming(message.id)

    def state_changed(self, state: TurnState) -> None:
        self.status.show_state(state)
        if state == TurnState.IDLE:
            self.history.set_streaming(None)

    def notify(self, notification: Notification) -> None:
        severity = "error" if notification.level == NotificationLevel.ERROR else "information"
        text = notification.title
        if notification.detail:
            text = f"{notification.title}: {notification.detail[:120]}"
        self.app.notify(text, severity=severity, timeout=5)
