"""Observer hooks the orchestrator calls as conversation state changes."""

from .models import Message, Notification, TurnState


class ChatListener:
    """No-op base listener; override the hooks you need.

    Hooks are called synchronously on the event loop, in order, and must not block.
    """

    def messages_changed(self) -> None:
        """The message list was replaced, or messages were added or removed."""

    def message_updated(self, message: Message) -> None:
        """One message's content changed in place (streaming AI draft)."""

    def state_changed(self, state: TurnState) -> None:
        """The turn state machine moved."""

    def notify(self, notification: Notification) -> None:
        """Show a transient notice."""
