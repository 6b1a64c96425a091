"""Tests for the TUI listener, with recording stand-ins for the widgets."""
from types import SimpleNamespace

from charachat.client import Message, Notification, NotificationLevel, Sender, TurnState
from charachat.ui.callbacks import TUIListener


class RecordingHistory:
    def __init__(self):
        self.updated: list[str] = []
        self.highlighted: list[str | None] = []

    def sync(self, messages):
        pass

    def update_message(self, message):
        self.updated.append(message.id)

    def set_streaming(self, message_id):
        self.highlighted.append(message_id)


class RecordingStatus:
    def __init__(self):
        self.states: list[TurnState] = []

    def show_state(self, state):
        self.states.append(state)


def _listener(state: TurnState, messages: list[Message]):
    app = SimpleNamespace(toasts=[])
    app.notify = lambda text, severity, timeout: app.toasts.append((text, severity))
    history = RecordingHistory()
    listener = TUIListener(app, history, RecordingStatus())
    listener.orchestrator = SimpleNamespace(state=state, messages=messages)
    return listener, history, app


class TestTUIListener:
    """Tests for TUIListener."""

    def test_highlights_streamed_message_not_last_bubble(self):
        """Test a regenerated reply followed by an error bubble is the one highlighted."""
        user = Message(content="A", sender=Sender.USER, character_id="1")
        target = Message(content="", sender=Sender.AI, character_id="1")
        bubble = Message(content="oops", sender=Sender.AI, character_id="1", is_error=True)
        listener, history, _ = _listener(TurnState.STREAMING, [user, target, bubble])

        target.content = "C"
        listener.message_updated(target)

        assert history.updated == [target.id]
        assert history.highlighted == [target.id]

    def test_no_highlight_outside_streaming(self):
        """Test updates before the stream starts do not highlight, and idle clears it."""
        message = Message(content="", sender=Sender.AI, character_id="1")
        listener, history, _ = _listener(TurnState.IDLE, [message])

        listener.message_updated(message)
        listener.state_changed(TurnState.IDLE)

        assert history.highlighted == [None]
        assert listener.status.states == [TurnState.IDLE]

    def test_error_notification_becomes_error_toast(self):
        """Test notification level maps onto toast severity."""
        listener, _, app = _listener(TurnState.IDLE, [])
        listener.notify(Notification(title="Send failed", detail="boom", level=NotificationLevel.ERROR))
        assert app.toasts == [("Send failed: boom", "error")]
