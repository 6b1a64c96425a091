"""Custom Textual widgets for the TUI.

Hides widget implementation details:
- Bubble rendering per sender, and in-place updates while a reply streams
- Input history navigation
- Character list selection
"""

from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.message import Message as TextualMessage
from textual.widgets import Button, OptionList, Static, TextArea
from textual.widgets.option_list import Option

from ..client.models import Message, Sender, TurnState
from ..store.models import Character

STATE_LABELS = {
    TurnState.IDLE: "ready",
    TurnState.USER_MESSAGE_APPENDED: "sending",
    TurnState.PERSISTING_USER: "saving message",
    TurnState.AWAITING_STREAM: "waiting for reply",
    TurnState.STREAMING: "replying",
    TurnState.PERSISTING_AI: "saving reply",
}


class MessageBubble(Vertical):
    """One message: header line, content, and attached image references."""

    def __init__(self, message: Message, character_name: str, **kwargs) -> None:
        if message.is_error:
            css_class = "error-message"
        elif message.sender == Sender.USER:
            css_class = "user-message"
        else:
            css_class = "ai-message"
        super().__init__(classes=f"chat-message {css_class}", **kwargs)
        self._message = message
        self._character_name = character_name

    def compose(self):
        author = "You" if self._message.sender == Sender.USER else self._character_name
        yield Static(
            f"{author} [{self._message.timestamp.strftime('%H:%M:%S')}]",
            classes="message-header",
            markup=False,
        )
        yield Static(self._message.content or "...", classes="message-content", markup=False)
        if self._message.image_refs:
            yield Static(
                "\n".join(f"[image] {ref}" for ref in self._message.image_refs),
                classes="message-images",
                markup=False,
            )

    def refresh_content(self) -> None:
        """Re-render the content from the (mutated) message."""
        self.query_one(".message-content", Static).update(self._message.content or "...")


class ChatHistoryWidget(VerticalScroll):
    """Scrollable conversation that mirrors the orchestrator's message list."""

    BORDER_TITLE = "Chat"
    ALLOW_SELECT = True

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._bubbles: dict[str, MessageBubble] = {}
        self._character_name = "Assistant"

    def set_character(self, character: Character) -> None:
        self._character_name = character.name
        self.border_title = character.name
        self.border_subtitle = character.model

    def sync(self, messages: list[Message]) -> None:
        """Rebuild the bubble list from a full message snapshot."""
        self.remove_children()
        self._bubbles = {}
        bubbles = []
        for message in messages:
            bubble = MessageBubble(message, self._character_name)
            self._bubbles[message.id] = bubble
            bubbles.append(bubble)
        if bubbles:
            self.mount_all(bubbles)
        self.scroll_end(animate=False)

    def update_message(self, message: Message) -> None:
        """Refresh one bubble in place."""
        bubble = self._bubbles.get(message.id)
        if bubble is None or not bubble.is_mounted:
            return
        bubble.refresh_content()
        self.scroll_end(animate=False)

    def set_streaming(self, message_id: str | None) -> None:
        for key, bubble in self._bubbles.items():
            bubble.set_class(key == message_id, "-streaming")


class StatusBar(Static):
    """One-line turn state indicator."""

    def show_state(self, state: TurnState) -> None:
        self.update(STATE_LABELS[state])
        self.set_class(state != TurnState.IDLE, "-busy")


class CharacterList(OptionList):
    """Selectable list of characters."""

    BORDER_TITLE = "Characters"

    def set_characters(self, characters: list[Character]) -> None:
        self.clear_options()
        self.add_options([Option(c.name, id=c.id) for c in characters])


class ChatInputBar(Horizontal):
    """Chat input bar with TextArea and Send button."""

    class Submitted(TextualMessage):
        """Posted when the user submits input."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index: int = -1

    def compose(self):
        text_area = TextArea(id="chat-input", show_line_numbers=False)
        text_area.cursor_blink = False
        yield text_area
        yield Button("Send", id="send-btn", variant="success").with_tooltip("Send message (Ctrl+J)")

    def on_mount(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        text_area.highlight_cursor_line = False
        text_area.focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            self._submit()

    def on_key(self, event) -> None:
        """Handle keyboard shortcuts.

        Terminals do not report modifiers with Enter, so Ctrl+J submits.
        """
        if event.key == "ctrl+j":
            self._submit()
            event.prevent_default()
            event.stop()
        elif event.key == "up" and self._cursor_at_start():
            self._navigate_history(-1)
            event.prevent_default()
            event.stop()
        elif event.key == "down" and self._cursor_at_end():
            self._navigate_history(1)
            event.prevent_default()
            event.stop()

    def _cursor_at_start(self) -> bool:
        return self.query_one("#chat-input", TextArea).cursor_location == (0, 0)

    def _cursor_at_end(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        lines = text_area.text.split("\n")
        return text_area.cursor_location == (len(lines) - 1, len(lines[-1]))

    def _navigate_history(self, direction: int) -> None:
        if not self._history:
            return
        text_area = self.query_one("#chat-input", TextArea)
        if direction < 0:
            if self._history_index == -1:
                self._history_index = len(self._history) - 1
            elif self._history_index > 0:
                self._history_index -= 1
        else:
            if self._history_index < len(self._history) - 1:
                self._history_index += 1
            else:
                self._history_index = -1
                text_area.text = ""
                return
        text_area.text = self._history[self._history_index]

    def _submit(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        value = text_area.text.strip()
        if value:
            if not self._history or self._history[-1] != value:
                self._history.append(value)
            self._history_index = -1
            text_area.text = ""
            self.post_message(self.Submitted(value))

    def set_text(self, value: str) -> None:
        """Replace the input text (used by reply drafting)."""
        text_area = self.query_one("#chat-input", TextArea)
        text_area.text = value
        text_area.focus()

    def focus_input(self) -> None:
        self.query_one("#chat-input", TextArea).focus()
