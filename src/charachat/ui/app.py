"""Main Textual TUI application.

Wires the widgets to a ChatOrchestrator talking to a running charachat server.
"""

import asyncio
import logging

import httpx
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Footer, Header, OptionList

from ..client import ChatApiClient, ChatOrchestrator, TurnState
from ..store.models import Character
from .callbacks import TUIListener
from .styles import APP_CSS
from .themes import PARLOR_NIGHT
from .widgets import CharacterList, ChatHistoryWidget, ChatInputBar, StatusBar

logger = logging.getLogger(__name__)


class CharachatApp(App):
    """Textual chat client."""

    CSS = APP_CSS
    TITLE = "Charachat"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("escape", "cancel_reply", "Cancel"),
        Binding("ctrl+r", "regenerate", "Regenerate"),
        Binding("ctrl+g", "compose", "Draft reply"),
        Binding("ctrl+k", "clear_chat", "Clear"),
    ]

    def __init__(
        self,
        api_url: str,
        default_model: str = "deepseek-chat",
        character_name: str | None = None,
    ) -> None:
        super().__init__()
        self._api_url = api_url
        self._default_model = default_model
        self._character_name = character_name
        self._api: ChatApiClient | None = None
        self._orchestrator: ChatOrchestrator | None = None
        self._characters: list[Character] = []
        self._character: Character | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield CharacterList(id="character-list")
        yield ChatHistoryWidget(id="chat-history")
        with Vertical(id="bottom-bar"):
            yield StatusBar("ready", id="status-bar")
            yield ChatInputBar(id="chat-input-bar")
        yield Footer()

    async def on_mount(self) -> None:
        self.register_theme(PARLOR_NIGHT)
        self.theme = "parlor-night"
        self.sub_title = self._api_url

        listener = TUIListener(
            self,
            self.query_one("#chat-history", ChatHistoryWidget),
            self.query_one("#status-bar", StatusBar),
        )
        self._api = ChatApiClient(self._api_url)
        self._orchestrator = ChatOrchestrator(self._api, listener, default_model=self._default_model)
        listener.orchestrator = self._orchestrator

        self._load_characters()

    async def on_unmount(self) -> None:
        if self._orchestrator is not None:
            self._orchestrator.cancel_current_request()
        if self._api is not None:
            await self._api.close()

    @work(exclusive=True, group="characters")
    async def _load_characters(self) -> None:
        try:
            self._characters = await self._api.list_characters()
        except httpx.HTTPError as e:
            logger.error("Could not list characters: %s", e)
            self.notify(f"Cannot reach {self._api_url}", severity="error", timeout=8)
            return

        self.query_one("#character-list", CharacterList).set_characters(self._characters)
        if not self._characters:
            return

        chosen = self._characters[0]
        if self._character_name:
            for character in self._characters:
                if character.name.lower() == self._character_name.lower():
                    chosen = character
                    break
        await self._select_character(chosen)

    async def _select_character(self, character: Character) -> None:
        self._character = character
        self.query_one("#chat-history", ChatHistoryWidget).set_character(character)
        await self._orchestrator.switch_conversation(character.id)
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        for character in self._characters:
            if character.id == event.option.id:
                self._switch_character(character)
                break

    @work(exclusive=True, group="characters")
    async def _switch_character(self, character: Character) -> None:
        await self._select_character(character)

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        if self._character is None:
            self.notify("Pick a character first", severity="warning")
            return
        self._send(event.value)

    @work(group="turns")
    async def _send(self, content: str) -> None:
        await self._orchestrator.send_message(content, self._character)

    def action_cancel_reply(self) -> None:
        if self._orchestrator is not None and self._orchestrator.state != TurnState.IDLE:
            self._orchestrator.cancel_current_request()

    def action_regenerate(self) -> None:
        if self._character is not None:
            self._regenerate()

    @work(group="turns")
    async def _regenerate(self) -> None:
        await self._orchestrator.regenerate_last_message(self._character)

    def action_compose(self) -> None:
        if self._character is not None:
            self._compose()

    @work(exclusive=True, group="compose")
    async def _compose(self) -> None:
        input_bar = self.query_one("#chat-input-bar", ChatInputBar)
        self.notify("Drafting a reply...", timeout=2)
        draft = await self._orchestrator.compose_reply(self._character, on_update=input_bar.set_text)
        if draft:
            input_bar.set_text(draft)

    def action_clear_chat(self) -> None:
        if self._character is not None:
            self._clear()

    @work(group="turns")
    async def _clear(self) -> None:
        outcome = await self._orchestrator.clear_conversation(self._character.id)
        if outcome.ok:
            self.notify("Conversation cleared", timeout=2)


async def run_textual_tui(
    api_url: str,
    default_model: str = "deepseek-chat",
    character_name: str | None = None,
) -> None:
    """Run the Textual TUI against a charachat server.

    Args:
        api_url: Server address
        default_model: Model used for reply drafting
        character_name: Character to open first (case-insensitive), else the newest
    """
    app = CharachatApp(api_url, default_model=default_model, character_name=character_name)
    try:
        await app.run_async()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
