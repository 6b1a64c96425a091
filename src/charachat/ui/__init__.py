"""Terminal UI module for charachat.

Module structure (each module hides a design decision):
- widgets.py: Custom widgets (message bubbles, input history, character list)
- styles.py: CSS styling (layout decisions)
- themes.py: Color palette
- callbacks.py: Orchestrator integration (how the TUI receives updates)
- app.py: Application orchestration (user interaction flow)
"""

from .app import CharachatApp, run_textual_tui
from .callbacks import TUIListener
from .widgets import ChatHistoryWidget, ChatInputBar

__all__ = [
    "CharachatApp",
    "ChatHistoryWidget",
    "ChatInputBar",
    "TUIListener",
    "run_textual_tui",
]
