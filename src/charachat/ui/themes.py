"""Theme definitions for the TUI.

This module hides the color palette. To add a theme, define it here and
register it in the app.
"""

from textual.theme import Theme

PARLOR_NIGHT = Theme(
    name="parlor-night",
    primary="#7aa2f7",      # Conversation frame
    secondary="#bb9af7",    # Character replies
    accent="#e0af68",       # Streaming / busy highlights
    foreground="#c0caf5",
    background="#16161e",
    success="#9ece6a",      # User messages
    warning="#ff9e64",
    error="#f7768e",        # Error bubbles
    surface="#1a1b26",
    panel="#1f2335",
    dark=True,
    variables={
        "border": "#3b4261",
        "border-blurred": "#292e42",
        "scrollbar": "#292e42",
        "scrollbar-hover": "#3b4261",
        "scrollbar-active": "#7aa2f7",
        "footer-key-foreground": "#7aa2f7",
    },
)
