"""CLI helper utilities."""

from flashdeck.cli.helpers.theme import (
    Colors,
    Icons,
    TableStyles,
    ThemedConsole,
    get_icon_mode_from_context,
    get_themed_console,
)


__all__ = [
    "Colors",
    "Icons",
    "TableStyles",
    "ThemedConsole",
    "get_icon_mode_from_context",
    "get_themed_console",
]
