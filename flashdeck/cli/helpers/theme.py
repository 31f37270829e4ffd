"""Theme system for consistent Rich styling across CLI commands."""

from typing import Any

from rich.console import Console
from rich.table import Table
from rich.theme import Theme


class Colors:
    """Standardized color palette for CLI output."""

    # Status colors
    SUCCESS = "bold green"
    ERROR = "bold red"
    WARNING = "bold yellow"
    INFO = "bold blue"

    # UI element colors
    PRIMARY = "cyan"
    SECONDARY = "blue"
    ACCENT = "magenta"
    MUTED = "dim"

    # Text colors
    HEADER = "bold cyan"
    HIGHLIGHT = "bold white"
    NORMAL = "white"


class Icons:
    """Icon set with text fallbacks for terminals without emoji."""

    SUCCESS = "✅"
    ERROR = "❌"
    WARNING = "⚠️"
    INFO = "ℹ️"
    BULLET = "•"
    ARROW = "→"
    DEVICE = "🔌"
    FIRMWARE = "🔧"
    CONFIG = "⚙️"
    FLASH = "⚡"

    _TEXT_FALLBACKS = {
        "SUCCESS": "",
        "ERROR": "",
        "WARNING": "!",
        "INFO": "i",
        "BULLET": "•",
        "ARROW": "→",
        "DEVICE": "",
        "FIRMWARE": "",
        "CONFIG": "",
        "FLASH": "",
    }

    @classmethod
    def get_icon(cls, icon_name: str, icon_mode: str = "emoji") -> str:
        """Get icon based on the specified mode ("emoji" or "text")."""
        if icon_mode == "emoji":
            return str(getattr(cls, icon_name, ""))
        return cls._TEXT_FALLBACKS.get(icon_name, f"[{icon_name}]")

    @classmethod
    def format_with_icon(cls, icon_name: str, text: str, icon_mode: str = "emoji") -> str:
        """Prefix ``text`` with an icon, without a stray space when the icon is empty."""
        icon = cls.get_icon(icon_name, icon_mode)
        return f"{icon} {text}" if icon else text


FLASHDECK_THEME = Theme(
    {
        "success": Colors.SUCCESS,
        "error": Colors.ERROR,
        "warning": Colors.WARNING,
        "info": Colors.INFO,
        "primary": Colors.PRIMARY,
        "secondary": Colors.SECONDARY,
        "accent": Colors.ACCENT,
        "muted": Colors.MUTED,
        "header": Colors.HEADER,
        "highlight": Colors.HIGHLIGHT,
    }
)


class ThemedConsole:
    """Console wrapper with the flashdeck theme applied."""

    def __init__(self, icon_mode: str = "emoji", console: Console | None = None) -> None:
        self.console = console or Console(theme=FLASHDECK_THEME)
        self.icon_mode = icon_mode

    def print_success(self, message: str) -> None:
        """Print success message with icon and styling."""
        text = Icons.format_with_icon("SUCCESS", message, self.icon_mode)
        self.console.print(text, style="success")

    def print_error(self, message: str) -> None:
        """Print error message with icon and styling."""
        text = Icons.format_with_icon("ERROR", message, self.icon_mode)
        self.console.print(text, style="error")

    def print_warning(self, message: str) -> None:
        """Print warning message with icon and styling."""
        text = Icons.format_with_icon("WARNING", message, self.icon_mode)
        self.console.print(text, style="warning")

    def print_info(self, message: str) -> None:
        """Print info message with icon and styling."""
        text = Icons.format_with_icon("INFO", message, self.icon_mode)
        self.console.print(text, style="info")

    def print_list_item(self, message: str, indent: int = 1) -> None:
        spacing = "  " * indent
        bullet = Icons.get_icon("BULLET", self.icon_mode)
        self.console.print(f"{spacing}{bullet} {message}", style="primary")


class TableStyles:
    """Predefined table styling templates."""

    @staticmethod
    def create_basic_table(title: str = "", icon: str = "", icon_mode: str = "emoji") -> Table:
        full_title = Icons.format_with_icon(icon, title, icon_mode) if icon and title else title
        return Table(
            title=full_title,
            show_header=True,
            header_style=Colors.HEADER,
            border_style=Colors.SECONDARY,
        )

    @staticmethod
    def create_port_table(icon_mode: str = "emoji") -> Table:
        """Create table for serial port listings."""
        table = TableStyles.create_basic_table("Serial Ports", "DEVICE", icon_mode)
        table.add_column("Port", style=Colors.PRIMARY, no_wrap=True)
        table.add_column("Type", style=Colors.ACCENT)
        table.add_column("Description", style=Colors.NORMAL)
        table.add_column("Manufacturer", style=Colors.MUTED)
        table.add_column("VID:PID", style=Colors.MUTED)
        return table

    @staticmethod
    def create_firmware_table(icon_mode: str = "emoji") -> Table:
        """Create table for firmware catalog listings."""
        table = TableStyles.create_basic_table("Firmware", "FIRMWARE", icon_mode)
        table.add_column("Role", style=Colors.PRIMARY, no_wrap=True)
        table.add_column("Version", style=Colors.ACCENT)
        table.add_column("Name", style=Colors.NORMAL)
        table.add_column("Chip", style=Colors.MUTED)
        table.add_column("Path", style=Colors.MUTED)
        return table

    @staticmethod
    def create_config_table(icon_mode: str = "emoji") -> Table:
        """Create table for configuration display."""
        table = TableStyles.create_basic_table("Configuration", "CONFIG", icon_mode)
        table.add_column("Setting", style=Colors.PRIMARY, no_wrap=True)
        table.add_column("Value", style=Colors.NORMAL)
        table.add_column("Source", style=Colors.MUTED)
        return table


def get_themed_console(icon_mode: str = "emoji") -> ThemedConsole:
    """Get a themed console instance."""
    return ThemedConsole(icon_mode=icon_mode)


def get_icon_mode_from_context(ctx: Any) -> str:
    """Icon mode from the CLI context ("text" under --no-emoji)."""
    app_context = getattr(ctx, "obj", None)
    return str(getattr(app_context, "icon_mode", "emoji"))
