"""CLI command modules."""

import typer

from flashdeck.cli.commands.config import register_commands as register_config_commands
from flashdeck.cli.commands.firmware import (
    register_commands as register_firmware_commands,
)
from flashdeck.cli.commands.flash import register_commands as register_flash_commands
from flashdeck.cli.commands.ports import register_commands as register_ports_commands


def register_all_commands(app: typer.Typer) -> None:
    """Register all CLI commands with the main app.

    Args:
        app: The main Typer app
    """
    register_ports_commands(app)
    register_firmware_commands(app)
    register_flash_commands(app)
    register_config_commands(app)
