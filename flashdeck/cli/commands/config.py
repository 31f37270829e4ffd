"""Configuration commands."""

import json
from typing import Annotated

import typer

from flashdeck.cli.decorators import handle_errors
from flashdeck.cli.helpers.context import get_user_config_from_context
from flashdeck.cli.helpers.theme import (
    TableStyles,
    get_icon_mode_from_context,
    get_themed_console,
)


config_app = typer.Typer(
    name="config",
    help="Configuration management commands",
    no_args_is_help=True,
)


def _display_value(value: object) -> str:
    if isinstance(value, list):
        return ", ".join(str(item) for item in value) or "[]"
    if value is None:
        return "null"
    return str(value)


@config_app.command(name="show")
@handle_errors
def show_config(
    ctx: typer.Context,
    output_format: Annotated[
        str,
        typer.Option("--output-format", "-o", help="Output format: text or json"),
    ] = "text",
) -> None:
    """Show the effective configuration and where each value came from."""
    user_config = get_user_config_from_context(ctx)
    values = user_config.as_flat_dict()

    if output_format == "json":
        print(json.dumps(values, indent=2))
        return

    icon_mode = get_icon_mode_from_context(ctx)
    console = get_themed_console(icon_mode)
    if user_config.config_path:
        console.print_info(f"Config file: {user_config.config_path}")
    else:
        console.print_info("No config file found; using defaults and environment")

    table = TableStyles.create_config_table(icon_mode)
    for key, value in values.items():
        table.add_row(key, _display_value(value), user_config.get_source(key))
    console.console.print(table)


def register_commands(app: typer.Typer) -> None:
    """Register config commands with the main app."""
    app.add_typer(config_app, name="config")
