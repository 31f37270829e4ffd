"""Serial port listing command."""

import json
from typing import Annotated

import typer

from flashdeck.cli.decorators import handle_errors
from flashdeck.cli.helpers.context import get_flash_service
from flashdeck.cli.helpers.theme import (
    TableStyles,
    get_icon_mode_from_context,
    get_themed_console,
)
from flashdeck.core.structlog_logger import get_struct_logger


logger = get_struct_logger(__name__)

OutputFormatOption = Annotated[
    str,
    typer.Option("--output-format", "-o", help="Output format: text or json"),
]


def _format_usb_id(vendor_id: int | None, product_id: int | None) -> str:
    if vendor_id is None or product_id is None:
        return ""
    return f"{vendor_id:04x}:{product_id:04x}"


@handle_errors
def ports(ctx: typer.Context, output_format: OutputFormatOption = "text") -> None:
    """List serial ports available for flashing.

    Examples:
        flashdeck ports
        flashdeck ports --output-format json
    """
    service = get_flash_service(ctx)
    found = service.list_ports(refresh=True)
    logger.debug("ports_listed", count=len(found))

    if output_format == "json":
        print(json.dumps([port.to_dict_full() for port in found], indent=2))
        return

    icon_mode = get_icon_mode_from_context(ctx)
    console = get_themed_console(icon_mode)
    if not found:
        console.print_warning("No serial ports found")
        return

    table = TableStyles.create_port_table(icon_mode)
    for port in found:
        table.add_row(
            port.port_name,
            port.port_type,
            port.description or "",
            port.manufacturer or "",
            _format_usb_id(port.vendor_id, port.product_id),
        )
    console.console.print(table)


def register_commands(app: typer.Typer) -> None:
    """Register the ports command with the main app."""
    app.command(name="ports")(ports)
