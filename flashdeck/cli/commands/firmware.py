"""Firmware catalog commands."""

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
from flashdeck.firmware.flash.selection import FlashSelection


firmware_app = typer.Typer(
    name="firmware",
    help="Browse the firmware catalog",
    no_args_is_help=True,
)

OutputFormatOption = Annotated[
    str,
    typer.Option("--output-format", "-o", help="Output format: text or json"),
]


@firmware_app.command(name="roles")
@handle_errors
def list_roles(ctx: typer.Context, output_format: OutputFormatOption = "text") -> None:
    """List device roles that have firmware builds."""
    service = get_flash_service(ctx)
    service.refresh_firmware()
    roles = service.list_roles()

    if output_format == "json":
        print(json.dumps(roles))
        return

    console = get_themed_console(get_icon_mode_from_context(ctx))
    if not roles:
        console.print_warning("No firmware roles found")
        return
    for role in roles:
        console.print_list_item(role)


@firmware_app.command(name="versions")
@handle_errors
def list_versions(
    ctx: typer.Context,
    role: Annotated[str, typer.Argument(help="Device role, e.g. 'eous'")],
    output_format: OutputFormatOption = "text",
) -> None:
    """List firmware versions available for ROLE (default version first)."""
    service = get_flash_service(ctx)
    service.refresh_firmware()
    versions = service.list_versions(role)

    if output_format == "json":
        print(json.dumps(versions))
        return

    console = get_themed_console(get_icon_mode_from_context(ctx))
    if not versions:
        console.print_warning(f"No firmware versions found for role '{role}'")
        return
    for version in versions:
        console.print_list_item(version)


@firmware_app.command(name="list")
@handle_errors
def list_firmware(
    ctx: typer.Context,
    role: Annotated[
        str | None, typer.Option("--role", "-r", help="Only show this role")
    ] = None,
    output_format: OutputFormatOption = "text",
) -> None:
    """List every firmware build in the catalog."""
    service = get_flash_service(ctx)
    artifacts = service.refresh_firmware()
    if role:
        artifacts = tuple(a for a in artifacts if a.role.lower() == role.lower())

    if output_format == "json":
        print(json.dumps([a.to_dict_full() for a in artifacts], indent=2))
        return

    icon_mode = get_icon_mode_from_context(ctx)
    console = get_themed_console(icon_mode)
    if not artifacts:
        console.print_warning("No firmware builds found")
        return

    table = TableStyles.create_firmware_table(icon_mode)
    for artifact in artifacts:
        table.add_row(
            artifact.role, artifact.version, artifact.name, artifact.chip, artifact.path
        )
    console.console.print(table)


@firmware_app.command(name="select")
@handle_errors
def select(
    ctx: typer.Context,
    role: Annotated[str, typer.Option("--role", "-r", help="Device role")],
    port: Annotated[str, typer.Option("--port", "-p", help="Serial port name")],
    version: Annotated[
        str | None,
        typer.Option("--version", help="Firmware version (default: first available)"),
    ] = None,
    aux_storage: Annotated[
        bool,
        typer.Option("--aux-storage", help="Also flash the littlefs storage image"),
    ] = False,
) -> None:
    """Print the hand-off query string for a selection.

    The output can be passed to ``flashdeck flash --handoff``.
    """
    service = get_flash_service(ctx)
    service.refresh_firmware()
    version = version or service.resolver.default_version(role) or ""
    request = service.build_request(role, version, port, include_aux_storage=aux_storage)
    print(FlashSelection.from_request(request).to_query_string())


def register_commands(app: typer.Typer) -> None:
    """Register firmware commands with the main app."""
    app.add_typer(firmware_app, name="firmware")
