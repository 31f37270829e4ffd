"""Flash command implementation."""

from typing import Annotated

import typer

from flashdeck.cli.components.progress_display import FlashProgressDisplay
from flashdeck.cli.decorators import handle_errors
from flashdeck.cli.helpers.context import get_flash_service
from flashdeck.cli.helpers.theme import get_icon_mode_from_context, get_themed_console
from flashdeck.core.errors import ValidationError
from flashdeck.core.structlog_logger import get_struct_logger
from flashdeck.firmware.flash.models import FlashRequest, OutcomeEvent
from flashdeck.firmware.flash.selection import FlashSelection
from flashdeck.firmware.flash.service import FlashService


logger = get_struct_logger(__name__)


def _build_request(
    service: FlashService,
    role: str | None,
    version: str | None,
    port: str | None,
    aux_storage: bool,
    baud: int | None,
    handoff: str | None,
) -> FlashRequest:
    if handoff:
        selection = FlashSelection.from_query_string(handoff)
        return selection.to_request(service.resolver, baud_rate_override=baud)

    if not role or not port:
        raise ValidationError("--role and --port are required unless --handoff is given")

    version = version or service.resolver.default_version(role)
    if not version:
        raise ValidationError(f"No firmware versions found for role '{role}'")
    return service.build_request(
        role, version, port, include_aux_storage=aux_storage, baud_rate_override=baud
    )


@handle_errors
def flash(
    ctx: typer.Context,
    role: Annotated[
        str | None, typer.Option("--role", "-r", help="Device role, e.g. 'eous'")
    ] = None,
    version: Annotated[
        str | None,
        typer.Option("--version", help="Firmware version (default: first available)"),
    ] = None,
    port: Annotated[
        str | None, typer.Option("--port", "-p", help="Serial port to flash")
    ] = None,
    aux_storage: Annotated[
        bool,
        typer.Option("--aux-storage", help="Also flash the littlefs storage image"),
    ] = False,
    baud: Annotated[
        int | None,
        typer.Option("--baud", "-b", min=1, help="Override the manifest baud rate"),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", min=0.1, help="Fail the flash after this many seconds"),
    ] = None,
    handoff: Annotated[
        str | None,
        typer.Option(
            "--handoff", help="Selection query string from 'flashdeck firmware select'"
        ),
    ] = None,
    progress: Annotated[
        bool,
        typer.Option("--progress/--no-progress", help="Show a live progress bar"),
    ] = True,
) -> None:
    """Flash a firmware build to a device on a serial port.

    Examples:
        flashdeck flash --role eous --version 2.0 --port /dev/ttyUSB0

        flashdeck flash --role eous --port COM3 --aux-storage

        flashdeck flash --handoff "role=eous&version=2.0&port=COM3&firmwarePath=...&includeAuxStorage=0"
    """
    console = get_themed_console(get_icon_mode_from_context(ctx))
    service = get_flash_service(ctx)

    service.list_ports(refresh=True)
    service.refresh_firmware()

    request = _build_request(service, role, version, port, aux_storage, baud, handoff)
    console.print_info(
        f"Flashing {request.artifact.label} ({request.artifact.name}) to {request.port}"
    )

    session = service.start_flash(request, timeout=timeout)
    outcome: OutcomeEvent | None
    if progress:
        outcome = FlashProgressDisplay(console=console.console).run(session.subscribe())
    else:
        outcome = session.wait()

    if outcome is None:
        console.print_error("Flash ended without an outcome")
        raise typer.Exit(1)

    logger.info("flash_command_finished", success=outcome.success, port=request.port)
    if outcome.success:
        console.print_success(outcome.message)
        return

    console.print_error(outcome.message)
    raise typer.Exit(1)


def register_commands(app: typer.Typer) -> None:
    """Register the flash command with the main app."""
    app.command(name="flash")(flash)
