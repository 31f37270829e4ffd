"""Main CLI application for flashdeck."""

import logging
import sys

# Import version from package metadata directly to avoid circular imports
from importlib.metadata import distribution
from typing import TYPE_CHECKING, Annotated

import typer

from flashdeck.cli.decorators.error_handling import print_stack_trace_if_verbose
from flashdeck.core.errors import ConfigError
from flashdeck.core.logging import setup_logging
from flashdeck.core.structlog_logger import get_struct_logger


if TYPE_CHECKING:
    from flashdeck.firmware.flash.service import FlashService


__all__ = ["app", "main", "__version__", "setup_logging"]


__version__ = distribution("flashdeck").version

logger = get_struct_logger(__name__)


class AppContext:
    """Application context for storing shared state."""

    def __init__(
        self,
        verbose: int = 0,
        log_file: str | None = None,
        config_file: str | None = None,
        no_emoji: bool = False,
    ):
        """Initialize AppContext.

        Args:
            verbose: Verbosity level
            log_file: Path to log file
            config_file: Path to configuration file
            no_emoji: Whether to disable emoji icons

        Raises:
            ConfigError: If the configuration cannot be loaded
        """
        self.verbose = verbose
        self.log_file = log_file
        self.config_file = config_file
        self.no_emoji = no_emoji
        self.flash_service: "FlashService | None" = None

        from flashdeck.config.user_config import create_user_config

        self.user_config = create_user_config(cli_config_path=config_file)

    @property
    def icon_mode(self) -> str:
        """Icon mode: "text" under --no-emoji, "emoji" otherwise."""
        return "text" if self.no_emoji else "emoji"


app = typer.Typer(
    name="flashdeck",
    help=f"""Flashdeck ESP Firmware Flash Tool v{__version__}

Pick a device role, a firmware build and a serial port, then flash it:

  Firmware catalog → Selection → Flash session → Progress/outcome

Common workflows:
  • List ports:       flashdeck ports
  • Browse firmware:  flashdeck firmware list
  • Flash a device:   flashdeck flash --role eous --version 2.0 --port /dev/ttyUSB0""",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "-v",
            "--verbose",
            count=True,
            help="Increase verbosity (-v=INFO, -vv=DEBUG)",
        ),
    ] = 0,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug logging (equivalent to -vv)"),
    ] = False,
    log_file: Annotated[
        str | None, typer.Option("--log-file", help="Also write JSON logs to this file")
    ] = None,
    config_file: Annotated[
        str | None,
        typer.Option("-c", "--config", help="Path to configuration file"),
    ] = None,
    no_emoji: Annotated[
        bool,
        typer.Option("--no-emoji", help="Disable emoji icons in output"),
    ] = False,
    version: Annotated[
        bool, typer.Option("--version", help="Show version and exit")
    ] = False,
) -> None:
    """Flashdeck ESP Firmware Flash Tool."""
    if version:
        print(f"Flashdeck v{__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        print(ctx.get_help())
        raise typer.Exit()

    try:
        app_context = AppContext(
            verbose=verbose,
            log_file=log_file,
            config_file=config_file,
            no_emoji=no_emoji,
        )
    except ConfigError as e:
        setup_logging(log_file=log_file)
        logger.error("configuration_error", error=str(e))
        raise typer.Exit(1) from e
    ctx.obj = app_context

    # CLI flags win over the configured level
    if debug or verbose >= 2:
        log_level_name = "DEBUG"
    elif verbose == 1:
        log_level_name = "INFO"
    else:
        log_level_name = logging.getLevelName(app_context.user_config.get_log_level_int())

    setup_logging(log_level_name=log_level_name, log_file=log_file)
    logger.debug(
        "cli_started",
        command=ctx.invoked_subcommand,
        config_path=str(app_context.user_config.config_path or ""),
    )


def main() -> int:
    """Main CLI entry point."""
    exit_code = 0

    try:
        from flashdeck.cli.commands import register_all_commands

        register_all_commands(app)

        app()

    except SystemExit as e:
        exit_code = e.code if isinstance(e.code, int) else 0

    except Exception as e:
        logger.exception("unexpected_error", error=str(e))
        print_stack_trace_if_verbose()
        exit_code = 1

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
