"""Error handling decorators for CLI commands."""

import sys
import traceback
from collections.abc import Callable
from functools import wraps
from typing import Any

import typer

from flashdeck.core.errors import (
    AmbiguousCatalogError,
    ArtifactNotFoundError,
    ConfigError,
    DiscoveryError,
    InvalidStateError,
    OperationError,
    ValidationError,
)
from flashdeck.core.structlog_logger import get_struct_logger, is_debug_enabled


__all__ = ["handle_errors", "print_stack_trace_if_verbose"]

logger = get_struct_logger(__name__)

# Checked in order; subclasses before their bases
_ERROR_EVENTS: tuple[tuple[type[Exception], str], ...] = (
    (ConfigError, "configuration_error"),
    (ValidationError, "invalid_selection"),
    (ArtifactNotFoundError, "firmware_not_found"),
    (AmbiguousCatalogError, "firmware_catalog_ambiguous"),
    (DiscoveryError, "discovery_error"),
    (InvalidStateError, "invalid_state"),
    (OperationError, "flash_error"),
    (FileNotFoundError, "file_not_found"),
)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to handle common exceptions in CLI commands.

    Each known error is logged as its own event and the command exits with
    status 1.
    """

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except Exception as e:
            for error_type, event in _ERROR_EVENTS:
                if isinstance(e, error_type):
                    logger.error(event, error=str(e))
                    break
            else:
                logger.error("unexpected_error", error=str(e), exc_info=is_debug_enabled())
            print_stack_trace_if_verbose()
            raise typer.Exit(1) from e

    return wrapper


def print_stack_trace_if_verbose() -> None:
    """Print stack trace if verbose/debug mode is enabled."""
    if any(arg in sys.argv for arg in ["-v", "-vv", "--verbose", "--debug"]):
        print("\nStack trace:", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
