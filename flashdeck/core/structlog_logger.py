"""Structlog logger factory and utilities for flashdeck."""

import logging
from typing import Any

import structlog


def get_struct_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger with the given name.

    Args:
        name: The logger name, usually __name__

    Returns:
        A bound structlog logger instance

    Note: For exception logging with debug stack traces, use this pattern:
        try:
            # some operation
        except Exception as e:
            exc_info = is_debug_enabled()
            logger.error("operation_failed", error=str(e), exc_info=exc_info)
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


def is_debug_enabled() -> bool:
    """Whether DEBUG records reach the root logger (stack traces are attached then)."""
    return logging.getLogger().isEnabledFor(logging.DEBUG)


def get_struct_logger_with_context(
    name: str, **context: Any
) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger with bound context.

    Args:
        name: The logger name, usually __name__
        **context: Context to bind to the logger

    Returns:
        A bound structlog logger with context

    Example:
        logger = get_struct_logger_with_context(__name__, session_id="1a2b", port="COM3")
        logger.info("flash_started")  # Will include session_id and port in output
    """
    logger = structlog.get_logger(name)
    return logger.bind(**context)  # type: ignore[no-any-return]


class StructlogMixin:
    """Mixin class to add structured logging capabilities to services.

    Services get a lazily created logger with the service class name bound,
    plus the optional ``service_name`` / ``service_version`` attributes.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        """Initialize the mixin."""
        super().__init__(*args, **kwargs)
        self._logger: structlog.stdlib.BoundLogger | None = None

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get or create a logger for this service with bound context."""
        if self._logger is None:
            base_logger = get_struct_logger(self.__class__.__module__)

            context = {
                "service": self.__class__.__name__,
            }
            if hasattr(self, "service_name"):
                context["service_name"] = self.service_name
            if hasattr(self, "service_version"):
                context["service_version"] = self.service_version

            self._logger = base_logger.bind(**context)

        return self._logger

    def log_operation(
        self, operation: str, **context: Any
    ) -> structlog.stdlib.BoundLogger:
        """Get a logger bound to a specific operation.

        Args:
            operation: Name of the operation being performed
            **context: Additional context for the operation

        Returns:
            Logger bound with operation context
        """
        return self.logger.bind(operation=operation, **context)
