"""Protocol definitions for flash methods."""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from flashdeck.firmware.flash.models import FlashRequest, FlashResult, ProgressEvent


ProgressCallback = Callable[[ProgressEvent], None]


@runtime_checkable
class FlasherProtocol(Protocol):
    """Low-level flasher interface.

    A flasher runs one long flash operation to completion on the calling
    thread, reporting progress through ``on_progress``.
    """

    def flash(self, request: FlashRequest, on_progress: ProgressCallback) -> FlashResult:
        """Flash the request's artifact to its port.

        Args:
            request: Validated flash request
            on_progress: Called for every progress observation, in order

        Returns:
            FlashResult describing the final outcome

        Raises:
            OperationError: If the operation fails (connection, protocol, timeout)
        """
        ...

    def check_available(self) -> bool:
        """Check if this flasher's tooling is installed."""
        ...
