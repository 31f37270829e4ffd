"""Flash domain for firmware flashing functionality.

This package contains:
- Flash service and session state machine
- Progress channel and subscriptions
- Port registry
- Low-level flasher methods and their registry
- Selection hand-off between screens
"""

from .channel import ProgressChannel, Subscription
from .method_registry import create_flasher, flasher_registry
from .models import (
    FLASH_STAGES,
    FlashRequest,
    FlashResult,
    OutcomeEvent,
    PortDescriptor,
    ProgressEvent,
    SessionState,
)
from .port_registry import PortRegistry, create_port_registry
from .selection import FlashSelection
from .service import FlashService, create_flash_service
from .session import FlashSession


__all__ = [
    # Service classes and factories
    "FlashService",
    "create_flash_service",
    "FlashSession",
    "PortRegistry",
    "create_port_registry",
    "ProgressChannel",
    "Subscription",
    "FlashSelection",
    # Models and results
    "FLASH_STAGES",
    "FlashRequest",
    "FlashResult",
    "OutcomeEvent",
    "PortDescriptor",
    "ProgressEvent",
    "SessionState",
    # Low-level operations
    "create_flasher",
    "flasher_registry",
]
