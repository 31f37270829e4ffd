"""Protocol definitions for flashdeck adapters and interfaces.

These protocols use Python's typing.Protocol system with the
@runtime_checkable decorator to enable both static type checking and
runtime isinstance() checks.
"""

from .flash_protocols import FlasherProtocol, ProgressCallback
from .serial_adapter_protocol import SerialAdapterProtocol


__all__ = [
    "FlasherProtocol",
    "ProgressCallback",
    "SerialAdapterProtocol",
]
