"""Flashdeck - ESP firmware flash orchestrator."""

from importlib.metadata import distribution

from .firmware.flash.models import FlashRequest, FlashResult, OutcomeEvent, ProgressEvent
from .firmware.models import FirmwareArtifact


__version__ = distribution(__package__ or "flashdeck").version

__all__ = [
    "FirmwareArtifact",
    "FlashRequest",
    "FlashResult",
    "OutcomeEvent",
    "ProgressEvent",
    "__version__",
]

# Import CLI after setting __version__ to avoid circular imports
from .cli import app, main


__all__ += ["app", "main"]
