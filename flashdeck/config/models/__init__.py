"""Configuration models."""

from .flash import FlashMethodName, FlashSettings
from .settings import FlashdeckSettings, default_firmware_dirs


__all__ = [
    "FlashMethodName",
    "FlashSettings",
    "FlashdeckSettings",
    "default_firmware_dirs",
]
