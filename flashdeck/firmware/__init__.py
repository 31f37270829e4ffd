"""Firmware domain - catalog resolution and flash operations."""

from flashdeck.firmware.catalog import (
    FirmwareCatalog,
    FirmwareCatalogResolver,
    create_firmware_resolver,
    load_manifest,
)
from flashdeck.firmware.models import FirmwareArtifact, FirmwareManifest, FlashFile


__all__ = [
    "FirmwareCatalog",
    "FirmwareCatalogResolver",
    "create_firmware_resolver",
    "load_manifest",
    "FirmwareArtifact",
    "FirmwareManifest",
    "FlashFile",
]
