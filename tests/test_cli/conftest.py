"""Test fixtures for CLI tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from flashdeck.cli import app
from flashdeck.cli.commands import register_all_commands
from flashdeck.firmware.catalog import create_firmware_resolver
from flashdeck.firmware.flash.service import FlashService


@pytest.fixture(scope="session")
def cli_app():
    """The Typer app with every command registered."""
    register_all_commands(app)
    return app


@pytest.fixture
def cli_config(clean_env: Path, firmware_root: Path) -> Path:
    """A config file in the working directory that keeps logs off the output."""
    config_file = clean_env / "flashdeck.yaml"
    with config_file.open("w") as f:
        yaml.dump(
            {
                "log_level": "ERROR",
                "firmware_dirs": [str(firmware_root)],
                "flash": {"method": "espflash", "timeout": 30},
            },
            f,
        )
    return config_file


@pytest.fixture
def cli_flasher(fake_flasher_factory):
    """Flasher used by the patched flash service; tests may swap attributes."""
    return fake_flasher_factory()


@pytest.fixture
def cli_service(
    cli_config, port_registry, firmware_root, cli_flasher, settings
) -> Generator[FlashService, None, None]:
    """Patch the CLI to use a FlashService over fake hardware and a real catalog."""
    service = FlashService(
        port_registry=port_registry,
        resolver=create_firmware_resolver([firmware_root]),
        flasher=cli_flasher,
        settings=settings,
    )
    with patch(
        "flashdeck.cli.helpers.context.create_flash_service", return_value=service
    ):
        yield service
