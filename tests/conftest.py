"""Shared test fixtures for flashdeck tests."""

import json
import logging
import os
import threading
from collections.abc import Callable, Generator, Iterable
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
import yaml
from typer.testing import CliRunner

from flashdeck.config.models import FlashdeckSettings
from flashdeck.config.user_config import UserConfig
from flashdeck.firmware.catalog import FirmwareCatalogResolver
from flashdeck.firmware.flash.models import (
    FlashRequest,
    FlashResult,
    PortDescriptor,
    ProgressEvent,
)
from flashdeck.firmware.flash.port_registry import PortRegistry
from flashdeck.firmware.models import FirmwareArtifact
from flashdeck.protocols import SerialAdapterProtocol


@pytest.fixture
def cli_runner() -> CliRunner:
    """Return a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_root_logging() -> Generator[None, None, None]:
    """Drop handlers installed by setup_logging so they don't outlive a test's streams."""
    root_logger = logging.getLogger()
    original_handlers = list(root_logger.handlers)
    original_level = root_logger.level
    yield
    root_logger.handlers = original_handlers
    root_logger.setLevel(original_level)


@pytest.fixture
def clean_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path, None, None]:
    """Run in an empty working directory with no FLASHDECK_ variables."""
    for key in list(os.environ):
        if key.startswith("FLASHDECK_"):
            monkeypatch.delenv(key)
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    yield workdir


def write_manifest(
    version_dir: Path,
    files: list[dict[str, Any]] | None = None,
    **overrides: Any,
) -> Path:
    """Write a manifest.json plus the image files it names."""
    version_dir.mkdir(parents=True, exist_ok=True)
    if files is None:
        files = [
            {"offset": "0x0", "path": "firmware.bin"},
            {"offset": "0x670000", "path": "littlefs.bin", "fs": "littlefs"},
        ]
    manifest = {
        "name": version_dir.parent.name,
        "version": version_dir.name,
        "env": version_dir.parent.name,
        "chip": "esp32s3",
        "flash_size": "8MB",
        "baud": 921600,
        "flash_mode": "dio",
        "flash_freq": "80m",
        "erase_flash": False,
        "files": files,
    }
    manifest.update(overrides)
    for entry in files:
        image = version_dir / entry["path"]
        if not image.exists():
            image.write_bytes(b"\x00" * 16)
    path = version_dir / "manifest.json"
    path.write_text(json.dumps(manifest), encoding="utf-8")
    return path


@pytest.fixture
def firmware_root(tmp_path: Path) -> Path:
    """A catalog with role 'eous' at versions 1.0 and 2.0."""
    root = tmp_path / "firmware"
    write_manifest(root / "eous" / "1.0")
    write_manifest(root / "eous" / "2.0")
    return root


@pytest.fixture
def isolated_config(
    clean_env: Path, firmware_root: Path
) -> Generator[UserConfig, None, None]:
    """A UserConfig loaded from a temporary file pointing at ``firmware_root``."""
    config_file = clean_env / "flashdeck.yaml"
    with config_file.open("w") as f:
        yaml.dump(
            {
                "log_level": "INFO",
                "firmware_dirs": [str(firmware_root)],
                "flash": {"method": "espflash", "timeout": 30},
            },
            f,
        )
    yield UserConfig(cli_config_path=config_file)


def make_artifact(
    role: str = "eous", version: str = "1.0", path: str | None = None
) -> FirmwareArtifact:
    return FirmwareArtifact(
        role=role,
        version=version,
        name=role,
        chip="esp32s3",
        flash_size="8MB",
        path=path if path is not None else f"/fw/{role}-{version}",
    )


def make_port(port_name: str = "COM3", **kwargs: Any) -> PortDescriptor:
    kwargs.setdefault("port_type", "USB")
    kwargs.setdefault("description", "USB Serial")
    return PortDescriptor(port_name=port_name, **kwargs)


@pytest.fixture
def artifact_factory() -> Callable[..., FirmwareArtifact]:
    return make_artifact


@pytest.fixture
def resolver_factory() -> Callable[[Iterable[FirmwareArtifact]], FirmwareCatalogResolver]:
    """Build a resolver whose catalog scan returns the given artifacts."""

    def _factory(artifacts: Iterable[FirmwareArtifact]) -> FirmwareCatalogResolver:
        artifacts = list(artifacts)
        resolver = FirmwareCatalogResolver(lambda: artifacts)
        resolver.refresh()
        return resolver

    return _factory


@pytest.fixture
def mock_serial_adapter() -> Mock:
    adapter = Mock(spec=SerialAdapterProtocol)
    adapter.list_ports.return_value = [make_port("COM3"), make_port("COM4")]
    return adapter


@pytest.fixture
def port_registry(mock_serial_adapter: Mock) -> Generator[PortRegistry, None, None]:
    """A registry already refreshed with COM3 and COM4."""
    registry = PortRegistry(mock_serial_adapter)
    registry.refresh(timeout=5)
    yield registry
    registry.close()


@pytest.fixture
def flash_request() -> FlashRequest:
    return FlashRequest(port="COM3", artifact=make_artifact())


class FakeFlasher:
    """Scripted FlasherProtocol implementation.

    Emits ``events`` in order, optionally waits on ``gate`` before finishing,
    then returns ``result`` or raises ``error``.
    """

    def __init__(
        self,
        events: Iterable[ProgressEvent] = (),
        result: FlashResult | None = None,
        error: Exception | None = None,
        gate: threading.Event | None = None,
        after_gate_events: Iterable[ProgressEvent] = (),
    ) -> None:
        self.events = list(events)
        self.result = result
        self.error = error
        self.gate = gate
        self.after_gate_events = list(after_gate_events)
        self.calls: list[FlashRequest] = []
        self.started = threading.Event()

    def flash(
        self, request: FlashRequest, on_progress: Callable[[ProgressEvent], None]
    ) -> FlashResult:
        self.calls.append(request)
        self.started.set()
        for event in self.events:
            on_progress(event)
        if self.gate is not None:
            self.gate.wait(10)
        for event in self.after_gate_events:
            on_progress(event)
        if self.error is not None:
            raise self.error
        if self.result is not None:
            return self.result
        result = FlashResult(success=True, port=request.port, files_flashed=1)
        result.add_message("Firmware flashed successfully")
        return result

    def check_available(self) -> bool:
        return True


@pytest.fixture
def fake_flasher_factory() -> Callable[..., FakeFlasher]:
    return FakeFlasher


@pytest.fixture
def settings(firmware_root: Path) -> FlashdeckSettings:
    return FlashdeckSettings(
        firmware_dirs=[firmware_root],
        flash={"timeout": 10, "port_scan_timeout": 5},
    )


@pytest.fixture
def manifest_writer() -> Callable[..., Path]:
    return write_manifest


@pytest.fixture
def port_factory() -> Callable[..., PortDescriptor]:
    return make_port
