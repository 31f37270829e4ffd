"""Tests for the espflash/esptool flasher implementations."""

import hashlib
import subprocess
from unittest.mock import patch

import pytest

from flashdeck.config.models.flash import FlashSettings
from flashdeck.core.errors import ConfigError, OperationError
from flashdeck.firmware.flash.flasher_methods import (
    EspflashFlasher,
    EsptoolFlasher,
    overall_percentage,
)
from flashdeck.firmware.flash.method_registry import create_flasher, flasher_registry
from flashdeck.firmware.flash.models import FLASH_STAGES, FlashRequest
from flashdeck.protocols import FlasherProtocol


RUN_COMMAND = "flashdeck.firmware.flash.flasher_methods.run_command"
WHICH = "flashdeck.firmware.flash.flasher_methods.shutil.which"


def fake_tool(lines=(), return_code=0, stderr=()):
    """Build a run_command replacement that replays output through the middleware."""
    commands = []

    def _run(cmd, middleware, timeout=None):
        commands.append(cmd)
        out = [middleware.process(line, "stdout") for line in lines]
        err = [middleware.process(line, "stderr") for line in stderr]
        return return_code, out, err

    return _run, commands


@pytest.fixture
def artifact_request(firmware_root, artifact_factory):
    def _request(version="1.0", **kwargs):
        artifact = artifact_factory(path=str(firmware_root / "eous" / version), version=version)
        return FlashRequest(port="/dev/ttyUSB0", artifact=artifact, **kwargs)

    return _request


class TestOverallPercentage:
    def test_band_between_ten_and_ninety_nine(self):
        assert overall_percentage(0, 2, 0) == 10.0
        assert overall_percentage(0, 2, 50) == 30.0
        assert overall_percentage(1, 2, 100) == 90.0
        assert overall_percentage(1, 1, 100) == 99.0


class TestEspflashFlasher:
    def test_implements_protocol(self):
        assert isinstance(EspflashFlasher(), FlasherProtocol)

    def test_stage_sequence_and_command(self, artifact_request):
        events = []
        run, commands = fake_tool(lines=["Flashing... 50%", "Flashing... 50%", "100%"])

        with patch(WHICH, return_value="/usr/bin/espflash"), patch(RUN_COMMAND, side_effect=run):
            result = EspflashFlasher().flash(artifact_request(), events.append)

        assert result.success is True
        assert result.files_flashed == 1
        assert [e.stage for e in events] == [
            "preparing",
            "verifying",
            "connecting",
            "flashing",
            "flashing",
            "flashing",
            "completed",
        ]
        assert list(dict.fromkeys(e.stage for e in events)) == list(FLASH_STAGES)
        assert [e.percentage for e in events] == [0.0, 5.0, 10.0, 10.0, 50.0, 90.0, 100.0]
        assert commands == [
            [
                "/usr/bin/espflash",
                "write-bin",
                "--port",
                "/dev/ttyUSB0",
                "--baud",
                "921600",
                "0x0",
                commands[0][-1],
            ]
        ]
        assert commands[0][-1].endswith("firmware.bin")

    def test_aux_storage_flashed_after_firmware(self, artifact_request):
        events = []
        run, commands = fake_tool()

        with patch(WHICH, return_value="espflash"), patch(RUN_COMMAND, side_effect=run):
            result = EspflashFlasher().flash(
                artifact_request(include_aux_storage=True), events.append
            )

        assert result.files_flashed == 2
        assert [cmd[-2] for cmd in commands] == ["0x0", "0x670000"]
        flashing = [e for e in events if e.stage == "flashing"]
        assert [(e.current, e.total) for e in flashing] == [(1, 2), (2, 2)]

    def test_baud_override_wins(self, artifact_request):
        run, commands = fake_tool()

        with patch(WHICH, return_value="espflash"), patch(RUN_COMMAND, side_effect=run):
            EspflashFlasher().flash(artifact_request(baud_rate_override=115200), lambda e: None)

        assert commands[0][commands[0].index("--baud") + 1] == "115200"

    def test_missing_manifest_raises(self, tmp_path, artifact_factory):
        request = FlashRequest(port="COM3", artifact=artifact_factory(path=str(tmp_path)))

        with pytest.raises(OperationError, match="Manifest file not found"):
            EspflashFlasher().flash(request, lambda e: None)

    def test_missing_image_raises(self, firmware_root, artifact_request):
        (firmware_root / "eous" / "1.0" / "firmware.bin").unlink()

        with pytest.raises(OperationError, match="Firmware file not found"):
            EspflashFlasher().flash(artifact_request(), lambda e: None)

    def test_checksum_mismatch_raises(self, tmp_path, manifest_writer, artifact_factory):
        version_dir = tmp_path / "eous" / "1.0"
        manifest_writer(
            version_dir,
            files=[{"offset": "0x0", "path": "firmware.bin", "sha256": "00" * 32}],
        )
        request = FlashRequest(port="COM3", artifact=artifact_factory(path=str(version_dir)))

        with pytest.raises(OperationError, match="Checksum mismatch"):
            EspflashFlasher().flash(request, lambda e: None)

    def test_checksum_match_passes(self, tmp_path, manifest_writer, artifact_factory):
        version_dir = tmp_path / "eous" / "1.0"
        version_dir.mkdir(parents=True)
        (version_dir / "firmware.bin").write_bytes(b"payload")
        digest = hashlib.sha256(b"payload").hexdigest().upper()
        manifest_writer(
            version_dir, files=[{"offset": "0x0", "path": "firmware.bin", "sha256": digest}]
        )
        request = FlashRequest(port="COM3", artifact=artifact_factory(path=str(version_dir)))
        run, _ = fake_tool()

        with patch(WHICH, return_value="espflash"), patch(RUN_COMMAND, side_effect=run):
            assert EspflashFlasher().flash(request, lambda e: None).success

    def test_missing_tool_raises(self, artifact_request):
        with patch(WHICH, return_value=None):
            with pytest.raises(OperationError, match="not found"):
                EspflashFlasher().flash(artifact_request(), lambda e: None)

    def test_non_zero_exit_raises_with_output(self, artifact_request):
        run, _ = fake_tool(stderr=["Error: port busy"], return_code=2)

        with patch(WHICH, return_value="espflash"), patch(RUN_COMMAND, side_effect=run):
            with pytest.raises(OperationError, match="port busy"):
                EspflashFlasher().flash(artifact_request(), lambda e: None)

    def test_tool_timeout_raises(self, artifact_request):
        def run(cmd, middleware, timeout=None):
            raise subprocess.TimeoutExpired(cmd, timeout)

        with patch(WHICH, return_value="espflash"), patch(RUN_COMMAND, side_effect=run):
            with pytest.raises(OperationError, match="did not finish"):
                EspflashFlasher(timeout=1).flash(artifact_request(), lambda e: None)

    def test_check_available_uses_tool_path(self):
        with patch(WHICH, return_value="/opt/espflash") as which:
            assert EspflashFlasher(tool_path="/opt/espflash").check_available()

        which.assert_called_once_with("/opt/espflash")


class TestEsptoolFlasher:
    def test_command_line(self, artifact_request):
        run, commands = fake_tool()

        with patch(WHICH, return_value="esptool"), patch(RUN_COMMAND, side_effect=run):
            EsptoolFlasher().flash(artifact_request(), lambda e: None)

        assert commands[0][:6] == [
            "esptool",
            "--port",
            "/dev/ttyUSB0",
            "--baud",
            "921600",
            "write_flash",
        ]
        assert commands[0][6] == "0x0"


class TestMethodRegistry:
    def test_registered_methods(self):
        assert flasher_registry.get_registered_methods() == ["espflash", "esptool"]

    def test_create_flasher_defaults_to_settings_method(self):
        flasher = create_flasher(settings=FlashSettings(method="esptool", timeout=12))

        assert isinstance(flasher, EsptoolFlasher)
        assert flasher.timeout == 12

    def test_explicit_method_overrides_settings(self):
        flasher = create_flasher("espflash", FlashSettings(method="esptool"))

        assert isinstance(flasher, EspflashFlasher)

    def test_unknown_method_raises_config_error(self):
        with pytest.raises(ConfigError, match="Unknown flash method"):
            create_flasher("jtag", FlashSettings())

    def test_available_methods_reflect_installed_tools(self):
        with patch(WHICH, side_effect=lambda name: "/bin/esptool" if name == "esptool" else None):
            assert flasher_registry.get_available_methods(FlashSettings()) == ["esptool"]
