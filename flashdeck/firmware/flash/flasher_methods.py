"""Flash method implementations backed by external ESP flashing tools."""

import hashlib
import re
import shutil
import subprocess
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from flashdeck.core.errors import OperationError
from flashdeck.core.structlog_logger import get_struct_logger
from flashdeck.firmware.catalog import load_manifest
from flashdeck.firmware.flash.models import FlashRequest, FlashResult, ProgressEvent
from flashdeck.firmware.models import MANIFEST_FILENAME, FirmwareManifest, FlashFile
from flashdeck.utils.stream_process import OutputMiddleware, run_command


if TYPE_CHECKING:
    from flashdeck.config.models.flash import FlashSettings
    from flashdeck.protocols import ProgressCallback


logger = get_struct_logger(__name__)

PERCENT_PATTERN = re.compile(r"(\d+)%")

# Overall percentage band covered by the write phase
FLASH_START_PERCENT = 10.0
FLASH_SPAN_PERCENT = 80.0
FLASH_MAX_PERCENT = 99.0


def overall_percentage(index: int, count: int, file_percent: float) -> float:
    """Overall progress while writing file ``index`` (0-based) of ``count``."""
    if count <= 0:
        return FLASH_START_PERCENT
    overall = FLASH_START_PERCENT + FLASH_SPAN_PERCENT * (index + file_percent / 100) / count
    return min(FLASH_MAX_PERCENT, max(FLASH_START_PERCENT, overall))


class PercentProgressMiddleware(OutputMiddleware[str]):
    """Turns ``NN%`` fragments in tool output into flashing progress events.

    Both output streams share one dedupe state, so a percentage is reported
    once however many times the tool repeats it.
    """

    def __init__(
        self,
        flash_file: FlashFile,
        index: int,
        count: int,
        on_progress: "ProgressCallback",
    ) -> None:
        self.flash_file = flash_file
        self.index = index
        self.count = count
        self.on_progress = on_progress
        self._lock = threading.Lock()
        self._last_percent = -1

    def process(self, line: str, stream_type: str) -> str:
        match = PERCENT_PATTERN.search(line)
        if match:
            self._report(int(match.group(1)))
        elif line:
            logger.debug("flash_tool_output", stream=stream_type, line=line)
        return line

    def _report(self, percent: int) -> None:
        with self._lock:
            if percent == self._last_percent:
                return
            self._last_percent = percent
            self.on_progress(
                ProgressEvent(
                    stage="flashing",
                    current=self.index + 1,
                    total=self.count,
                    percentage=overall_percentage(self.index, self.count, percent),
                    message=f"{self.flash_file.path}: {percent}%",
                )
            )


def sha256_of(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


class SubprocessFlasher:
    """Base flasher that writes each manifest image with an external tool.

    Implements FlasherProtocol. Subclasses name the tool and build its
    command line; the stage sequence and failure mapping are shared.
    """

    tool_name: str = ""

    def __init__(
        self, tool_path: str | None = None, timeout: float | None = None
    ) -> None:
        """Initialize the flasher.

        Args:
            tool_path: Explicit tool location; looked up on PATH when None
            timeout: Seconds allowed for each tool invocation
        """
        self.tool_path = tool_path
        self.timeout = timeout
        logger.debug(
            "flasher_initialized", tool=self.tool_name, tool_path=tool_path, timeout=timeout
        )

    @classmethod
    def from_settings(cls, settings: "FlashSettings") -> "SubprocessFlasher":
        return cls(tool_path=settings.tool_path, timeout=settings.timeout)

    def build_command(
        self, executable: str, port: str, baud: int, flash_file: FlashFile, file_path: Path
    ) -> list[str]:
        raise NotImplementedError()

    def find_executable(self) -> str | None:
        """Resolve the tool, honoring an explicit ``tool_path``."""
        if self.tool_path:
            return shutil.which(self.tool_path)
        return shutil.which(self.tool_name)

    def check_available(self) -> bool:
        return self.find_executable() is not None

    def flash(self, request: FlashRequest, on_progress: "ProgressCallback") -> FlashResult:
        """Flash every selected manifest image to the request's port.

        Raises:
            OperationError: On a missing or invalid manifest, a missing or
                corrupt image, a missing tool, a tool failure or a timeout
        """
        artifact_dir = Path(request.artifact.path)
        manifest = self._load_manifest(artifact_dir)
        baud = request.baud_rate_override or manifest.baud

        logger.info(
            "flash_started",
            tool=self.tool_name,
            port=request.port,
            firmware=request.artifact.label,
            baud=baud,
        )
        on_progress(
            ProgressEvent(
                stage="preparing", total=100, percentage=0.0, message="Preparing to flash"
            )
        )

        files = manifest.files_to_flash(request.include_aux_storage)
        if not files:
            raise OperationError(f"Manifest for {request.artifact.label} lists no files to flash")

        on_progress(
            ProgressEvent(
                stage="verifying",
                total=100,
                percentage=5.0,
                message="Verifying firmware files",
            )
        )
        file_paths = [self._verify_file(artifact_dir, f) for f in files]

        executable = self.find_executable()
        if executable is None:
            raise OperationError(
                f"{self.tool_name} executable not found; install it or set flash.tool_path"
            )

        on_progress(
            ProgressEvent(
                stage="connecting",
                total=100,
                percentage=FLASH_START_PERCENT,
                message=f"Connecting to {request.port} ({baud} baud)",
            )
        )

        count = len(files)
        for index, (flash_file, file_path) in enumerate(zip(files, file_paths, strict=True)):
            on_progress(
                ProgressEvent(
                    stage="flashing",
                    current=index + 1,
                    total=count,
                    percentage=overall_percentage(index, count, 0),
                    message=f"Flashing {flash_file.path} ({index + 1}/{count})",
                )
            )
            cmd = self.build_command(executable, request.port, baud, flash_file, file_path)
            middleware = PercentProgressMiddleware(flash_file, index, count, on_progress)
            self._run_tool(cmd, middleware)

        on_progress(
            ProgressEvent(
                stage="completed",
                current=count,
                total=count,
                percentage=100.0,
                message="Flash complete",
            )
        )

        result = FlashResult(success=True, port=request.port, files_flashed=count)
        result.add_message(
            f"Flashed {request.artifact.label} to {request.port} ({count} file(s))"
        )
        logger.info("flash_completed", port=request.port, files=count)
        return result

    def _load_manifest(self, artifact_dir: Path) -> FirmwareManifest:
        manifest_path = artifact_dir / MANIFEST_FILENAME
        if not manifest_path.is_file():
            raise OperationError(f"Manifest file not found: {manifest_path}")
        try:
            return load_manifest(manifest_path)
        except (OSError, ValueError) as e:
            raise OperationError(f"Invalid manifest {manifest_path}: {e}") from e

    def _verify_file(self, artifact_dir: Path, flash_file: FlashFile) -> Path:
        file_path = artifact_dir / flash_file.path
        if not file_path.is_file():
            raise OperationError(f"Firmware file not found: {file_path}")
        if flash_file.sha256:
            try:
                actual = sha256_of(file_path)
            except OSError as e:
                raise OperationError(f"Cannot read firmware file {file_path}: {e}") from e
            if actual.lower() != flash_file.sha256.lower():
                raise OperationError(
                    f"Checksum mismatch for {flash_file.path}: "
                    f"expected {flash_file.sha256}, got {actual}"
                )
        return file_path

    def _run_tool(self, cmd: list[str], middleware: PercentProgressMiddleware) -> None:
        try:
            return_code, stdout, stderr = run_command(cmd, middleware, timeout=self.timeout)
        except FileNotFoundError as e:
            raise OperationError(f"Failed to execute {self.tool_name}: {e}") from e
        except subprocess.TimeoutExpired as e:
            raise OperationError(
                f"{self.tool_name} did not finish within {self.timeout}s"
            ) from e

        if return_code != 0:
            logger.error("flash_tool_failed", tool=self.tool_name, return_code=return_code)
            stderr_text = "\n".join(stderr)
            stdout_text = "\n".join(stdout)
            raise OperationError(
                f"{self.tool_name} failed with exit code {return_code}:\n"
                f"STDERR: {stderr_text}\nSTDOUT: {stdout_text}"
            )


class EspflashFlasher(SubprocessFlasher):
    """Flashes with ``espflash write-bin``."""

    tool_name = "espflash"

    def build_command(
        self, executable: str, port: str, baud: int, flash_file: FlashFile, file_path: Path
    ) -> list[str]:
        return [
            executable,
            "write-bin",
            "--port",
            port,
            "--baud",
            str(baud),
            flash_file.offset,
            str(file_path),
        ]


class EsptoolFlasher(SubprocessFlasher):
    """Flashes with ``esptool write_flash``."""

    tool_name = "esptool"

    def build_command(
        self, executable: str, port: str, baud: int, flash_file: FlashFile, file_path: Path
    ) -> list[str]:
        return [
            executable,
            "--port",
            port,
            "--baud",
            str(baud),
            "write_flash",
            flash_file.offset,
            str(file_path),
        ]
