"""Process execution and streaming output handling.

Runs a subprocess and feeds every stdout/stderr line through an
OutputMiddleware as it arrives, so long-running tools can report progress
in real time.

Example:
    ```python
    from flashdeck.utils.stream_process import run_command, OutputMiddleware

    class EchoMiddleware(OutputMiddleware[str]):
        def process(self, line: str, stream_type: str) -> str:
            print(f"[{stream_type}] {line}")
            return line

    return_code, stdout, stderr = run_command(["espflash", "--version"], EchoMiddleware())
    ```
"""

import shlex
import subprocess
from threading import Thread
from typing import Any, Generic, TypeAlias, TypeVar

from flashdeck.core.structlog_logger import get_struct_logger


logger = get_struct_logger(__name__)

T = TypeVar("T")  # Type of processed output

# (return_code, stdout, stderr)
ProcessResult: TypeAlias = tuple[int, list[T], list[T]]


class OutputMiddleware(Generic[T]):
    """Base class for processing command output streams.

    Returning None from ``process`` drops the line from the captured output.
    """

    def process(self, line: str, stream_type: str) -> T | None:
        """Process a line of output from a subprocess stream.

        Args:
            line: A line of text from the process output
            stream_type: Either "stdout" or "stderr"

        Returns:
            Processed output of type T, or None to drop the line
        """
        raise NotImplementedError()


class LoggingOutputMiddleware(OutputMiddleware[str]):
    """Logs each line at debug level and captures it unchanged."""

    def __init__(self, command_name: str) -> None:
        self.command_name = command_name

    def process(self, line: str, stream_type: str) -> str:
        if line:
            logger.debug(
                "process_output", command=self.command_name, stream=stream_type, line=line
            )
        return line


def run_command(
    cmd: str | list[str],
    middleware: OutputMiddleware[T],
    timeout: float | None = None,
) -> ProcessResult[T]:
    """Run a command and process its output through middleware.

    Lines are split on both ``\\n`` and ``\\r`` so carriage-return progress
    bars arrive as separate lines.

    Args:
        cmd: Command to run, either as a string or list of arguments
        middleware: Middleware receiving every output line
        timeout: Seconds to wait for the process; None waits indefinitely

    Returns:
        Tuple of (return code, processed stdout lines, processed stderr lines)

    Raises:
        FileNotFoundError: If the executable does not exist
        subprocess.TimeoutExpired: If the process outlives ``timeout``; it is
            killed before the exception propagates
    """
    if isinstance(cmd, str):
        cmd = shlex.split(cmd)

    logger.debug("running_command", cmd=cmd, timeout=timeout)

    # Text mode uses universal newlines, which also splits on "\r"
    process = subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.DEVNULL,
        text=True,
        bufsize=1,
        errors="replace",
    )

    def stream_output(stream: Any, stream_type: str) -> list[T]:
        captured: list[T] = []
        for line in iter(stream.readline, ""):
            if line:
                processed = middleware.process(line.rstrip(), stream_type)
                if processed is not None:
                    captured.append(processed)
        stream.close()
        return captured

    stdout_lines: list[T] = []
    stderr_lines: list[T] = []

    stdout_thread = Thread(
        target=lambda: stdout_lines.extend(stream_output(process.stdout, "stdout"))
    )
    stderr_thread = Thread(
        target=lambda: stderr_lines.extend(stream_output(process.stderr, "stderr"))
    )

    stdout_thread.daemon = True
    stderr_thread.daemon = True

    stdout_thread.start()
    stderr_thread.start()

    try:
        return_code = process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning("command_timed_out", cmd=cmd, timeout=timeout)
        process.kill()
        process.wait()
        stdout_thread.join()
        stderr_thread.join()
        raise

    stdout_thread.join()
    stderr_thread.join()

    logger.debug("command_finished", cmd=cmd, return_code=return_code)
    return return_code, stdout_lines, stderr_lines
