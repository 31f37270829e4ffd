"""Tests for streaming subprocess execution."""

import subprocess
import sys

import pytest

from flashdeck.utils.stream_process import (
    LoggingOutputMiddleware,
    OutputMiddleware,
    run_command,
)


class RecordingMiddleware(OutputMiddleware[str]):
    def __init__(self) -> None:
        self.seen: list[tuple[str, str]] = []

    def process(self, line: str, stream_type: str) -> str | None:
        self.seen.append((stream_type, line))
        if line.startswith("skip"):
            return None
        return line.upper()


def python_cmd(code: str) -> list[str]:
    return [sys.executable, "-c", code]


class TestRunCommand:
    def test_captures_both_streams(self):
        middleware = RecordingMiddleware()

        code, stdout, stderr = run_command(
            python_cmd(
                "import sys; print('hello'); print('skip me'); "
                "print('oops', file=sys.stderr)"
            ),
            middleware,
        )

        assert code == 0
        assert stdout == ["HELLO"]
        assert stderr == ["OOPS"]
        assert ("stdout", "skip me") in middleware.seen

    def test_carriage_returns_split_lines(self):
        _, stdout, _ = run_command(
            python_cmd("import sys; sys.stdout.write('10%\\r50%\\r100%\\n')"),
            LoggingOutputMiddleware("progress"),
        )

        assert stdout == ["10%", "50%", "100%"]

    def test_non_zero_exit_code_is_returned(self):
        code, _, _ = run_command(python_cmd("raise SystemExit(3)"), RecordingMiddleware())

        assert code == 3

    def test_string_command_is_split(self):
        code, stdout, _ = run_command(
            f'"{sys.executable}" -c "print(42)"', LoggingOutputMiddleware("py")
        )

        assert code == 0
        assert stdout == ["42"]

    def test_missing_executable_raises(self):
        with pytest.raises(FileNotFoundError):
            run_command(["definitely-not-a-real-tool-xyz"], RecordingMiddleware())

    def test_timeout_kills_process(self):
        with pytest.raises(subprocess.TimeoutExpired):
            run_command(
                python_cmd("import time; time.sleep(30)"),
                RecordingMiddleware(),
                timeout=0.5,
            )
