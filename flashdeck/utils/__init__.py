"""Utility modules for flashdeck."""

from flashdeck.utils.stream_process import OutputMiddleware, ProcessResult, run_command


__all__ = ["OutputMiddleware", "ProcessResult", "run_command"]
