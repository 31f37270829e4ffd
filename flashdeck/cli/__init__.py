"""Command-line interface for flashdeck."""

from flashdeck.cli.app import app, main


__all__ = ["app", "main"]
