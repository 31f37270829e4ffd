"""Rich display components for the CLI."""

from flashdeck.cli.components.progress_display import FlashProgressDisplay


__all__ = ["FlashProgressDisplay"]
