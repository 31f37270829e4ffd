"""Rich progress bar fed by a flash session subscription."""

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from flashdeck.cli.helpers.theme import FLASHDECK_THEME, Colors
from flashdeck.core.structlog_logger import get_struct_logger
from flashdeck.firmware.flash.channel import Subscription
from flashdeck.firmware.flash.models import OutcomeEvent


logger = get_struct_logger(__name__)


class FlashProgressDisplay:
    """Renders one session's progress events until its outcome arrives."""

    def __init__(self, console: Console | None = None, transient: bool = False) -> None:
        self.console = console or Console(theme=FLASHDECK_THEME)
        self.transient = transient

    def _create_progress(self) -> Progress:
        return Progress(
            SpinnerColumn(),
            TextColumn(f"[{Colors.PRIMARY}]{{task.description:<10}}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            TextColumn(f"[{Colors.MUTED}]{{task.fields[message]}}"),
            console=self.console,
            transient=self.transient,
        )

    def run(
        self, subscription: Subscription, timeout: float | None = None
    ) -> OutcomeEvent | None:
        """Consume ``subscription`` to its end, drawing each progress event.

        Args:
            subscription: Session subscription to drain
            timeout: Longest wait for any single event

        Returns:
            The session outcome, or None if the subscription was closed first

        Raises:
            TimeoutError: If no event arrives within ``timeout``
        """
        outcome: OutcomeEvent | None = None
        with subscription, self._create_progress() as progress:
            task = progress.add_task("waiting", total=100, message="")
            for event in subscription.events(timeout):
                if isinstance(event, OutcomeEvent):
                    outcome = event
                    continue
                progress.update(
                    task,
                    completed=event.percentage,
                    description=event.stage,
                    message=event.message,
                )
            if outcome is not None and outcome.success:
                progress.update(task, completed=100)

        if subscription.dropped:
            logger.debug("progress_events_dropped", count=subscription.dropped)
        return outcome
