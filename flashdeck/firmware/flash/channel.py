"""Per-session progress stream with independent, bounded subscribers."""

import threading
from collections import deque
from collections.abc import Iterator

from flashdeck.core.errors import InvalidStateError
from flashdeck.core.structlog_logger import get_struct_logger
from flashdeck.firmware.flash.models import ChannelEvent, OutcomeEvent, ProgressEvent


logger = get_struct_logger(__name__)

DEFAULT_BUFFER_SIZE = 256


class Subscription:
    """One subscriber's view of a ProgressChannel.

    Iterating yields progress events in publish order and ends after the
    outcome. Progress is buffered up to ``buffer_size`` events; when the
    consumer falls behind the oldest buffered progress is discarded. The
    outcome is held separately and is always delivered.
    """

    def __init__(
        self,
        channel: "ProgressChannel",
        buffer_size: int,
        history: tuple[ProgressEvent, ...] = (),
        outcome: OutcomeEvent | None = None,
    ) -> None:
        self._channel = channel
        self._cond = threading.Condition()
        self._buffer: deque[ProgressEvent] = deque(history, maxlen=buffer_size)
        self._outcome = outcome
        self._outcome_delivered = False
        self._closed = False
        self.dropped = 0

    def _push(self, event: ProgressEvent) -> None:
        with self._cond:
            if self._closed:
                return
            if len(self._buffer) == self._buffer.maxlen:
                self.dropped += 1
            self._buffer.append(event)
            self._cond.notify_all()

    def _finish(self, outcome: OutcomeEvent) -> None:
        with self._cond:
            self._outcome = outcome
            self._cond.notify_all()

    def _ready(self) -> bool:
        return bool(self._buffer) or self._outcome is not None or self._closed

    def _take(self, timeout: float | None) -> ChannelEvent | None:
        """Next event, or None once the stream has ended."""
        with self._cond:
            if not self._cond.wait_for(self._ready, timeout=timeout):
                raise TimeoutError(f"No progress event within {timeout}s")
            if self._buffer:
                return self._buffer.popleft()
            if self._closed or self._outcome_delivered:
                return None
            self._outcome_delivered = True
            return self._outcome

    def events(self, timeout: float | None = None) -> Iterator[ChannelEvent]:
        """Iterate events, waiting at most ``timeout`` seconds for each.

        Raises:
            TimeoutError: If no event arrives in time
        """
        while True:
            event = self._take(timeout)
            if event is None:
                return
            yield event

    def __iter__(self) -> Iterator[ChannelEvent]:
        return self.events()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop receiving events and detach from the channel."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            self._buffer.clear()
            self._cond.notify_all()
        self._channel._detach(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ProgressChannel:
    """Ordered stream of ProgressEvents terminated by exactly one OutcomeEvent.

    ``publish`` never blocks. The channel retains the last ``buffer_size``
    progress events and the outcome so late subscribers see the same
    sequence, minus anything discarded under the buffer bound.
    """

    def __init__(self, buffer_size: int = DEFAULT_BUFFER_SIZE) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self.buffer_size = buffer_size
        self._lock = threading.Lock()
        self._history: deque[ProgressEvent] = deque(maxlen=buffer_size)
        self._outcome: OutcomeEvent | None = None
        self._subscribers: list[Subscription] = []

    def publish(self, event: ChannelEvent) -> None:
        """Deliver an event to every subscriber.

        Raises:
            InvalidStateError: If the outcome has already been published
        """
        with self._lock:
            if self._outcome is not None:
                raise InvalidStateError("Channel already carries an outcome")

            if isinstance(event, OutcomeEvent):
                self._outcome = event
                subscribers, self._subscribers = self._subscribers, []
                for subscriber in subscribers:
                    subscriber._finish(event)
                logger.debug(
                    "channel_outcome_published",
                    success=event.success,
                    subscribers=len(subscribers),
                )
                return

            event = event.clamped()
            self._history.append(event)
            for subscriber in self._subscribers:
                subscriber._push(event)

    def subscribe(self) -> Subscription:
        """Open a subscription that replays retained history, then live events."""
        with self._lock:
            subscription = Subscription(
                self, self.buffer_size, tuple(self._history), self._outcome
            )
            if self._outcome is None:
                self._subscribers.append(subscription)
        return subscription

    def _detach(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    @property
    def outcome(self) -> OutcomeEvent | None:
        with self._lock:
            return self._outcome

    @property
    def is_closed(self) -> bool:
        """Whether the outcome has been published."""
        return self.outcome is not None

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def history(self) -> tuple[ProgressEvent, ...]:
        """Retained progress events, oldest first."""
        with self._lock:
            return tuple(self._history)
