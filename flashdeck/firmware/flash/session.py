"""Flash session: the state machine around one flash attempt."""

import threading
import uuid
from typing import TYPE_CHECKING

from flashdeck.core.errors import InvalidStateError
from flashdeck.core.structlog_logger import get_struct_logger_with_context, is_debug_enabled
from flashdeck.firmware.flash.channel import DEFAULT_BUFFER_SIZE, ProgressChannel, Subscription
from flashdeck.firmware.flash.models import (
    FlashRequest,
    OutcomeEvent,
    ProgressEvent,
    SessionState,
)


if TYPE_CHECKING:
    from flashdeck.firmware.flash.port_registry import PortRegistry
    from flashdeck.protocols import FlasherProtocol


class FlashSession:
    """Drives one flash attempt from submission to a single outcome.

    States move IDLE -> VALIDATING -> IN_PROGRESS -> SUCCEEDED | FAILED, or
    VALIDATING -> FAILED when the request does not validate. Terminal states
    are final; a retry needs a new session.

    The flasher runs on a daemon thread. Its progress is forwarded to the
    session's channel only while IN_PROGRESS, so nothing reaches subscribers
    after the outcome.
    """

    def __init__(
        self,
        flasher: "FlasherProtocol",
        port_registry: "PortRegistry",
        timeout: float | None = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        """Initialize the session.

        Args:
            flasher: Low-level flasher that performs the operation
            port_registry: Registry whose current snapshot validates the port
            timeout: Seconds before a running flash is reported as failed
            buffer_size: Per-subscriber progress buffer size
        """
        self.flasher = flasher
        self.port_registry = port_registry
        self.timeout = timeout
        self.session_id = uuid.uuid4().hex[:8]
        self.channel = ProgressChannel(buffer_size)

        self._lock = threading.RLock()
        self._done = threading.Event()
        self._released = threading.Event()
        self._state = SessionState.IDLE
        self._request: FlashRequest | None = None
        self._outcome: OutcomeEvent | None = None
        self._thread: threading.Thread | None = None
        self._timer: threading.Timer | None = None
        self._logger = get_struct_logger_with_context(
            __name__, session_id=self.session_id
        )

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def request(self) -> FlashRequest | None:
        with self._lock:
            return self._request

    @property
    def outcome(self) -> OutcomeEvent | None:
        with self._lock:
            return self._outcome

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def is_releasing(self) -> bool:
        """True while the flasher call has not returned.

        A timed-out session is terminal but its flasher may still hold the
        port until the tool exits.
        """
        with self._lock:
            started = self._thread is not None
        return started and not self._released.is_set()

    @property
    def is_busy(self) -> bool:
        """True until the session is terminal and its flasher has returned."""
        return not self.is_terminal or self.is_releasing

    def subscribe(self) -> Subscription:
        """Subscribe to this session's progress and outcome."""
        return self.channel.subscribe()

    def wait(self, timeout: float | None = None) -> OutcomeEvent | None:
        """Block until the session is terminal.

        Returns:
            The outcome, or None if ``timeout`` elapsed first
        """
        self._done.wait(timeout)
        return self.outcome

    def submit(self, request: FlashRequest) -> None:
        """Validate the request and start the flash without waiting for it.

        A request that fails validation ends the session as FAILED with a
        single outcome and no progress.

        Raises:
            InvalidStateError: If the session is not IDLE
        """
        with self._lock:
            if self._state is not SessionState.IDLE:
                raise InvalidStateError(
                    f"Cannot submit a flash request while session is {self._state.value}"
                )
            self._state = SessionState.VALIDATING
            self._request = request

        self._logger.info(
            "flash_request_submitted",
            port=request.port,
            role=request.artifact.role,
            version=request.artifact.version,
            include_aux_storage=request.include_aux_storage,
        )

        problem = self._validate(request)
        if problem is not None:
            self._logger.warning("flash_request_invalid", reason=problem)
            self._finish(OutcomeEvent(success=False, message=problem))
            return

        with self._lock:
            self._state = SessionState.IN_PROGRESS
            self._thread = threading.Thread(
                target=self._run,
                args=(request,),
                name=f"flashdeck-flash-{self.session_id}",
                daemon=True,
            )
            if self.timeout is not None:
                self._timer = threading.Timer(self.timeout, self._on_timeout)
                self._timer.daemon = True
            thread, timer = self._thread, self._timer

        try:
            thread.start()
        except RuntimeError as e:
            self._released.set()
            self._finish(OutcomeEvent(success=False, message=f"Failed to start flash: {e}"))
            return

        if timer is not None:
            timer.start()
        self._logger.info("flash_session_started", port=request.port, timeout=self.timeout)

    def _validate(self, request: FlashRequest) -> str | None:
        if request.port not in self.port_registry:
            return f"Port '{request.port}' is not available"
        if not request.artifact.path.strip():
            return f"Firmware {request.artifact.label} has no path"
        return None

    def _on_progress(self, event: ProgressEvent) -> None:
        with self._lock:
            if self._state is not SessionState.IN_PROGRESS:
                self._logger.debug("late_progress_dropped", stage=event.stage)
                return
            self.channel.publish(event.clamped())

    def _run(self, request: FlashRequest) -> None:
        try:
            result = self.flasher.flash(request, self._on_progress)
        except Exception as e:
            self._logger.error(
                "flash_operation_failed",
                error=str(e),
                error_type=e.__class__.__name__,
                exc_info=is_debug_enabled(),
            )
            outcome = OutcomeEvent(success=False, message=str(e) or e.__class__.__name__)
        else:
            outcome = OutcomeEvent(success=result.is_success(), message=result.summary())
        finally:
            # Set before _finish so a completed run never reads as releasing
            self._released.set()

        if not self._finish(outcome):
            self._logger.debug("late_result_ignored", success=outcome.success)

    def _on_timeout(self) -> None:
        if self._finish(
            OutcomeEvent(success=False, message=f"Flash timed out after {self.timeout}s")
        ):
            self._logger.error("flash_session_timed_out", timeout=self.timeout)

    def _finish(self, outcome: OutcomeEvent) -> bool:
        """Move to the terminal state for ``outcome`` unless already terminal."""
        with self._lock:
            if self._state.is_terminal:
                return False
            self._state = SessionState.SUCCEEDED if outcome.success else SessionState.FAILED
            self._outcome = outcome
            self.channel.publish(outcome)
            timer = self._timer

        if timer is not None:
            timer.cancel()
        self._done.set()
        self._logger.info(
            "flash_session_finished",
            state=self._state.value,
            success=outcome.success,
            message=outcome.message,
        )
        return True
