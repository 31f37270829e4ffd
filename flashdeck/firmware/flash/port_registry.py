"""Refreshable snapshot of available serial ports."""

import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TYPE_CHECKING

from flashdeck.core.errors import DiscoveryError
from flashdeck.core.structlog_logger import get_struct_logger
from flashdeck.firmware.flash.models import PortDescriptor


if TYPE_CHECKING:
    from flashdeck.protocols import SerialAdapterProtocol


logger = get_struct_logger(__name__)


class PortRegistry:
    """Holds the latest serial port snapshot.

    Snapshots are replaced whole; a failed refresh leaves the previous one
    in place.
    """

    def __init__(self, serial_adapter: "SerialAdapterProtocol") -> None:
        self.serial_adapter = serial_adapter
        self._lock = threading.Lock()
        self._snapshot: tuple[PortDescriptor, ...] = ()
        self._scan_seq = 0
        self._applied_seq = 0
        self._executor = self._new_executor()

    @staticmethod
    def _new_executor() -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=1, thread_name_prefix="flashdeck-port-scan")

    def refresh(self, timeout: float | None = None) -> tuple[PortDescriptor, ...]:
        """Rescan ports and replace the snapshot.

        A scan that times out is abandoned along with its worker, so the next
        refresh runs on a fresh one. Snapshots are applied in scan order; a
        scan that finishes after a newer one has been applied is discarded.

        Args:
            timeout: Seconds to wait for the scan; None waits indefinitely

        Returns:
            The new snapshot, or the current one if this scan was superseded

        Raises:
            DiscoveryError: If the scan fails or times out
        """
        with self._lock:
            # Submitted under the lock so scan order matches sequence order
            self._scan_seq += 1
            seq = self._scan_seq
            executor = self._executor
            future = executor.submit(self.serial_adapter.list_ports)
        try:
            ports = tuple(future.result(timeout=timeout))
        except FutureTimeoutError as e:
            future.cancel()
            self._abandon(executor)
            logger.warning("port_scan_timed_out", timeout=timeout, scan=seq)
            raise DiscoveryError(f"Port scan timed out after {timeout}s") from e
        except DiscoveryError as e:
            logger.warning("port_scan_failed", error=str(e))
            raise
        except Exception as e:
            logger.warning("port_scan_failed", error=str(e))
            raise DiscoveryError(f"Port scan failed: {e}") from e

        with self._lock:
            if seq < self._applied_seq:
                logger.debug("stale_port_scan_discarded", scan=seq, applied=self._applied_seq)
                return self._snapshot
            self._applied_seq = seq
            self._snapshot = ports
        logger.debug("port_snapshot_replaced", ports=[p.port_name for p in ports], scan=seq)
        return ports

    def _abandon(self, executor: ThreadPoolExecutor) -> None:
        """Swap out a worker stuck in a hung scan."""
        with self._lock:
            if self._executor is executor:
                self._executor = self._new_executor()
        # The hung call keeps running; its result is never read
        executor.shutdown(wait=False, cancel_futures=True)

    def current(self) -> tuple[PortDescriptor, ...]:
        """The last successful snapshot."""
        with self._lock:
            return self._snapshot

    def get(self, port_name: str) -> PortDescriptor | None:
        """Look up a port in the current snapshot."""
        for port in self.current():
            if port.port_name == port_name:
                return port
        return None

    def __contains__(self, port_name: object) -> bool:
        return isinstance(port_name, str) and self.get(port_name) is not None

    def close(self) -> None:
        """Release the scan worker without waiting for a hung scan."""
        with self._lock:
            executor = self._executor
        executor.shutdown(wait=False, cancel_futures=True)


def create_port_registry(
    serial_adapter: "SerialAdapterProtocol | None" = None,
) -> PortRegistry:
    """Create a PortRegistry, defaulting to the pyserial adapter."""
    if serial_adapter is None:
        from flashdeck.adapters.serial_adapter import create_serial_adapter

        serial_adapter = create_serial_adapter()
    return PortRegistry(serial_adapter)
