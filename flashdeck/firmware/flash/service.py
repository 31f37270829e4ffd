"""Flash orchestrator: selection queries plus single-session flash control."""

import threading
from typing import TYPE_CHECKING

from flashdeck.core.errors import InvalidStateError
from flashdeck.core.structlog_logger import StructlogMixin
from flashdeck.firmware.flash.models import FlashRequest, PortDescriptor
from flashdeck.firmware.flash.session import FlashSession


if TYPE_CHECKING:
    from flashdeck.config.models.settings import FlashdeckSettings
    from flashdeck.firmware.catalog import FirmwareCatalogResolver
    from flashdeck.firmware.flash.port_registry import PortRegistry
    from flashdeck.firmware.models import FirmwareArtifact
    from flashdeck.protocols import FlasherProtocol


class FlashService(StructlogMixin):
    """Serial firmware flash service.

    Answers port and firmware queries for a selection screen, turns a
    complete selection into a FlashRequest and runs it in a FlashSession.
    At most one session is in flight at a time, which gives it exclusive
    use of the serial port.
    """

    service_name = "FlashService"
    service_version = "1.0.0"

    def __init__(
        self,
        port_registry: "PortRegistry",
        resolver: "FirmwareCatalogResolver",
        flasher: "FlasherProtocol",
        settings: "FlashdeckSettings",
    ) -> None:
        """Initialize flash service with dependencies.

        Args:
            port_registry: Serial port snapshot
            resolver: Firmware catalog resolver
            flasher: Low-level flasher used by every session
            settings: Application settings (timeouts and buffer sizes)
        """
        super().__init__()
        self.port_registry = port_registry
        self.resolver = resolver
        self.flasher = flasher
        self.settings = settings
        self._lock = threading.Lock()
        self._session: FlashSession | None = None
        self.logger.debug(
            "flash_service_initialized", flasher=type(flasher).__name__
        )

    def list_ports(self, refresh: bool = True) -> tuple[PortDescriptor, ...]:
        """Return the port snapshot, rescanning first unless ``refresh`` is False.

        Raises:
            DiscoveryError: If the rescan fails; the previous snapshot is kept
        """
        if refresh:
            return self.port_registry.refresh(
                timeout=self.settings.flash.port_scan_timeout
            )
        return self.port_registry.current()

    def refresh_firmware(self) -> tuple["FirmwareArtifact", ...]:
        """Rescan the firmware catalog.

        Raises:
            DiscoveryError: If the scan fails; the catalog is left empty
        """
        return self.resolver.refresh()

    def list_roles(self) -> list[str]:
        return self.resolver.available_roles()

    def list_versions(self, role: str) -> list[str]:
        return self.resolver.available_versions(role)

    def resolve(self, role: str, version: str) -> "FirmwareArtifact":
        return self.resolver.resolve(role, version)

    def build_request(
        self,
        role: str,
        version: str,
        port: str,
        include_aux_storage: bool = False,
        baud_rate_override: int | None = None,
    ) -> FlashRequest:
        """Resolve (role, version) and bind it to ``port``.

        Raises:
            CatalogValidationError: If role or version is empty
            ArtifactNotFoundError: If the catalog has no such build
            AmbiguousCatalogError: If the catalog has duplicate builds
        """
        artifact = self.resolver.resolve(role, version)
        return FlashRequest(
            port=port,
            artifact=artifact,
            include_aux_storage=include_aux_storage,
            baud_rate_override=baud_rate_override,
        )

    @property
    def current_session(self) -> FlashSession | None:
        with self._lock:
            return self._session

    def start_flash(
        self, request: FlashRequest, timeout: float | None = None
    ) -> FlashSession:
        """Run ``request`` in a new session and return it immediately.

        Args:
            request: Flash request to run
            timeout: Session timeout; defaults to ``flash.timeout`` from settings

        Raises:
            InvalidStateError: If a previous session has not finished or its
                flasher is still running after a timeout
        """
        with self._lock:
            previous = self._session
            if previous is not None and not previous.is_terminal:
                raise InvalidStateError(
                    f"A flash is already in progress (session {previous.session_id})"
                )
            if previous is not None and previous.is_releasing:
                raise InvalidStateError(
                    f"Session {previous.session_id} timed out but its flasher "
                    "still holds the port"
                )
            session = FlashSession(
                flasher=self.flasher,
                port_registry=self.port_registry,
                timeout=timeout if timeout is not None else self.settings.flash.timeout,
                buffer_size=self.settings.flash.buffer_size,
            )
            self._session = session
            # Submitted under the lock so a racing start_flash sees a non-idle session
            session.submit(request)

        self.log_operation("start_flash", session_id=session.session_id).info(
            "flash_session_created", port=request.port, state=session.state.value
        )
        return session

    def reset(self) -> None:
        """Discard a finished session so the service is idle again.

        Raises:
            InvalidStateError: If a flash is still in flight
        """
        with self._lock:
            if self._session is not None and self._session.is_busy:
                raise InvalidStateError("Cannot reset while a flash is in progress")
            self._session = None
        self.logger.debug("flash_service_reset")


def create_flash_service(
    settings: "FlashdeckSettings | None" = None,
    port_registry: "PortRegistry | None" = None,
    resolver: "FirmwareCatalogResolver | None" = None,
    flasher: "FlasherProtocol | None" = None,
) -> FlashService:
    """Create a FlashService with default collaborators.

    Args:
        settings: Application settings; loaded from the environment when None
        port_registry: Port registry; pyserial-backed when None
        resolver: Firmware resolver; scans ``settings.firmware_dirs`` when None
        flasher: Flasher; built from ``settings.flash.method`` when None

    Returns:
        Configured FlashService instance
    """
    from flashdeck.config.models.settings import FlashdeckSettings
    from flashdeck.firmware.catalog import create_firmware_resolver
    from flashdeck.firmware.flash.method_registry import create_flasher
    from flashdeck.firmware.flash.port_registry import create_port_registry

    settings = settings or FlashdeckSettings()
    return FlashService(
        port_registry=port_registry or create_port_registry(),
        resolver=resolver or create_firmware_resolver(settings.firmware_dirs),
        flasher=flasher or create_flasher(settings=settings.flash),
        settings=settings,
    )
