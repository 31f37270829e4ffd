"""Protocol definition for serial port discovery."""

from typing import Protocol, runtime_checkable

from flashdeck.firmware.flash.models import PortDescriptor


@runtime_checkable
class SerialAdapterProtocol(Protocol):
    """Protocol for serial port discovery."""

    def list_ports(self) -> list[PortDescriptor]:
        """List the serial ports currently present.

        Returns:
            PortDescriptor objects, sorted by port name

        Raises:
            DiscoveryError: If the ports cannot be enumerated
        """
        ...
