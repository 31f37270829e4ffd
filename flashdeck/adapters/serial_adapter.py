"""Serial port adapter backed by pyserial."""

from typing import Any

from serial.tools import list_ports

from flashdeck.core.errors import DiscoveryError
from flashdeck.core.structlog_logger import get_struct_logger
from flashdeck.firmware.flash.models import PortDescriptor


logger = get_struct_logger(__name__)


def classify_port(port: Any) -> str:
    """Port type from pyserial's port info: USB, Bluetooth, PCI or Unknown."""
    if getattr(port, "vid", None) is not None:
        return "USB"
    hwid = (getattr(port, "hwid", "") or "").upper()
    description = (getattr(port, "description", "") or "").upper()
    if "BTHENUM" in hwid or "BLUETOOTH" in hwid or "BLUETOOTH" in description:
        return "Bluetooth"
    if hwid.startswith("PCI"):
        return "PCI"
    return "Unknown"


def port_descriptor_from_info(port: Any) -> PortDescriptor:
    """Convert a pyserial ``ListPortInfo`` into a PortDescriptor."""
    port_type = classify_port(port)
    is_usb = port_type == "USB"
    return PortDescriptor(
        port_name=port.device,
        port_type=port_type,
        description=(port.product or None) if is_usb else None,
        manufacturer=(port.manufacturer or None) if is_usb else None,
        vendor_id=port.vid if is_usb else None,
        product_id=port.pid if is_usb else None,
    )


class SerialAdapter:
    """Implementation of SerialAdapterProtocol using ``serial.tools.list_ports``."""

    def list_ports(self) -> list[PortDescriptor]:
        try:
            infos = list_ports.comports()
        except Exception as e:
            raise DiscoveryError(f"Failed to enumerate serial ports: {e}") from e

        ports = sorted(
            (port_descriptor_from_info(info) for info in infos),
            key=lambda p: p.port_name,
        )
        logger.debug("serial_ports_listed", count=len(ports))
        return ports


def create_serial_adapter() -> SerialAdapter:
    """Factory function to create a SerialAdapter."""
    return SerialAdapter()
