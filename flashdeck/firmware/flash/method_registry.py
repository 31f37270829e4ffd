"""Registry of low-level flash methods."""

from typing import TYPE_CHECKING

from flashdeck.core.errors import ConfigError
from flashdeck.core.structlog_logger import get_struct_logger
from flashdeck.firmware.flash.flasher_methods import (
    EspflashFlasher,
    EsptoolFlasher,
    SubprocessFlasher,
)


if TYPE_CHECKING:
    from flashdeck.config.models.flash import FlashSettings


logger = get_struct_logger(__name__)


class FlasherRegistry:
    """Maps method names to flasher classes."""

    def __init__(self) -> None:
        self._methods: dict[str, type[SubprocessFlasher]] = {}

    def register_method(
        self, method_name: str, implementation: type[SubprocessFlasher]
    ) -> None:
        self._methods[method_name] = implementation
        logger.debug("flash_method_registered", method=method_name)

    def get_registered_methods(self) -> list[str]:
        return sorted(self._methods)

    def get_available_methods(self, settings: "FlashSettings") -> list[str]:
        """Registered methods whose tool is installed."""
        return [
            name
            for name in self.get_registered_methods()
            if self._methods[name].from_settings(settings).check_available()
        ]

    def create_method(self, method_name: str, settings: "FlashSettings") -> SubprocessFlasher:
        """Instantiate the flasher registered under ``method_name``.

        Raises:
            ConfigError: If no flasher is registered under that name
        """
        implementation = self._methods.get(method_name)
        if implementation is None:
            registered = ", ".join(self.get_registered_methods())
            raise ConfigError(
                f"Unknown flash method '{method_name}' (registered: {registered})"
            )
        return implementation.from_settings(settings)


flasher_registry = FlasherRegistry()
flasher_registry.register_method("espflash", EspflashFlasher)
flasher_registry.register_method("esptool", EsptoolFlasher)


def create_flasher(
    method: str | None = None, settings: "FlashSettings | None" = None
) -> SubprocessFlasher:
    """Create the flasher for ``method`` (default: ``settings.method``).

    Raises:
        ConfigError: If the method is unknown
    """
    if settings is None:
        from flashdeck.config.models.flash import FlashSettings

        settings = FlashSettings()
    method = method or settings.method
    flasher = flasher_registry.create_method(method, settings)
    logger.debug("flasher_created", method=method, available=flasher.check_available())
    return flasher
