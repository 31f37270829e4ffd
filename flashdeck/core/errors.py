"""Error hierarchy for flashdeck."""


class FlashdeckError(Exception):
    """Base exception for all flashdeck errors."""


class ValidationError(FlashdeckError):
    """Raised when a selection or flash request is malformed or stale."""


class CatalogValidationError(ValidationError):
    """Raised when a catalog query is missing its role or version."""


class ArtifactNotFoundError(FlashdeckError):
    """Raised when no firmware artifact matches a (role, version) pair."""

    def __init__(self, role: str, version: str) -> None:
        self.role = role
        self.version = version
        super().__init__(f"No firmware found for role '{role}' version '{version}'")


class AmbiguousCatalogError(FlashdeckError):
    """Raised when the catalog holds more than one artifact for a (role, version)."""

    def __init__(self, role: str, version: str, paths: list[str]) -> None:
        self.role = role
        self.version = version
        self.paths = paths
        super().__init__(
            f"Catalog holds {len(paths)} artifacts for role '{role}' "
            f"version '{version}': {', '.join(paths)}"
        )


class DiscoveryError(FlashdeckError):
    """Raised when port or firmware discovery fails."""


class OperationError(FlashdeckError):
    """Raised when the underlying flash operation fails."""


class InvalidStateError(FlashdeckError):
    """Raised when an operation is not legal in the current session state."""


class ConfigError(FlashdeckError):
    """Raised when configuration cannot be loaded or is invalid."""


__all__ = [
    "FlashdeckError",
    "ValidationError",
    "CatalogValidationError",
    "ArtifactNotFoundError",
    "AmbiguousCatalogError",
    "DiscoveryError",
    "OperationError",
    "InvalidStateError",
    "ConfigError",
]
