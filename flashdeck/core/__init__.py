from .errors import (
    AmbiguousCatalogError,
    ArtifactNotFoundError,
    CatalogValidationError,
    ConfigError,
    DiscoveryError,
    FlashdeckError,
    InvalidStateError,
    OperationError,
    ValidationError,
)
from .logging import setup_logging


__all__ = [
    "setup_logging",
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
