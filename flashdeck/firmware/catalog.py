"""Firmware catalog scanning and (role, version) resolution."""

import json
import threading
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from flashdeck.core.errors import (
    AmbiguousCatalogError,
    ArtifactNotFoundError,
    CatalogValidationError,
    DiscoveryError,
)
from flashdeck.core.structlog_logger import get_struct_logger
from flashdeck.firmware.models import MANIFEST_FILENAME, FirmwareArtifact, FirmwareManifest


logger = get_struct_logger(__name__)

ListFirmware = Callable[[], Sequence[FirmwareArtifact]]


def load_manifest(path: Path) -> FirmwareManifest:
    """Load and validate a manifest.json file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the file is not valid JSON or fails validation
    """
    content = path.read_text(encoding="utf-8")
    try:
        return FirmwareManifest.model_validate(json.loads(content))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e
    except PydanticValidationError as e:
        raise ValueError(str(e)) from e


class FirmwareCatalog:
    """Scans firmware roots laid out as ``<root>/<role>/<version>/manifest.json``.

    The first candidate root that exists is used.
    """

    def __init__(self, firmware_dirs: Iterable[Path]) -> None:
        self.firmware_dirs = [Path(d) for d in firmware_dirs]

    def find_root(self) -> Path:
        """Return the first existing firmware root.

        Raises:
            DiscoveryError: If none of the candidate directories exists
        """
        for candidate in self.firmware_dirs:
            if candidate.is_dir():
                return candidate
        searched = ", ".join(str(d) for d in self.firmware_dirs) or "<none>"
        raise DiscoveryError(f"Firmware directory not found (searched: {searched})")

    def list_firmware(self) -> list[FirmwareArtifact]:
        """Scan the firmware root and return every artifact with a valid manifest.

        Invalid manifests are logged and skipped.

        Raises:
            DiscoveryError: If no root exists or it cannot be read
        """
        root = self.find_root()
        logger.debug("scanning_firmware_root", root=str(root))

        artifacts: list[FirmwareArtifact] = []
        try:
            role_dirs = sorted(p for p in root.iterdir() if p.is_dir())
            for role_dir in role_dirs:
                for version_dir in sorted(p for p in role_dir.iterdir() if p.is_dir()):
                    artifact = self._load_artifact(role_dir.name, version_dir)
                    if artifact is not None:
                        artifacts.append(artifact)
        except OSError as e:
            raise DiscoveryError(f"Failed to scan firmware directory {root}: {e}") from e

        logger.info("firmware_catalog_scanned", root=str(root), count=len(artifacts))
        return artifacts

    def _load_artifact(self, role: str, version_dir: Path) -> FirmwareArtifact | None:
        manifest_path = version_dir / MANIFEST_FILENAME
        if not manifest_path.is_file():
            return None

        try:
            manifest = load_manifest(manifest_path)
        except (OSError, ValueError) as e:
            logger.warning(
                "firmware_manifest_invalid", path=str(manifest_path), error=str(e)
            )
            return None

        # Role and version come from the directory layout, not the manifest
        return FirmwareArtifact(
            role=role,
            version=version_dir.name,
            name=manifest.name,
            chip=manifest.chip,
            flash_size=manifest.flash_size,
            path=str(version_dir),
        )


def _require(value: str, field: str) -> str:
    if not value or not value.strip():
        raise CatalogValidationError(f"Firmware {field} must not be empty")
    return value.strip()


class FirmwareCatalogResolver:
    """Resolves (role, version) selections against a catalog snapshot."""

    def __init__(
        self,
        list_firmware: ListFirmware,
        artifacts: Iterable[FirmwareArtifact] | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            list_firmware: Catalog scan used by ``refresh``
            artifacts: Optional initial snapshot (otherwise empty until refreshed)
        """
        self._list_firmware = list_firmware
        self._lock = threading.Lock()
        self._artifacts: tuple[FirmwareArtifact, ...] = tuple(artifacts or ())

    def refresh(self) -> tuple[FirmwareArtifact, ...]:
        """Rescan the catalog and replace the snapshot.

        Raises:
            DiscoveryError: If the scan fails; the snapshot is emptied
        """
        try:
            artifacts = tuple(self._list_firmware())
        except DiscoveryError:
            with self._lock:
                self._artifacts = ()
            raise
        except Exception as e:
            with self._lock:
                self._artifacts = ()
            raise DiscoveryError(f"Firmware discovery failed: {e}") from e

        with self._lock:
            self._artifacts = artifacts
        return artifacts

    def artifacts(self) -> tuple[FirmwareArtifact, ...]:
        """Current catalog snapshot."""
        with self._lock:
            return self._artifacts

    def _for_role(self, role: str) -> list[FirmwareArtifact]:
        role_key = role.lower()
        return [a for a in self.artifacts() if a.role.lower() == role_key]

    def available_roles(self) -> list[str]:
        """Distinct roles in the catalog, lowercased and sorted."""
        return sorted({a.role.lower() for a in self.artifacts()})

    def available_versions(self, role: str) -> list[str]:
        """Distinct versions for a role, sorted lexicographically ascending."""
        role = _require(role, "role")
        return sorted({a.version for a in self._for_role(role)})

    def default_version(self, role: str) -> str | None:
        """The version preselected for a role, or None when it has no builds."""
        versions = self.available_versions(role)
        return versions[0] if versions else None

    def resolve(self, role: str, version: str) -> FirmwareArtifact:
        """Resolve the unique artifact for (role, version).

        Raises:
            CatalogValidationError: If role or version is empty
            ArtifactNotFoundError: If nothing matches
            AmbiguousCatalogError: If more than one artifact matches
        """
        role = _require(role, "role")
        version = _require(version, "version")

        matches = [a for a in self._for_role(role) if a.version == version]
        if not matches:
            raise ArtifactNotFoundError(role, version)
        if len(matches) > 1:
            logger.error(
                "firmware_catalog_ambiguous",
                role=role,
                version=version,
                paths=[m.path for m in matches],
            )
            raise AmbiguousCatalogError(role, version, [m.path for m in matches])
        return matches[0]


def create_firmware_resolver(firmware_dirs: Iterable[Path]) -> FirmwareCatalogResolver:
    """Create a resolver backed by a directory catalog (not yet scanned)."""
    catalog = FirmwareCatalog(firmware_dirs)
    return FirmwareCatalogResolver(catalog.list_firmware)
