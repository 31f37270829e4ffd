"""Tests for firmware catalog scanning and resolution."""

from pathlib import Path

import pytest

from flashdeck.core.errors import (
    AmbiguousCatalogError,
    ArtifactNotFoundError,
    CatalogValidationError,
    DiscoveryError,
    ValidationError,
)
from flashdeck.firmware.catalog import (
    FirmwareCatalog,
    FirmwareCatalogResolver,
    create_firmware_resolver,
    load_manifest,
)


class TestFirmwareCatalog:
    """Test directory scanning."""

    def test_lists_every_role_and_version(self, firmware_root):
        artifacts = FirmwareCatalog([firmware_root]).list_firmware()

        assert [(a.role, a.version) for a in artifacts] == [("eous", "1.0"), ("eous", "2.0")]
        assert artifacts[0].path == str(firmware_root / "eous" / "1.0")
        assert artifacts[0].chip == "esp32s3"

    def test_first_existing_root_wins(self, tmp_path, firmware_root):
        missing = tmp_path / "missing"
        catalog = FirmwareCatalog([missing, firmware_root])

        assert catalog.find_root() == firmware_root

    def test_no_root_raises_discovery_error(self, tmp_path):
        catalog = FirmwareCatalog([tmp_path / "a", tmp_path / "b"])

        with pytest.raises(DiscoveryError, match="not found"):
            catalog.list_firmware()

    def test_invalid_manifest_is_skipped(self, firmware_root):
        broken = firmware_root / "eous" / "3.0"
        broken.mkdir()
        (broken / "manifest.json").write_text("{not json", encoding="utf-8")

        artifacts = FirmwareCatalog([firmware_root]).list_firmware()

        assert [a.version for a in artifacts] == ["1.0", "2.0"]

    def test_directories_without_manifest_and_stray_files_are_ignored(self, firmware_root):
        (firmware_root / "eous" / "empty").mkdir()
        (firmware_root / "README.txt").write_text("hello")

        artifacts = FirmwareCatalog([firmware_root]).list_firmware()

        assert len(artifacts) == 2


class TestLoadManifest:
    """Test manifest parsing."""

    def test_parses_files_and_normalizes_offsets(self, tmp_path, manifest_writer):
        path = manifest_writer(
            tmp_path / "eous" / "1.0",
            files=[
                {"offset": "10000", "path": "app.bin"},
                {"offset": "0x670000", "path": "fs.bin", "fs": "littlefs"},
            ],
        )

        manifest = load_manifest(path)

        assert manifest.role == "eous"
        assert manifest.baud == 921600
        assert [f.offset for f in manifest.files] == ["0x10000", "0x670000"]

    def test_files_to_flash_skips_aux_storage_unless_requested(self, tmp_path, manifest_writer):
        manifest = load_manifest(manifest_writer(tmp_path / "eous" / "1.0"))

        assert [f.path for f in manifest.files_to_flash(False)] == ["firmware.bin"]
        assert [f.path for f in manifest.files_to_flash(True)] == [
            "firmware.bin",
            "littlefs.bin",
        ]

    def test_invalid_json_raises_value_error(self, tmp_path):
        path = tmp_path / "manifest.json"
        path.write_text("[", encoding="utf-8")

        with pytest.raises(ValueError, match="Invalid JSON"):
            load_manifest(path)

    def test_missing_fields_raise_value_error(self, tmp_path):
        path = tmp_path / "manifest.json"
        path.write_text('{"name": "eous"}', encoding="utf-8")

        with pytest.raises(ValueError):
            load_manifest(path)


class TestFirmwareCatalogResolver:
    """Test (role, version) resolution over a snapshot."""

    def test_versions_for_role(self, resolver_factory, artifact_factory):
        resolver = resolver_factory(
            [
                artifact_factory("eous", "1.0", "/fw/a.bin"),
                artifact_factory("eous", "2.0", "/fw/b.bin"),
            ]
        )

        assert resolver.available_versions("eous") == ["1.0", "2.0"]

    def test_resolve_returns_matching_artifact(self, resolver_factory, artifact_factory):
        resolver = resolver_factory(
            [
                artifact_factory("eous", "1.0", "/fw/a.bin"),
                artifact_factory("eous", "2.0", "/fw/b.bin"),
            ]
        )

        assert resolver.resolve("eous", "2.0").path == "/fw/b.bin"

    def test_versions_are_sorted_and_deduplicated(self, resolver_factory, artifact_factory):
        resolver = resolver_factory(
            [
                artifact_factory("eous", "2.0"),
                artifact_factory("EOUS", "1.0"),
                artifact_factory("eous", "10.0"),
                artifact_factory("other", "0.1"),
            ]
        )

        versions = resolver.available_versions("Eous")

        assert versions == sorted(set(versions))
        assert versions == ["1.0", "10.0", "2.0"]

    def test_roles_are_lowercased_and_sorted(self, resolver_factory, artifact_factory):
        resolver = resolver_factory(
            [artifact_factory("Zeta", "1"), artifact_factory("eous", "1"), artifact_factory("EOUS", "2")]
        )

        assert resolver.available_roles() == ["eous", "zeta"]

    def test_unknown_role_has_no_versions(self, resolver_factory, artifact_factory):
        resolver = resolver_factory([artifact_factory("eous", "1.0")])

        assert resolver.available_versions("nope") == []
        assert resolver.default_version("nope") is None

    def test_default_version_is_first_available(self, resolver_factory, artifact_factory):
        resolver = resolver_factory(
            [artifact_factory("eous", "2.0"), artifact_factory("eous", "1.0")]
        )

        assert resolver.default_version("eous") == "1.0"

    def test_resolve_miss_raises_not_found(self, resolver_factory, artifact_factory):
        resolver = resolver_factory([artifact_factory("eous", "1.0")])

        with pytest.raises(ArtifactNotFoundError) as exc_info:
            resolver.resolve("eous", "9.9")

        assert exc_info.value.role == "eous"
        assert exc_info.value.version == "9.9"

    def test_version_match_is_exact(self, resolver_factory, artifact_factory):
        resolver = resolver_factory([artifact_factory("eous", "v1.0")])

        with pytest.raises(ArtifactNotFoundError):
            resolver.resolve("eous", "V1.0")

    def test_resolve_with_duplicates_raises_ambiguous(self, resolver_factory, artifact_factory):
        resolver = resolver_factory(
            [
                artifact_factory("eous", "1.0", "/fw/one"),
                artifact_factory("EOUS", "1.0", "/fw/two"),
            ]
        )

        with pytest.raises(AmbiguousCatalogError) as exc_info:
            resolver.resolve("eous", "1.0")

        assert exc_info.value.paths == ["/fw/one", "/fw/two"]

    @pytest.mark.parametrize(("role", "version"), [("", "1.0"), ("eous", ""), ("  ", "1.0")])
    def test_empty_inputs_raise_validation_error(
        self, resolver_factory, artifact_factory, role, version
    ):
        resolver = resolver_factory([artifact_factory("eous", "1.0")])

        with pytest.raises(CatalogValidationError):
            resolver.resolve(role, version)

    def test_catalog_validation_error_is_a_validation_error(self):
        assert issubclass(CatalogValidationError, ValidationError)

    def test_refresh_failure_empties_catalog_and_raises(self, artifact_factory):
        calls = {"count": 0}

        def list_firmware():
            calls["count"] += 1
            if calls["count"] > 1:
                raise DiscoveryError("disk gone")
            return [artifact_factory("eous", "1.0")]

        resolver = FirmwareCatalogResolver(list_firmware)
        resolver.refresh()
        assert resolver.available_roles() == ["eous"]

        with pytest.raises(DiscoveryError):
            resolver.refresh()

        assert resolver.artifacts() == ()
        assert resolver.available_roles() == []

    def test_unexpected_scan_error_becomes_discovery_error(self):
        def list_firmware():
            raise PermissionError("denied")

        resolver = FirmwareCatalogResolver(list_firmware)

        with pytest.raises(DiscoveryError, match="denied"):
            resolver.refresh()

    def test_snapshot_is_empty_until_refreshed(self, firmware_root):
        resolver = create_firmware_resolver([firmware_root])

        assert resolver.artifacts() == ()
        resolver.refresh()
        assert resolver.available_versions("eous") == ["1.0", "2.0"]

    def test_directory_backed_resolver_finds_paths(self, firmware_root):
        resolver = create_firmware_resolver([Path(firmware_root)])
        resolver.refresh()

        artifact = resolver.resolve("eous", "2.0")

        assert artifact.path == str(firmware_root / "eous" / "2.0")
