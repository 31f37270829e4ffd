"""Firmware catalog models."""

from pydantic import ConfigDict, Field, field_validator

from flashdeck.models.base import FrozenModel


AUX_STORAGE_FS = "littlefs"
MANIFEST_FILENAME = "manifest.json"


class FirmwareArtifact(FrozenModel):
    """One flashable firmware build found in the catalog."""

    role: str
    version: str
    name: str
    chip: str
    flash_size: str
    path: str = Field(description="Directory holding the build's manifest.json")

    @property
    def label(self) -> str:
        return f"{self.role}/{self.version}"


class FlashFile(FrozenModel):
    """A single image written at a fixed flash offset."""

    model_config = ConfigDict(extra="ignore")

    offset: str
    path: str
    fs: str | None = None
    sha256: str | None = None

    @field_validator("offset")
    @classmethod
    def normalize_offset(cls, v: str) -> str:
        """Offsets are hex; prefix with 0x when the manifest omits it."""
        v = v.strip()
        if not v:
            raise ValueError("Flash offset cannot be empty")
        if not v.lower().startswith("0x"):
            v = f"0x{v}"
        int(v, 16)
        return v

    @property
    def is_aux_storage(self) -> bool:
        return self.fs == AUX_STORAGE_FS


class FirmwareManifest(FrozenModel):
    """Contents of a build's manifest.json."""

    model_config = ConfigDict(extra="ignore")

    name: str
    version: str
    role: str = Field(alias="env")
    chip: str
    flash_size: str
    baud: int = Field(gt=0)
    flash_mode: str
    flash_freq: str
    erase_flash: bool = False
    files: list[FlashFile] = Field(default_factory=list)

    def files_to_flash(self, include_aux_storage: bool) -> list[FlashFile]:
        """Files for one flash run, in manifest order.

        Auxiliary storage images are only included on request.
        """
        return [f for f in self.files if include_aux_storage or not f.is_aux_storage]
