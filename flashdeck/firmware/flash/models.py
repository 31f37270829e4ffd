"""Flash domain models: ports, requests, progress and outcome events."""

from enum import Enum
from typing import Any, TypeAlias

from pydantic import Field, computed_field, field_validator, model_validator

from flashdeck.firmware.models import FirmwareArtifact
from flashdeck.models.base import FrozenModel
from flashdeck.models.results import BaseResult


FLASH_STAGES = ("preparing", "verifying", "connecting", "flashing", "completed")


class SessionState(str, Enum):
    """Lifecycle states of a flash session."""

    IDLE = "idle"
    VALIDATING = "validating"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.SUCCEEDED, SessionState.FAILED)


class PortDescriptor(FrozenModel):
    """One communication port from a registry snapshot."""

    port_name: str
    port_type: str = "Unknown"
    description: str | None = None
    manufacturer: str | None = None
    vendor_id: int | None = None
    product_id: int | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_label(self) -> str:
        detail = self.description or self.manufacturer or self.port_type
        return f"{self.port_name} - {detail}"


class FlashRequest(FrozenModel):
    """Validated input to one flash session."""

    port: str
    artifact: FirmwareArtifact
    include_aux_storage: bool = False
    baud_rate_override: int | None = Field(default=None, gt=0)


def _clamp_percentage(value: float) -> float:
    return min(100.0, max(0.0, value))


class ProgressEvent(FrozenModel):
    """One observation of session progress."""

    stage: str
    current: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)
    percentage: float = 0.0
    message: str = ""

    @model_validator(mode="before")
    @classmethod
    def derive_percentage(cls, data: Any) -> Any:
        """Derive percentage from current/total when it isn't supplied."""
        if isinstance(data, dict) and data.get("percentage") is None:
            data = dict(data)
            current = data.get("current") or 0
            total = data.get("total") or 0
            data["percentage"] = (current / total) * 100 if total else 0.0
        return data

    @field_validator("percentage")
    @classmethod
    def clamp_percentage(cls, v: float) -> float:
        return _clamp_percentage(v)

    def clamped(self) -> "ProgressEvent":
        """Copy with percentage forced into [0, 100].

        Needed only for events built with ``model_construct``.
        """
        value = _clamp_percentage(self.percentage)
        if value == self.percentage:
            return self
        return self.model_copy(update={"percentage": value})


class OutcomeEvent(FrozenModel):
    """The single terminal event of a session."""

    success: bool
    message: str = Field(min_length=1)


ChannelEvent: TypeAlias = ProgressEvent | OutcomeEvent


class FlashResult(BaseResult):
    """Final result returned by a low-level flasher."""

    port: str | None = None
    files_flashed: int = 0

    def summary(self) -> str:
        """Human-readable message for the session outcome."""
        if self.errors:
            return "; ".join(self.errors)
        if self.messages:
            return self.messages[-1]
        return "Firmware flashed successfully" if self.success else "Flash failed"
