"""Flash configuration models."""

from typing import Literal

from pydantic import BaseModel, Field


FlashMethodName = Literal["espflash", "esptool"]


class FlashSettings(BaseModel):
    """Flash operation configuration settings."""

    method: FlashMethodName = Field(
        default="espflash",
        description="Low-level flashing tool: 'espflash' (default) or 'esptool'",
    )
    tool_path: str | None = Field(
        default=None,
        description="Explicit path to the flashing tool (looked up on PATH otherwise)",
    )
    timeout: float | None = Field(
        default=300.0,
        gt=0,
        description="Seconds before a running flash is reported as failed (None disables)",
    )
    port_scan_timeout: float = Field(
        default=5.0, gt=0, description="Seconds to wait for a serial port scan"
    )
    buffer_size: int = Field(
        default=256,
        ge=1,
        description="Progress events buffered per subscriber before the oldest are dropped",
    )
