"""User settings model."""

import os
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .flash import FlashSettings


def default_firmware_dirs() -> list[Path]:
    """Candidate firmware roots, searched in order."""
    data_home = os.environ.get("XDG_DATA_HOME")
    data_dir = Path(data_home) if data_home else Path.home() / ".local" / "share"
    return [
        Path("resources") / "firmware",
        Path("src-tauri") / "resources" / "firmware",
        data_dir / "flashdeck" / "firmware",
    ]


class FlashdeckSettings(BaseSettings):
    """User configuration data model with automatic environment variable support.

    Precedence order (highest to lowest):
    1. Environment variables (highest)
    2. Constructor arguments (file data)
    3. .env file
    4. Default values (lowest)
    """

    model_config = SettingsConfigDict(
        env_prefix="FLASHDECK_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Return sources in priority order: env > init > dotenv > file_secret."""
        return (
            env_settings,
            init_settings,
            dotenv_settings,
            file_secret_settings,
        )

    log_level: str = "WARNING"

    firmware_dirs: Annotated[list[Path], NoDecode] = Field(
        default_factory=default_firmware_dirs,
        description="Firmware roots laid out as <root>/<role>/<version>/manifest.json",
    )

    flash: FlashSettings = Field(default_factory=FlashSettings)

    @field_validator("firmware_dirs", mode="before")
    @classmethod
    def decode_firmware_dirs(cls, v: Any) -> list[Path]:
        if isinstance(v, str):
            return [Path(path.strip()).expanduser() for path in v.split(",") if path.strip()]
        elif isinstance(v, list | tuple):
            return [Path(str(path).strip()).expanduser() for path in v if str(path).strip()]
        return v  # type: ignore[no-any-return]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a recognized value."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper_v = v.strip().upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return upper_v
