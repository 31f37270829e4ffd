"""
Configuration module for flashdeck.

Settings come from YAML files and ``FLASHDECK_`` environment variables.
"""

from .models import FlashdeckSettings, FlashSettings
from .user_config import UserConfig, create_user_config


__all__ = [
    "FlashSettings",
    "FlashdeckSettings",
    "UserConfig",
    "create_user_config",
]
