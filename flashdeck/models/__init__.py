"""Shared model base classes."""

from .base import FlashdeckBaseModel, FrozenModel
from .results import BaseResult


__all__ = ["BaseResult", "FlashdeckBaseModel", "FrozenModel"]
