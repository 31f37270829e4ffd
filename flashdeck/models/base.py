"""Base model for all flashdeck Pydantic models.

This module provides a base model class that enforces consistent serialization
behavior across all flashdeck models.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


class FlashdeckBaseModel(BaseModel):
    """Base model class for all flashdeck Pydantic models.

    Serialization always uses field aliases and JSON-compatible values.
    """

    model_config = ConfigDict(
        extra="forbid",
        # Strip whitespace from string fields
        str_strip_whitespace=True,
        use_enum_values=True,
        validate_assignment=True,
        populate_by_name=True,
    )

    def to_dict_full(self) -> dict[str, Any]:
        """Convert model to dictionary including all fields (even unset ones).

        Returns:
            Dictionary representation including all fields
        """
        return self.model_dump(by_alias=True, exclude_unset=False, mode="json")


class FrozenModel(FlashdeckBaseModel):
    """Immutable value object; instances are hashable and never mutated."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)
