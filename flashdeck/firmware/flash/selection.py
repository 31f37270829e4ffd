"""Selection hand-off between the selection screen and the progress screen."""

from typing import TYPE_CHECKING, Literal
from urllib.parse import parse_qs, urlencode

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from flashdeck.core.errors import ValidationError
from flashdeck.firmware.flash.models import FlashRequest
from flashdeck.models.base import FrozenModel


if TYPE_CHECKING:
    from flashdeck.firmware.catalog import FirmwareCatalogResolver


HANDOFF_KEYS = ("role", "version", "port", "firmwarePath", "includeAuxStorage")


class FlashSelection(FrozenModel):
    """A complete operator selection, carried as plain strings.

    Serialized as a query string whose keys are ``role``, ``version``,
    ``port``, ``firmwarePath`` and ``includeAuxStorage`` (``"1"`` or ``"0"``).
    """

    role: str
    version: str
    port: str
    firmware_path: str = Field(alias="firmwarePath")
    include_aux_storage: Literal["0", "1"] = Field(default="0", alias="includeAuxStorage")

    @property
    def wants_aux_storage(self) -> bool:
        return self.include_aux_storage == "1"

    def to_query_string(self) -> str:
        return urlencode(self.model_dump(by_alias=True))

    @classmethod
    def from_query_string(cls, query: str) -> "FlashSelection":
        """Parse a hand-off query string.

        Raises:
            ValidationError: If a key is missing or empty, or
                ``includeAuxStorage`` is not ``"0"`` or ``"1"``
        """
        params = {key: values[0] for key, values in parse_qs(query.lstrip("?")).items()}
        missing = [key for key in HANDOFF_KEYS if not params.get(key)]
        if missing:
            raise ValidationError(f"Selection is missing {', '.join(missing)}")
        try:
            return cls.model_validate({key: params[key] for key in HANDOFF_KEYS})
        except PydanticValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
            raise ValidationError(f"Invalid selection field(s): {fields}") from e

    @classmethod
    def from_request(cls, request: FlashRequest) -> "FlashSelection":
        return cls(
            role=request.artifact.role,
            version=request.artifact.version,
            port=request.port,
            firmwarePath=request.artifact.path,
            includeAuxStorage="1" if request.include_aux_storage else "0",
        )

    def to_request(
        self,
        resolver: "FirmwareCatalogResolver",
        baud_rate_override: int | None = None,
    ) -> FlashRequest:
        """Re-resolve the selection against the current catalog.

        Raises:
            ValidationError: If the catalog now resolves to a different build
            ArtifactNotFoundError: If the build is gone
        """
        artifact = resolver.resolve(self.role, self.version)
        if artifact.path != self.firmware_path:
            raise ValidationError(
                f"Selection for {artifact.label} points at {self.firmware_path}, "
                f"but the catalog holds {artifact.path}"
            )
        return FlashRequest(
            port=self.port,
            artifact=artifact,
            include_aux_storage=self.wants_aux_storage,
            baud_rate_override=baud_rate_override,
        )
