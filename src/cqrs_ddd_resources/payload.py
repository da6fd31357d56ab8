"""Write payload validation."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from .exceptions import InvalidPayloadError


class ResourcePayload(BaseModel):
    """Request body for create / update: ``{"attributes": {...}}``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    attributes: dict[str, Any]

    @classmethod
    def parse(cls, payload: Any) -> ResourcePayload:
        """
        Validate *payload*, accepting an instance or any mapping.

        Raises:
            InvalidPayloadError: when ``attributes`` is missing or not a
                mapping.
        """
        if isinstance(payload, cls):
            return payload
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as exc:
            raise InvalidPayloadError(
                "; ".join(
                    f"{'.'.join(str(p) for p in e['loc']) or '<root>'}: {e['msg']}"
                    for e in exc.errors()
                )
            ) from exc
