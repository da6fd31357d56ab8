"""
Resource layer exception hierarchy with fuzzy-match suggestions.

All exceptions inherit from ``ResourceError`` and provide
``to_dict()`` for API-friendly error responses.

"Not found" is never an exception here: ``get`` / ``update`` return
``None`` and ``delete`` returns an affected-row count of ``0``.
"""

from __future__ import annotations

from difflib import get_close_matches
from typing import Any


class ResourceError(Exception):
    """Base exception for all resource layer errors."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": str(self),
        }


class InvalidQueryError(ResourceError):
    """The parsed query options cannot be turned into a storage query."""


class InvalidFilterError(InvalidQueryError):
    """
    Malformed filter predicate.

    Raised for ambiguous compound leaves (``{"age": {"$gt": 1, "$lt": 5}}``
    in a user filter), unknown operators and structurally invalid trees.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "INVALID_FILTER",
            "message": self.message,
            "path": self.path,
        }


class OperatorNotFoundError(InvalidFilterError):
    """Unknown filter operator, with suggestions for the intended one."""

    def __init__(
        self,
        operator: str,
        valid_operators: list[str],
        path: str | None = None,
    ) -> None:
        self.operator = operator
        self.valid_operators = valid_operators
        self.suggestions = get_close_matches(operator, valid_operators, n=3, cutoff=0.6)

        message = f"Unknown operator: '{operator}'."
        if self.suggestions:
            message += f" Did you mean: {', '.join(self.suggestions)}?"
        super().__init__(message, path=path)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "OPERATOR_NOT_FOUND",
            "operator": self.operator,
            "path": self.path,
            "suggestions": self.suggestions,
            "valid_operators": sorted(self.valid_operators),
        }


class InvalidPageError(InvalidQueryError):
    """Page number or size is out of range or not an integer."""


class FieldNotFoundError(ResourceError):
    """
    Unknown field referenced by a filter, sort, projection or payload.

    Example error message::

        Invalid field 'nmae' on 'users'.
        Did you mean one of these?
          • name

        Available fields: email, group_id, id, name
    """

    def __init__(
        self,
        invalid_field: str,
        model_name: str,
        available_fields: list[str],
        cutoff: float = 0.6,
    ) -> None:
        self.invalid_field = invalid_field
        self.model_name = model_name
        self.available_fields = available_fields
        self.suggestions = get_close_matches(
            invalid_field, available_fields, n=5, cutoff=cutoff
        )
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        lines = [f"Invalid field '{self.invalid_field}' on '{self.model_name}'."]
        if self.suggestions:
            lines.append("Did you mean one of these?")
            for s in self.suggestions:
                lines.append(f"  • {s}")

        sorted_fields = sorted(self.available_fields)
        preview = ", ".join(sorted_fields[:15])
        if len(sorted_fields) > 15:
            preview += ", ..."
        lines.append(f"Available fields: {preview}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "FIELD_NOT_FOUND",
            "field": self.invalid_field,
            "model": self.model_name,
            "suggestions": self.suggestions,
            "available_fields": sorted(self.available_fields),
        }


class InvalidPayloadError(ResourceError):
    """Write payload is not of the shape ``{"attributes": {...}}``."""


class ConstraintViolationError(ResourceError):
    """
    Write payload does not satisfy the caller-supplied constraint.

    Raised before any statement reaches the store, so nothing is mutated.
    """

    def __init__(self, constraint: Any, attributes: dict[str, Any]) -> None:
        self.constraint = constraint
        self.attributes = attributes
        super().__init__("Payload attributes do not satisfy the resource constraint")

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "CONSTRAINT_VIOLATION",
            "message": str(self),
        }


class LinkTemplateError(ResourceError):
    """A link template references a field the entity snapshot does not hold."""

    def __init__(self, template: str, field: str) -> None:
        self.template = template
        self.field = field
        super().__init__(
            f"Link template {template!r} references missing field {field!r}"
        )


class StorageError(ResourceError):
    """
    Failure reported by the underlying storage engine.

    The engine's own exception is preserved as ``__cause__``.
    """


__all__: list[str] = [
    "ConstraintViolationError",
    "FieldNotFoundError",
    "InvalidFilterError",
    "InvalidPageError",
    "InvalidPayloadError",
    "InvalidQueryError",
    "LinkTemplateError",
    "OperatorNotFoundError",
    "ResourceError",
    "StorageError",
]
