"""Collection configuration."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .relationships import RelationshipDescriptor


@dataclass(frozen=True)
class CollectionConfig:
    """
    Immutable configuration for a :class:`ResourceCollection`.

    Attributes:
        relationships: Includable relationships keyed by the name clients
            use in ``include``. Copied into a read-only mapping.
        id_field: Primary identifier attribute.
        fields_scope: Sparse-fieldset scope naming the resource itself.
        item_template: Appended to the collection URL to build element self
            links; rendered against each entity's fields. Left empty it
            becomes ``/<%=<id_field>%>``.
    """

    relationships: Mapping[str, RelationshipDescriptor] = field(
        default_factory=dict
    )
    id_field: str = "id"
    fields_scope: str = "$self"
    item_template: str = ""

    def __post_init__(self) -> None:
        if not self.item_template:
            object.__setattr__(self, "item_template", f"/<%={self.id_field}%>")
        object.__setattr__(
            self, "relationships", MappingProxyType(dict(self.relationships))
        )
