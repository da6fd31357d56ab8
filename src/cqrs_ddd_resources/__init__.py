from .assembler import ResourceAssembler
from .collection import ResourceCollection
from .config import CollectionConfig
from .exceptions import (
    ConstraintViolationError,
    FieldNotFoundError,
    InvalidFilterError,
    InvalidPageError,
    InvalidPayloadError,
    InvalidQueryError,
    LinkTemplateError,
    OperatorNotFoundError,
    ResourceError,
    StorageError,
)
from .links import page_count, page_links, render_link
from .payload import ResourcePayload
from .ports import EntityRecord, IJoinSpec, IQueryOptions, IResourceStore
from .predicates import (
    AndPredicate,
    FieldPredicate,
    FilterOperator,
    FilterPredicate,
    NotPredicate,
    OrPredicate,
    PredicateFactory,
)
from .query_options import PageSpec, ResourceQueryOptions
from .relationships import (
    RelationshipDescriptor,
    RelationshipResolver,
    ResolvedRelationships,
)
from .resource import EmbeddedEntity, Resource
from .translation import match_id, translate_filter

__all__ = [
    # Collection
    "ResourceCollection",
    "CollectionConfig",
    "ResourcePayload",
    # Ports
    "IResourceStore",
    "IQueryOptions",
    "IJoinSpec",
    "EntityRecord",
    # Query options
    "ResourceQueryOptions",
    "PageSpec",
    # Filters
    "FilterPredicate",
    "FieldPredicate",
    "AndPredicate",
    "OrPredicate",
    "NotPredicate",
    "FilterOperator",
    "PredicateFactory",
    "translate_filter",
    "match_id",
    # Relationships
    "RelationshipDescriptor",
    "RelationshipResolver",
    "ResolvedRelationships",
    # Assembly
    "Resource",
    "EmbeddedEntity",
    "ResourceAssembler",
    "render_link",
    "page_links",
    "page_count",
    # Exceptions
    "ResourceError",
    "InvalidQueryError",
    "InvalidFilterError",
    "OperatorNotFoundError",
    "InvalidPageError",
    "FieldNotFoundError",
    "InvalidPayloadError",
    "ConstraintViolationError",
    "LinkTemplateError",
    "StorageError",
]
