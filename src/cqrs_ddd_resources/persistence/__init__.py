"""SQLAlchemy storage engine for resource collections."""

from .compiler import build_order_by, build_where_clause
from .joins import SQLAlchemyJoin
from .operators import DEFAULT_SQL_REGISTRY, build_default_sql_registry
from .store import SQLAlchemyResourceStore
from .strategy import SQLAlchemyOperator, SQLAlchemyOperatorRegistry

__all__ = [
    "DEFAULT_SQL_REGISTRY",
    "SQLAlchemyJoin",
    "SQLAlchemyOperator",
    "SQLAlchemyOperatorRegistry",
    "SQLAlchemyResourceStore",
    "build_default_sql_registry",
    "build_order_by",
    "build_where_clause",
]
