"""SQLAlchemy implementation of :class:`IResourceStore`."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, inspect, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, load_only

from ..exceptions import StorageError
from ..ports import EntityRecord
from .compiler import (
    build_order_by,
    build_where_clause,
    check_fields,
    column_names,
    resolve_column,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from sqlalchemy import ColumnElement, Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from ..ports import IJoinSpec
    from ..predicates.base import FilterPredicate
    from .strategy import SQLAlchemyOperatorRegistry

    AsyncSessionFactory = Callable[[], AsyncSession]

logger = logging.getLogger("cqrs_ddd.resources.sqlalchemy")


class SQLAlchemyResourceStore:
    """
    Executes resource queries against one mapped model.

    Every call opens its own ``AsyncSession`` from *session_factory*; writes
    run inside ``session.begin()``. Rows leave the session as detached
    :class:`EntityRecord` snapshots holding only the columns that were
    loaded and the relationships that were eagerly loaded, so nothing is
    lazy-loaded after the session closes.

    Args:
        model: SQLAlchemy declarative model class.
        session_factory: ``async_sessionmaker`` (or any callable returning an
            ``AsyncSession`` usable as an async context manager).
        registry: Operator registry for the where-clause compiler.
        use_returning: Force ``UPDATE ... RETURNING`` on or off. ``None``
            asks the dialect.
        eager_loader: Loader option factory applied to each join, e.g.
            ``joinedload`` or ``selectinload``.
    """

    def __init__(
        self,
        model: type[Any],
        session_factory: AsyncSessionFactory,
        *,
        registry: SQLAlchemyOperatorRegistry | None = None,
        use_returning: bool | None = None,
        eager_loader: Callable[[Any], Any] = joinedload,
    ) -> None:
        self._model = model
        self._session_factory = session_factory
        self._registry = registry
        self._use_returning = use_returning
        self._eager_loader = eager_loader

    @property
    def model(self) -> type[Any]:
        return self._model

    # -- reads --------------------------------------------------------------

    async def find_matching(
        self,
        where: FilterPredicate | None,
        *,
        projection: Sequence[str] | None = None,
        order: Sequence[tuple[str, str]] = (),
        limit: int | None = None,
        offset: int | None = None,
        eager_load: Mapping[str, IJoinSpec] | None = None,
    ) -> tuple[list[EntityRecord], int]:
        clause = self._where(where)
        stmt = self._select(projection, eager_load, clause)
        order_clauses = build_order_by(self._model, order)
        if order_clauses:
            stmt = stmt.order_by(*order_clauses)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset is not None:
            stmt = stmt.offset(offset)

        count_stmt = select(func.count()).select_from(self._model)
        if clause is not None:
            count_stmt = count_stmt.where(clause)

        try:
            async with self._session_factory() as session:
                total = (await session.execute(count_stmt)).scalar_one()
                result = await session.execute(stmt)
                rows = result.unique().scalars().all()
                records = [self._snapshot(obj, eager_load) for obj in rows]
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Query on {self._label} failed: {exc}"
            ) from exc

        logger.debug(
            "Fetched %d of %d %s row(s) (limit=%s, offset=%s)",
            len(records),
            total,
            self._label,
            limit,
            offset,
        )
        return records, int(total)

    async def find_one(
        self,
        where: FilterPredicate,
        *,
        projection: Sequence[str] | None = None,
        eager_load: Mapping[str, IJoinSpec] | None = None,
    ) -> EntityRecord | None:
        stmt = self._select(projection, eager_load, self._where(where))
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                obj = result.unique().scalars().first()
                return None if obj is None else self._snapshot(obj, eager_load)
        except SQLAlchemyError as exc:
            raise StorageError(f"Lookup on {self._label} failed: {exc}") from exc

    # -- writes -------------------------------------------------------------

    async def insert(self, attributes: Mapping[str, Any]) -> EntityRecord:
        check_fields(self._model, attributes)
        try:
            async with self._session_factory() as session, session.begin():
                obj = self._model(**attributes)
                session.add(obj)
                await session.flush()
                await session.refresh(obj)
                record = self._snapshot(obj, None)
        except SQLAlchemyError as exc:
            raise StorageError(f"Insert into {self._label} failed: {exc}") from exc

        logger.debug("Inserted %s row %r", self._label, record.fields)
        return record

    async def update_matching(
        self,
        where: FilterPredicate,
        attributes: Mapping[str, Any],
    ) -> tuple[int, list[EntityRecord] | None]:
        check_fields(self._model, attributes)
        stmt = (
            update(self._model)
            .where(self._where(where))
            .values(**attributes)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session_factory() as session, session.begin():
                if self._returning_supported(session):
                    keys = column_names(self._model)
                    result = await session.execute(
                        stmt.returning(*(getattr(self._model, k) for k in keys))
                    )
                    records = [
                        EntityRecord(fields=dict(zip(keys, row))) for row in result
                    ]
                    count, returned = len(records), records
                else:
                    result = await session.execute(stmt)
                    count, returned = result.rowcount, None  # type: ignore[attr-defined]
        except SQLAlchemyError as exc:
            raise StorageError(f"Update of {self._label} failed: {exc}") from exc

        logger.debug("Updated %d %s row(s)", count, self._label)
        return count, returned

    async def delete_matching(self, where: FilterPredicate) -> int:
        stmt = (
            delete(self._model)
            .where(self._where(where))
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(stmt)
                count = int(result.rowcount)  # type: ignore[attr-defined]
        except SQLAlchemyError as exc:
            raise StorageError(f"Delete from {self._label} failed: {exc}") from exc

        logger.debug("Deleted %d %s row(s)", count, self._label)
        return count

    # -- internal -----------------------------------------------------------

    @property
    def _label(self) -> str:
        return str(getattr(self._model, "__tablename__", self._model.__name__))

    def _where(self, where: FilterPredicate | None) -> ColumnElement[bool] | None:
        if where is None:
            return None
        return build_where_clause(self._model, where, registry=self._registry)

    def _select(
        self,
        projection: Sequence[str] | None,
        eager_load: Mapping[str, IJoinSpec] | None,
        clause: ColumnElement[bool] | None,
    ) -> Select[Any]:
        stmt = select(self._model)
        if clause is not None:
            stmt = stmt.where(clause)
        options: list[Any] = []
        if projection:
            options.append(
                load_only(*(resolve_column(self._model, f) for f in projection))
            )
        if eager_load:
            options.extend(
                self._eager_loader(j.describe_join()) for j in eager_load.values()
            )
        if options:
            stmt = stmt.options(*options)
        # rows already in an identity map must not keep stale columns
        return stmt.execution_options(populate_existing=True)

    def _returning_supported(self, session: AsyncSession) -> bool:
        if self._use_returning is not None:
            return self._use_returning
        return bool(session.get_bind().dialect.update_returning)

    def _snapshot(
        self, obj: Any, eager_load: Mapping[str, IJoinSpec] | None
    ) -> EntityRecord:
        record = EntityRecord(fields=_loaded_columns(obj))
        for name, join in (eager_load or {}).items():
            related = getattr(obj, join.describe_join().key)
            if related is None:
                record.relations[name] = None
            elif isinstance(related, list):
                record.relations[name] = [
                    EntityRecord(fields=_loaded_columns(r)) for r in related
                ]
            else:
                record.relations[name] = EntityRecord(fields=_loaded_columns(related))
        return record


def _loaded_columns(obj: Any) -> dict[str, Any]:
    """Column values of *obj* without triggering lazy loads."""
    state = inspect(obj)
    unloaded = state.unloaded
    return {
        attr.key: getattr(obj, attr.key)
        for attr in state.mapper.column_attrs
        if attr.key not in unloaded
    }
