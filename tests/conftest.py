"""Shared fixtures: an in-memory SQLite schema of groups, users and posts."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from cqrs_ddd_resources.persistence import SQLAlchemyResourceStore
from cqrs_ddd_resources.predicates.operators_memory import build_default_registry
from tests.models import Base, PostModel, UserModel

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def registry():
    """Default in-memory operator registry."""
    return build_default_registry()


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    # every session must see the same in-memory database
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as sess:
        yield sess


@pytest.fixture
def user_store(session_factory) -> SQLAlchemyResourceStore:
    return SQLAlchemyResourceStore(UserModel, session_factory)


@pytest.fixture
def post_store(session_factory) -> SQLAlchemyResourceStore:
    return SQLAlchemyResourceStore(PostModel, session_factory)


@pytest.fixture
def seed(session: AsyncSession):
    """Persist and commit model instances; returns them for convenience."""

    async def _seed(*objects: Any) -> tuple[Any, ...]:
        session.add_all(objects)
        await session.commit()
        return objects

    return _seed


@pytest.fixture
def fetch(session_factory: async_sessionmaker[AsyncSession]):
    """Load a row in a fresh session, bypassing any cached identity map."""

    async def _fetch(model: type[Any], entity_id: Any) -> Any:
        async with session_factory() as sess:
            return await sess.get(model, entity_id)

    return _fetch
