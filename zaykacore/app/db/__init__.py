from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from ..obs import add_query_logger
from .local import get_engine, init_schema, reset_engine

# Helpers to initialise an in-memory database for tests. These helpers are
# intentionally side-effect free; the returned engine is not exposed until
# tests explicitly hand it to a ``LocalStore``.


async def create_test_engine() -> AsyncEngine:
    """Return an in-memory engine with the full schema created.

    The database uses a static pool so that every session shares the same
    connection and therefore the same data.
    """

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    add_query_logger(engine, "test")
    await init_schema(engine)
    return engine


__all__ = ["create_test_engine", "get_engine", "init_schema", "reset_engine"]
