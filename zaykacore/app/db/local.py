"""Engine management for the on-device database.

The DSN is read from ``Settings.local_store_url``; on a device this is a
single SQLite file shared by every restaurant that has logged in, with rows
partitioned by ``restaurant_id``.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from config import get_settings

from ..models_tenant import Base
from ..obs import add_query_logger

logger = logging.getLogger("store")

_engine: AsyncEngine | None = None


def get_engine(url: str | None = None) -> AsyncEngine:
    """Return a singleton async engine for the device database."""
    global _engine
    if _engine is None:
        dsn = url or get_settings().local_store_url
        _engine = create_async_engine(dsn, future=True)
        add_query_logger(_engine, "local")
    return _engine


async def init_schema(engine: AsyncEngine) -> None:
    """Create any missing tables; existing tables are left untouched."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("local schema ready")


async def reset_engine() -> None:
    """Dispose the singleton engine so the next call builds a fresh one."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


__all__ = ["get_engine", "init_schema", "reset_engine"]
