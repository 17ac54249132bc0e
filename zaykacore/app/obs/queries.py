"""Statement timing for the on-device SQLite store.

Writes on a phone-class device can stall when the file is being synced or
the disk is busy, so slow statements are logged with the tenant that issued
them. Parameters are hashed because they carry customer names and numbers.
"""

from __future__ import annotations

import hashlib
import logging
import os
import time

from sqlalchemy import event
from sqlalchemy.engine import Engine

from .logging import tenant_ctx

SLOW_STATEMENT_MS = float(os.getenv("STORE_SLOW_STATEMENT_MS", "250"))
MAX_SQL_CHARS = 160

logger = logging.getLogger("store")


def _shorten(statement: str) -> str:
    sql = " ".join(statement.split())
    return sql if len(sql) <= MAX_SQL_CHARS else sql[: MAX_SQL_CHARS - 3] + "..."


def add_query_logger(engine: Engine, label: str, *, slow_ms: float | None = None) -> None:
    """Warn about statements on ``engine`` slower than ``slow_ms``."""
    threshold = SLOW_STATEMENT_MS if slow_ms is None else slow_ms
    target = engine.sync_engine if hasattr(engine, "sync_engine") else engine

    def before_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):  # type: ignore[no-untyped-def]
        context._statement_started = time.perf_counter()

    def after_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):  # type: ignore[no-untyped-def]
        elapsed = (time.perf_counter() - context._statement_started) * 1000
        if elapsed <= threshold:
            return
        digest = hashlib.sha256(repr(parameters).encode()).hexdigest()[:8]
        logger.warning(
            "slow statement %.0fms on %s: %s [params %s]",
            elapsed,
            label,
            _shorten(statement),
            digest,
            extra={"tenant": tenant_ctx.get(), "op": "query"},
        )

    event.listen(target, "before_cursor_execute", before_cursor_execute)
    event.listen(target, "after_cursor_execute", after_cursor_execute)


__all__ = ["add_query_logger"]
