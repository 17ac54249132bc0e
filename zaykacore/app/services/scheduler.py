"""Periodic notification sync for logged-in restaurants."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from config import get_settings

from ..exceptions import CoreError
from ..obs import capture_exception
from ..obs.logging import bound_tenant
from ..tenancy import TenantSessions
from .notifications import NotificationSyncEngine

logger = logging.getLogger("sync")


class SyncScheduler:
    """Run ``engine.sync`` for every active tenant on a fixed interval."""

    def __init__(
        self,
        engine: NotificationSyncEngine,
        sessions: TenantSessions,
        interval: Optional[float] = None,
    ) -> None:
        self.engine = engine
        self.sessions = sessions
        self.interval = (
            interval if interval is not None else get_settings().notification_sync_interval_secs
        )
        self._task: Optional[asyncio.Task] = None

    async def run_once(self) -> int:
        """Sync each active tenant once; return how many passes completed."""

        done = 0
        for tenant_id in self.sessions.active():
            with bound_tenant(tenant_id):
                try:
                    await self.engine.sync(tenant_id)
                    done += 1
                except CoreError as exc:
                    logger.warning("scheduled sync failed: %s", exc.code, extra={"op": "sync"})
                except Exception as exc:  # pragma: no cover - keep the loop alive
                    capture_exception(exc)
        return done

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop())

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


__all__ = ["SyncScheduler"]
