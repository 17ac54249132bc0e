"""Logged-in restaurant registry.

Instead of one ambient "current restaurant", flows pass the tenant id
explicitly and check it here. Every logout bumps the tenant's epoch; work
that captured an older epoch must drop its results instead of applying them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import NotAuthenticated

if TYPE_CHECKING:  # pragma: no cover
    from .repos_sqlalchemy import LocalStore

logger = logging.getLogger("tenancy")


class TenantSessions:
    """Track which restaurants have an active session on this device."""

    def __init__(self) -> None:
        self._active: set[str] = set()
        self._epochs: dict[str, int] = {}

    def login(self, tenant_id: str) -> int:
        tenant_id = (tenant_id or "").strip()
        if not tenant_id:
            raise NotAuthenticated("restaurant id required")
        self._active.add(tenant_id)
        epoch = self._epochs.setdefault(tenant_id, 0)
        logger.info("session started", extra={"tenant": tenant_id, "op": "login"})
        return epoch

    async def logout(
        self, tenant_id: str, *, store: "LocalStore | None" = None, clear_data: bool = False
    ) -> None:
        """End the session and invalidate in-flight work for ``tenant_id``.

        With ``clear_data`` the tenant's rows are removed from ``store``.
        """

        self._active.discard(tenant_id)
        self._epochs[tenant_id] = self._epochs.get(tenant_id, 0) + 1
        if clear_data and store is not None:
            await store.clear_restaurant_data(tenant_id)
        logger.info("session ended", extra={"tenant": tenant_id, "op": "logout"})

    def require(self, tenant_id: str | None) -> str:
        tenant_id = (tenant_id or "").strip()
        if not tenant_id or tenant_id not in self._active:
            raise NotAuthenticated("no active session for restaurant")
        return tenant_id

    def is_logged_in(self, tenant_id: str) -> bool:
        return tenant_id in self._active

    def active(self) -> list[str]:
        return sorted(self._active)

    def epoch(self, tenant_id: str) -> int:
        return self._epochs.get(tenant_id, 0)

    def is_current(self, tenant_id: str, epoch: int) -> bool:
        return tenant_id in self._active and self._epochs.get(tenant_id, 0) == epoch


__all__ = ["TenantSessions"]
