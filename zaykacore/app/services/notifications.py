"""Notification sync engine.

The engine keeps the device's notifications eventually consistent with the
remote feed. A remote failure never breaks the caller: the local rows are
returned as they are and the next pass tries again.

Merging is done by :func:`reconcile`, a pure function of the local row (if
any) and the remote copy, so the ``is_read`` policy can be tested without a
database or network.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from config import ReadPolicy, get_settings

from ..domain.kinds import normalize_notification_type
from ..exceptions import RemoteUnavailable
from ..models_tenant import Notification
from ..obs import capture_exception
from ..repos_sqlalchemy import LocalStore
from ..routes_metrics import notifications_delivered_total, notifications_synced_total
from ..tenancy import TenantSessions
from ..utils.clock import utcnow
from ..utils.locks import KeyedLocks
from ..utils.soft_delete import is_deleted
from .delivery import LoggingSink, NotificationSink, delivery_payload
from .remote import RemoteClient, RemoteNotification

logger = logging.getLogger("sync")


class NotificationFilter(str, Enum):
    ALL = "all"
    UNREAD = "unread"
    READ = "read"


@dataclass
class SyncResult:
    """Outcome of one ``sync`` pass."""

    notifications: List[Notification]
    unread_count: int
    inserted: int = 0
    updated: int = 0
    delivered: int = 0
    remote_ok: bool = True
    discarded: bool = False


@dataclass
class Preview:
    items: List[Notification] = field(default_factory=list)
    unread_count: int = 0


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def reconcile(
    local: Optional[Notification],
    remote: RemoteNotification,
    policy: ReadPolicy = ReadPolicy.REMOTE_WINS,
    *,
    tenant_id: str,
    now: Optional[datetime] = None,
) -> Notification:
    """Return the row to store for ``remote`` given the existing ``local`` row.

    Content fields always come from the remote copy. ``is_read`` follows
    ``policy``: with ``REMOTE_WINS`` the remote flag is copied even when it
    turns a locally read row unread again; with ``LOCAL_WINS_ONCE_SET`` a
    local read is kept.
    """

    now = now or utcnow()
    is_read = bool(remote.is_read)
    if local is not None and policy == ReadPolicy.LOCAL_WINS_ONCE_SET:
        is_read = bool(local.is_read) or is_read
    if local is not None and local.created_at is not None:
        created_at = local.created_at
    else:
        created_at = _naive_utc(remote.created_at) or now
    return Notification(
        restaurant_id=tenant_id,
        id=remote.id,
        title=remote.title,
        message=remote.message,
        type=normalize_notification_type(remote.type),
        is_read=is_read,
        created_at=created_at,
        updated_at=now,
    )


def _newest_first(rows):
    return sorted(rows, key=lambda n: (n.created_at or datetime.min, n.id), reverse=True)


def unread_count(rows) -> int:
    return sum(1 for n in rows if not n.is_read and not is_deleted(n))


def top_n(rows, n: int) -> list:
    """Return the ``n`` newest visible notifications."""
    visible = [r for r in rows if not is_deleted(r)]
    return _newest_first(visible)[: max(n, 0)]


class NotificationSyncEngine:
    """Merge the remote feed into the local store and hand off new arrivals."""

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteClient,
        sink: NotificationSink | None = None,
        *,
        sessions: TenantSessions | None = None,
        policy: ReadPolicy | None = None,
        preview_limit: int | None = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.remote = remote
        self.sink = sink or LoggingSink()
        self.sessions = sessions
        self.policy = ReadPolicy(policy or settings.notification_read_policy)
        self.preview_limit = (
            preview_limit if preview_limit is not None else settings.notification_preview_limit
        )
        self._locks = KeyedLocks()
        # ids handed to the sink, pruned to rows the store still holds
        self._delivered: dict[str, set[str]] = {}

    def _current(self, tenant_id: str, epoch: Optional[int]) -> bool:
        if self.sessions is None or epoch is None:
            return True
        return self.sessions.is_current(tenant_id, epoch)

    async def sync(self, tenant_id: str) -> SyncResult:
        """Run one reconciliation pass for ``tenant_id``.

        Passes for the same tenant are serialized. If the tenant logs out
        while the feed is being fetched the fetched rows are dropped.
        """

        tenant_id = self.store.assert_tenant(tenant_id)
        epoch = self.sessions.epoch(tenant_id) if self.sessions is not None else None
        async with self._locks.hold(tenant_id):
            try:
                remote = await self.remote.fetch_notifications(tenant_id)
            except RemoteUnavailable:
                logger.warning(
                    "sync fell back to local data", extra={"tenant": tenant_id, "op": "sync"}
                )
                remote = None

            if not self._current(tenant_id, epoch):
                logger.info("sync discarded after logout", extra={"tenant": tenant_id, "op": "sync"})
                return SyncResult(notifications=[], unread_count=0, discarded=True)

            result = SyncResult(notifications=[], unread_count=0, remote_ok=remote is not None)
            arrivals: list[Notification] = []
            if remote:
                now = utcnow()
                async with self.store.transaction(tenant_id) as session:
                    for item in remote:
                        existing = await self.store.find(
                            tenant_id, Notification, item.id, include_deleted=True, session=session
                        )
                        if is_deleted(existing):
                            continue
                        merged = reconcile(existing, item, self.policy, tenant_id=tenant_id, now=now)
                        stored = await self.store.upsert(tenant_id, merged, session=session)
                        if existing is None:
                            result.inserted += 1
                            if not stored.is_read:
                                arrivals.append(stored)
                        else:
                            result.updated += 1
                notifications_synced_total.labels(outcome="inserted").inc(result.inserted)
                notifications_synced_total.labels(outcome="updated").inc(result.updated)

            if tenant_id in self._delivered:
                held = await self.store.notifications(tenant_id, include_deleted=True)
                self._delivered[tenant_id] &= {n.id for n in held}

            for notification in arrivals:
                if not self._current(tenant_id, epoch):
                    break
                if await self._deliver(tenant_id, notification):
                    result.delivered += 1

            rows = await self.store.notifications(tenant_id)
            result.notifications = rows
            result.unread_count = unread_count(rows)
        logger.info(
            "sync done: %d new, %d updated, %d unread",
            result.inserted,
            result.updated,
            result.unread_count,
            extra={"tenant": tenant_id, "op": "sync"},
        )
        return result

    async def _deliver(self, tenant_id: str, notification: Notification) -> bool:
        seen = self._delivered.setdefault(tenant_id, set())
        if notification.id in seen:
            return False
        seen.add(notification.id)
        try:
            await self.sink.deliver(delivery_payload(notification))
        except Exception as exc:  # delivery is fire-and-forget
            capture_exception(exc)
            return False
        notifications_delivered_total.inc()
        return True

    async def mark_read(self, tenant_id: str, notification_id: str) -> Notification:
        """Mark a notification read locally, then tell the remote service.

        A notification that is already read is returned untouched and no
        remote call is made. A failed push is logged and left for the next
        sync pass.
        """

        tenant_id = self.store.assert_tenant(tenant_id)
        async with self.store.transaction(tenant_id) as session:
            notification = await self.store.get(
                tenant_id, Notification, notification_id, session=session
            )
            changed = not notification.is_read
            if changed:
                notification.is_read = True
                notification.updated_at = utcnow()
        if changed:
            try:
                await self.remote.push_notification_read(notification_id)
            except RemoteUnavailable:
                logger.warning(
                    "mark-read kept local only", extra={"tenant": tenant_id, "op": "mark_read"}
                )
        return notification

    async def mark_all_read(self, tenant_id: str) -> int:
        """Mark every unread notification read on this device only."""

        tenant_id = self.store.assert_tenant(tenant_id)
        now = utcnow()
        changed = 0
        async with self.store.transaction(tenant_id) as session:
            for notification in await self.store.notifications(tenant_id, session=session):
                if not notification.is_read:
                    notification.is_read = True
                    notification.updated_at = now
                    changed += 1
        return changed

    async def delete(self, tenant_id: str, notification_id: str) -> None:
        await self.store.delete(tenant_id, Notification, notification_id)

    async def listing(
        self, tenant_id: str, which: NotificationFilter | str = NotificationFilter.ALL
    ) -> list[Notification]:
        which = NotificationFilter(which)
        rows = await self.store.notifications(tenant_id)
        if which is NotificationFilter.UNREAD:
            return [n for n in rows if not n.is_read]
        if which is NotificationFilter.READ:
            return [n for n in rows if n.is_read]
        return rows

    async def preview(self, tenant_id: str, limit: int | None = None) -> Preview:
        rows = await self.store.notifications(tenant_id)
        return Preview(
            items=top_n(rows, self.preview_limit if limit is None else limit),
            unread_count=unread_count(rows),
        )


def serialize(notification: Notification) -> dict:
    """Render a notification the way the client screens expect it."""

    return {
        "id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type,
        "isRead": bool(notification.is_read),
        "createdAt": notification.created_at.isoformat() if notification.created_at else None,
    }


__all__ = [
    "NotificationSyncEngine",
    "NotificationFilter",
    "SyncResult",
    "Preview",
    "reconcile",
    "unread_count",
    "top_n",
    "serialize",
]
