"""Routes for the notification list, dropdown preview and sync."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from .deps.tenant import get_tenant_id
from .services.delivery import extract_order_number
from .services.notifications import NotificationFilter, NotificationSyncEngine, serialize
from .utils.responses import ok

router = APIRouter(prefix="/api/notifications")


def get_engine(request: Request) -> NotificationSyncEngine:
    return request.app.state.notifications


def _row(notification) -> dict:
    data = serialize(notification)
    data["orderNumber"] = extract_order_number(notification)
    return data


@router.get("")
async def list_notifications(
    filter: NotificationFilter = Query(default=NotificationFilter.ALL),
    tenant_id: str = Depends(get_tenant_id),
    engine: NotificationSyncEngine = Depends(get_engine),
) -> dict:
    """Return notifications newest first, optionally only read or unread."""

    rows = await engine.listing(tenant_id, filter)
    return ok([_row(n) for n in rows])


@router.get("/preview")
async def preview(
    limit: int | None = Query(default=None, ge=0),
    tenant_id: str = Depends(get_tenant_id),
    engine: NotificationSyncEngine = Depends(get_engine),
) -> dict:
    result = await engine.preview(tenant_id, limit)
    return ok(
        {
            "items": [_row(n) for n in result.items],
            "unreadCount": result.unread_count,
        }
    )


@router.post("/sync")
async def sync(
    tenant_id: str = Depends(get_tenant_id),
    engine: NotificationSyncEngine = Depends(get_engine),
) -> dict:
    """Reconcile with the remote feed; falls back to local rows when offline."""

    result = await engine.sync(tenant_id)
    return ok(
        {
            "notifications": [_row(n) for n in result.notifications],
            "unreadCount": result.unread_count,
            "inserted": result.inserted,
            "updated": result.updated,
            "delivered": result.delivered,
            "remoteOk": result.remote_ok,
        }
    )


@router.post("/read-all")
async def mark_all_read(
    tenant_id: str = Depends(get_tenant_id),
    engine: NotificationSyncEngine = Depends(get_engine),
) -> dict:
    changed = await engine.mark_all_read(tenant_id)
    return ok({"updated": changed})


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    tenant_id: str = Depends(get_tenant_id),
    engine: NotificationSyncEngine = Depends(get_engine),
) -> dict:
    notification = await engine.mark_read(tenant_id, notification_id)
    return ok(_row(notification))


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    tenant_id: str = Depends(get_tenant_id),
    engine: NotificationSyncEngine = Depends(get_engine),
) -> dict:
    await engine.delete(tenant_id, notification_id)
    return ok({"id": notification_id})
