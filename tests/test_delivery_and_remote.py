from types import SimpleNamespace

import httpx
import pytest

from zaykacore.app.exceptions import RemoteUnavailable
from zaykacore.app.services.delivery import delivery_payload, extract_order_number
from zaykacore.app.services.notifications import NotificationSyncEngine
from zaykacore.app.services.remote import RemoteClient
from zaykacore.app.services.scheduler import SyncScheduler
from zaykacore.app.tenancy import TenantSessions

from factories import OTHER, TENANT, remote_row


def _n(**kw):
    base = {"id": "n1", "title": "Alert", "message": "", "type": "info"}
    base.update(kw)
    return SimpleNamespace(**base)


@pytest.mark.parametrize(
    "kind,label",
    [("error", "View Details"), ("warning", "Review"), ("success", "View"), ("info", "Open")],
)
def test_delivery_payload_action_labels(kind, label):
    payload = delivery_payload(_n(type=kind))
    assert payload == {
        "title": "Alert",
        "message": "",
        "action": "open_notification",
        "actionLabel": label,
        "notificationId": "n1",
        "type": kind,
    }


@pytest.mark.parametrize(
    "title,message,expected",
    [
        ("New Delivery Order", "Delivery Order DEL-1001 from Swiggy", "DEL-1001"),
        ("Delivery Order received", "Order ZX-77 from Zomato", "ZX-77"),
        ("Delivery Order", "Please prepare DEL-42A quickly", "DEL-42A"),
        ("Delivery Order", "no number here", None),
        ("Stock low", "Order ABC from store", None),
    ],
)
def test_extract_order_number(title, message, expected):
    assert extract_order_number(_n(title=title, message=message)) == expected


def _client(handler) -> RemoteClient:
    return RemoteClient("http://remote.test", timeout=1.0, transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_fetch_parses_feed():
    def handler(request):
        assert request.url.params["restaurantId"] == TENANT
        return httpx.Response(
            200,
            json={
                "success": True,
                "notifications": [
                    remote_row(7, createdAt="2024-03-01T10:00:00.000Z", extra_field=1)
                ],
            },
        )

    rows = await _client(handler).fetch_notifications(TENANT)
    assert rows[0].id == "7"
    assert rows[0].is_read is False
    assert rows[0].created_at.year == 2024


@pytest.mark.anyio
async def test_fetch_rejects_malformed_json():
    def handler(request):
        return httpx.Response(200, content=b"<html>")

    with pytest.raises(RemoteUnavailable):
        await _client(handler).fetch_notifications(TENANT)


@pytest.mark.anyio
async def test_timeouts_map_to_remote_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(RemoteUnavailable):
        await _client(handler).fetch_notifications(TENANT)
    with pytest.raises(RemoteUnavailable):
        await _client(handler).push_notification_read("n1")


@pytest.mark.anyio
async def test_push_read_rejected():
    def handler(request):
        return httpx.Response(200, json={"success": False, "message": "unknown id"})

    with pytest.raises(RemoteUnavailable, match="unknown id"):
        await _client(handler).push_notification_read("n1")


@pytest.mark.anyio
async def test_scheduler_syncs_each_active_tenant(store, remote_service, sink):
    sessions = TenantSessions()
    sessions.login(TENANT)
    sessions.login(OTHER)
    remote_service.notifications = [remote_row("n1")]
    engine = NotificationSyncEngine(store, remote_service.client(), sink, sessions=sessions)
    scheduler = SyncScheduler(engine, sessions, interval=3600)

    assert await scheduler.run_once() == 2
    assert sorted(remote_service.feed_requests) == [TENANT, OTHER]

    await sessions.logout(OTHER)
    remote_service.feed_requests.clear()
    assert await scheduler.run_once() == 1
    assert remote_service.feed_requests == [TENANT]


@pytest.mark.anyio
async def test_scheduler_start_and_stop(store, remote_service, sink):
    sessions = TenantSessions()
    engine = NotificationSyncEngine(store, remote_service.client(), sink, sessions=sessions)
    scheduler = SyncScheduler(engine, sessions, interval=3600)
    scheduler.start()
    assert scheduler.running
    await scheduler.stop()
    assert not scheduler.running
