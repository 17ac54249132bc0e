"""HTTP surface: envelopes, session gating and exports."""

import httpx
import pytest

from zaykacore.app.main import create_app
from zaykacore.app.utils.exports import DirectorySink

from factories import OTHER, TENANT, add_order, remote_row


@pytest.fixture
async def client(store, remote_service, sink, tmp_path):
    app = create_app(
        store=store,
        remote=remote_service.client(),
        sink=sink,
        file_sink=DirectorySink(tmp_path),
        run_scheduler=False,
    )
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


H = {"X-Tenant-ID": TENANT}


@pytest.mark.anyio
async def test_requests_without_session_are_rejected(client):
    resp = await client.get("/api/customers", headers=H)
    assert resp.status_code == 401
    assert resp.json() == {
        "ok": False,
        "error": {"code": "NOT_AUTHENTICATED", "message": "no active session for restaurant"},
    }
    resp = await client.get("/api/notifications")
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_login_syncs_notifications(client, remote_service, sink):
    remote_service.notifications = [
        remote_row("n1", title="New Delivery Order", message="Delivery Order DEL-9 from Swiggy")
    ]

    resp = await client.post("/api/session/login", json={"restaurant_id": TENANT})

    assert resp.status_code == 200
    assert resp.json()["data"]["unreadCount"] == 1
    assert sink.ids == ["n1"]

    rows = (await client.get("/api/notifications", headers=H)).json()["data"]
    assert rows[0]["id"] == "n1"
    assert rows[0]["isRead"] is False
    assert rows[0]["orderNumber"] == "DEL-9"

    resp = await client.post("/api/notifications/n1/read", headers=H)
    assert resp.json()["data"]["isRead"] is True
    assert remote_service.read_pushes == ["n1"]

    preview = (await client.get("/api/notifications/preview", headers=H)).json()["data"]
    assert preview["unreadCount"] == 0


@pytest.mark.anyio
async def test_sessions_do_not_leak_between_tenants(client):
    await client.post("/api/session/login", json={"restaurant_id": TENANT})
    resp = await client.get("/api/customers", headers={"X-Tenant-ID": OTHER})
    assert resp.status_code == 401


@pytest.mark.anyio
async def test_credit_flow_and_error_envelope(client):
    await client.post("/api/session/login", json={"restaurant_id": TENANT})
    created = await client.post(
        "/api/customers", json={"name": "Kiran", "mobile": "9811111111"}, headers=H
    )
    cid = created.json()["data"]["id"]
    assert created.json()["data"]["creditBalance"] == 0

    credit = await client.post(f"/api/customers/{cid}/credit", json={"amount": "500"}, headers=H)
    assert credit.json()["data"]["balanceAfter"] == 500
    payment = await client.post(f"/api/customers/{cid}/payment", json={"amount": 200}, headers=H)
    assert payment.json()["data"]["amount"] == -200

    over = await client.post(f"/api/customers/{cid}/payment", json={"amount": 400}, headers=H)
    assert over.status_code == 409
    assert over.json()["error"]["code"] == "EXCEEDS_BALANCE"

    zero = await client.post(f"/api/customers/{cid}/credit", json={"amount": 0}, headers=H)
    assert zero.status_code == 400
    assert zero.json()["error"]["code"] == "INVALID_AMOUNT"

    summary = (await client.get("/api/customers/summary", headers=H)).json()["data"]
    assert summary == {"totalOutstanding": 300.0, "totalCredit": 300.0, "customersWithCredit": 1}

    history = (await client.get(f"/api/customers/{cid}/history", headers=H)).json()["data"]
    assert [h["type"] for h in history] == ["CREDIT", "PAYMENT"]

    missing = await client.get("/api/customers/cus_missing", headers=H)
    assert missing.status_code == 404


@pytest.mark.anyio
async def test_report_json_and_export(client, store, tmp_path):
    await client.post("/api/session/login", json={"restaurant_id": TENANT})
    await add_order(store, TENANT, "ORD-1", total=118, tax=18, items=[100])

    resp = await client.get(
        "/api/reports/sales", params={"start": "2024-01-01", "end": "2024-01-31"}, headers=H
    )
    assert resp.json()["data"]["summary"]["total_revenue"] == 118.0

    resp = await client.get(
        "/api/reports/GSTR-1/export",
        params={"start": "2024-01-01", "end": "2024-01-31", "format": "csv"},
        headers=H,
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    filename = "GSTR-1_2024-01-01_to_2024-01-31.csv"
    assert filename in resp.headers["content-disposition"]
    assert (tmp_path / filename).exists()

    unknown = await client.get(
        "/api/reports/balance-sheet", params={"start": "2024-01-01", "end": "2024-01-31"}, headers=H
    )
    assert unknown.status_code == 404


@pytest.mark.anyio
async def test_logout_with_clear_data(client, store):
    await client.post("/api/session/login", json={"restaurant_id": TENANT})
    await add_order(store, TENANT, "ORD-1", total=10)

    resp = await client.post(
        "/api/session/logout", json={"restaurant_id": TENANT, "clear_data": True}
    )

    assert resp.json()["data"]["cleared"] is True
    assert await store.orders_in_range(TENANT, "2024-01-01", "2024-12-31") == []
    assert (await client.get("/api/customers", headers=H)).status_code == 401


@pytest.mark.anyio
async def test_metrics_endpoint(client):
    resp = await client.get("/metrics")
    assert resp.status_code == 200
    assert "ledger_entries_total" in resp.text
    assert "notifications_synced_total" in resp.text
