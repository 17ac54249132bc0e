"""Shared builders and fakes for the test-suite."""

import json
from datetime import date, datetime
from decimal import Decimal

import httpx

from zaykacore.app.models_tenant import Expense, Order, OrderItem, Tax
from zaykacore.app.repos_sqlalchemy import LocalStore
from zaykacore.app.services.remote import FEED_PATH, MARK_READ_PATH, RemoteClient

TENANT = "rest_1"
OTHER = "rest_2"


class FakeRemoteService:
    """In-process stand-in for the remote notification endpoints."""

    def __init__(self) -> None:
        self.notifications: list[dict] = []
        self.offline = False
        self.feed_status = 200
        self.feed_success = True
        self.read_pushes: list[str] = []
        self.feed_requests: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.offline:
            raise httpx.ConnectError("offline", request=request)
        if request.method == "GET" and request.url.path == FEED_PATH:
            self.feed_requests.append(request.url.params.get("restaurantId"))
            if self.feed_status != 200:
                return httpx.Response(self.feed_status, json={"success": False})
            return httpx.Response(
                200,
                json={"success": self.feed_success, "notifications": self.notifications},
            )
        if request.method == "PATCH" and request.url.path == MARK_READ_PATH:
            body = json.loads(request.content)
            self.read_pushes.append(body["notificationId"])
            return httpx.Response(200, json={"success": True})
        return httpx.Response(404, json={"success": False})

    def client(self) -> RemoteClient:
        return RemoteClient(
            "http://remote.test", timeout=1.0, transport=httpx.MockTransport(self.handler)
        )


class RecordingSink:
    def __init__(self) -> None:
        self.payloads: list[dict] = []

    async def deliver(self, payload: dict) -> None:
        self.payloads.append(payload)

    @property
    def ids(self) -> list[str]:
        return [p["notificationId"] for p in self.payloads]


def remote_row(nid: str, *, is_read: bool = False, title: str = "New order", **extra) -> dict:
    row = {
        "id": nid,
        "title": title,
        "message": extra.pop("message", f"message for {nid}"),
        "type": extra.pop("type", "info"),
        "isRead": is_read,
    }
    row.update(extra)
    return row


async def add_order(
    store: LocalStore,
    tenant: str,
    number: str,
    *,
    total,
    tax=0,
    items=(),
    status: str = "SERVED",
    payment_status: str = "PAID",
    payment_method: str | None = "Cash",
    customer_id: str | None = None,
    created_at: datetime = datetime(2024, 1, 15, 12, 0),
) -> Order:
    order = await store.upsert(
        tenant,
        Order(
            restaurant_id=tenant,
            order_number=number,
            total_amount=Decimal(str(total)),
            tax_amount=Decimal(str(tax)),
            status=status,
            payment_status=payment_status,
            payment_method=payment_method,
            customer_id=customer_id,
            created_at=created_at,
        ),
    )
    for price in items:
        await store.upsert(
            tenant,
            OrderItem(
                order_id=order.id,
                item_name="Thali",
                quantity=1,
                unit_price=Decimal(str(price)),
                total_price=Decimal(str(price)),
            ),
        )
    return order


async def add_expense(
    store: LocalStore,
    tenant: str,
    category: str,
    amount,
    *,
    day: date = date(2024, 1, 10),
    description: str | None = None,
    vendor: str | None = None,
) -> Expense:
    return await store.upsert(
        tenant,
        Expense(
            restaurant_id=tenant,
            category=category,
            amount=Decimal(str(amount)),
            date=day,
            description=description,
            vendor_name=vendor,
        ),
    )


async def add_tax(store: LocalStore, tenant: str, name: str, pct) -> Tax:
    return await store.upsert(
        tenant, Tax(restaurant_id=tenant, name=name, percentage=Decimal(str(pct)))
    )
