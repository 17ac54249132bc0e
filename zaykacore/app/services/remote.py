"""HTTP client for the remote restaurant service.

Only the notification feed and the mark-read acknowledgement are consumed.
Every call is bounded by ``Settings.remote_timeout_secs``; transport errors,
non-2xx answers, ``success: false`` bodies and malformed JSON are all raised
as :class:`RemoteUnavailable` so callers can fall back to local data.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config import get_settings

from ..exceptions import RemoteUnavailable
from ..routes_metrics import remote_failures_total

logger = logging.getLogger("remote")

FEED_PATH = "/api/android/notifications"
MARK_READ_PATH = "/api/android/notifications/mark-read"


class RemoteNotification(BaseModel):
    """A notification as served by the remote feed."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    id: str
    title: str = ""
    message: str = ""
    type: str = "info"
    is_read: bool = Field(default=False, alias="isRead")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class NotificationFeed(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = False
    notifications: list[RemoteNotification] = Field(default_factory=list)


class Ack(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = False
    message: Optional[str] = None


class RemoteClient:
    """Thin async wrapper around the remote REST endpoints.

    ``transport`` may be an ``httpx.MockTransport`` in tests.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.remote_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.remote_timeout_secs
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    async def fetch_notifications(self, restaurant_id: str) -> list[RemoteNotification]:
        """Return the remote notifications of ``restaurant_id``."""

        try:
            async with self._client() as client:
                resp = await client.get(FEED_PATH, params={"restaurantId": restaurant_id})
                resp.raise_for_status()
                feed = NotificationFeed.model_validate(resp.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            self._failed("fetch_notifications", restaurant_id, exc)
            raise RemoteUnavailable("notification feed unavailable") from exc
        if not feed.success:
            self._failed("fetch_notifications", restaurant_id, "success=false")
            raise RemoteUnavailable("notification feed returned success=false")
        return feed.notifications

    async def push_notification_read(self, notification_id: str) -> None:
        """Tell the remote service that ``notification_id`` was read."""

        try:
            async with self._client() as client:
                resp = await client.patch(
                    MARK_READ_PATH, json={"notificationId": notification_id}
                )
                resp.raise_for_status()
                ack = Ack.model_validate(resp.json())
        except (httpx.HTTPError, ValueError, ValidationError) as exc:
            self._failed("push_notification_read", None, exc)
            raise RemoteUnavailable("mark-read push failed") from exc
        if not ack.success:
            self._failed("push_notification_read", None, ack.message or "success=false")
            raise RemoteUnavailable(ack.message or "mark-read rejected")

    @staticmethod
    def _failed(call: str, tenant_id: str | None, reason: object) -> None:
        remote_failures_total.labels(call=call).inc()
        logger.warning(
            "%s failed: %s", call, reason, extra={"tenant": tenant_id, "op": call}
        )


__all__ = ["RemoteClient", "RemoteNotification", "NotificationFeed", "FEED_PATH", "MARK_READ_PATH"]
