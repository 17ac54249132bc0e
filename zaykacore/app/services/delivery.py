"""Hand-off of newly arrived notifications to the device notification surface."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger("sync")

OPEN_ACTION = "open_notification"

_ACTION_LABELS = {
    "error": "View Details",
    "warning": "Review",
    "success": "View",
}

_ORDER_PATTERNS = (
    re.compile(r"Delivery Order ([A-Z0-9-]+) from"),
    re.compile(r"Order ([A-Z0-9-]+) from"),
    re.compile(r"(DEL-[A-Z0-9-]+)"),
)


class NotificationSink(Protocol):
    """Device surface showing a banner or system alert."""

    async def deliver(self, payload: Dict[str, Any]) -> None: ...


def action_label(kind: str | None) -> str:
    return _ACTION_LABELS.get(kind or "", "Open")


def delivery_payload(notification) -> Dict[str, Any]:
    """Build the banner payload for ``notification``."""

    return {
        "title": notification.title,
        "message": notification.message,
        "action": OPEN_ACTION,
        "actionLabel": action_label(notification.type),
        "notificationId": notification.id,
        "type": notification.type,
    }


def extract_order_number(notification) -> Optional[str]:
    """Return the delivery order number mentioned by ``notification``.

    Only notifications about a delivery order are considered; the number is
    looked up in the message.
    """

    title = notification.title or ""
    message = notification.message or ""
    if "Delivery Order" not in message and "Delivery Order" not in title:
        return None
    for pattern in _ORDER_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1)
    return None


class LoggingSink:
    """Sink used when no device surface is attached; logs each payload."""

    def __init__(self) -> None:
        self.delivered: list[Dict[str, Any]] = []

    async def deliver(self, payload: Dict[str, Any]) -> None:
        self.delivered.append(payload)
        logger.info(
            "notification delivered: %s",
            payload.get("title"),
            extra={"op": "deliver"},
        )


__all__ = [
    "NotificationSink",
    "LoggingSink",
    "OPEN_ACTION",
    "action_label",
    "delivery_payload",
    "extract_order_number",
]
