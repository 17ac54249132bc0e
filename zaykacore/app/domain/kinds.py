"""Enumerations for notification, order and ledger record kinds."""

from __future__ import annotations

from enum import Enum


class NotificationType(str, Enum):
    """Severity of a server-originated notification."""

    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


class TransactionType(str, Enum):
    """Kinds of entries in a customer's credit ledger."""

    CREDIT = "CREDIT"
    PAYMENT = "PAYMENT"


class OrderStatus(str, Enum):
    """Lifecycle states of a billed order as recorded on the device."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    SERVED = "SERVED"
    CANCELLED = "CANCELLED"


def normalize_notification_type(value: str | None) -> str:
    """Return a valid notification type, falling back to ``info``."""

    try:
        return NotificationType((value or "").strip().lower()).value
    except ValueError:
        return NotificationType.INFO.value


def is_served(order) -> bool:
    """Return ``True`` if ``order`` counts as a served supply for GST.

    Older builds stored the served marker in ``payment_status`` rather than
    ``status``; either one qualifies.
    """

    served = OrderStatus.SERVED.value
    return (order.status or "").upper() == served or (
        order.payment_status or ""
    ).upper() == served
