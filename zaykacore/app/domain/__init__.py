"""Domain enumerations and helpers."""

from .kinds import (
    NotificationType,
    OrderStatus,
    TransactionType,
    is_served,
    normalize_notification_type,
)

__all__ = [
    "NotificationType",
    "OrderStatus",
    "TransactionType",
    "is_served",
    "normalize_notification_type",
]
