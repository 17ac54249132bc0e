from datetime import datetime
from typing import Optional

from .clock import utcnow


def active(model):
    """Return a ``deleted_at IS NULL`` criterion for ``model``."""
    return model.deleted_at.is_(None)


def is_deleted(resource) -> bool:
    return resource is not None and getattr(resource, "deleted_at", None) is not None


def soft_delete(model_obj, now: Optional[datetime] = None) -> None:
    """Mark ``model_obj`` as deleted by setting ``deleted_at``."""
    model_obj.deleted_at = now or utcnow()
