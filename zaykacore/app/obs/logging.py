import json
import logging
import re
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+", re.I)
PHONE_RE = re.compile(r"\b\d{10}\b")

tenant_ctx: ContextVar[str | None] = ContextVar("tenant", default=None)


@contextmanager
def bound_tenant(tenant_id: str | None):
    """Tag log records emitted inside the block with ``tenant_id``."""
    token = tenant_ctx.set(tenant_id)
    try:
        yield
    finally:
        tenant_ctx.reset(token)


def _redact_pii(text: str) -> str:
    """Replace emails and customer mobile numbers with ***."""
    text = EMAIL_RE.sub("***", text)
    text = PHONE_RE.sub("***", text)
    return text


class TenantFilter(logging.Filter):
    """Attach the active tenant from context to log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        if getattr(record, "tenant", None) is None:
            record.tenant = tenant_ctx.get()
        return True


class JsonFormatter(logging.Formatter):
    """Render logs as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        msg = _redact_pii(record.getMessage())
        data: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "tenant": getattr(record, "tenant", None),
            "op": getattr(record, "op", None),
            "msg": msg,
        }
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data)


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure root logger with JSON formatting."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(TenantFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
