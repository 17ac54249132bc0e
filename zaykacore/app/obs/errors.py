"""Error reporting helpers."""

from __future__ import annotations

import logging
import os
from typing import Optional

import sentry_sdk

logger = logging.getLogger("obs")


def init_sentry(dsn: Optional[str] = None, env: Optional[str] = None) -> bool:
    """Initialize Sentry if a DSN is provided; return whether it was enabled."""
    dsn = dsn or os.getenv("ERROR_DSN")
    if not dsn:
        logger.info("ERROR_DSN not set; error sink disabled")
        return False
    sentry_sdk.init(dsn=dsn, environment=env)
    return True


def capture_exception(exc: Exception) -> None:
    """Forward an exception to Sentry if configured, else log it."""
    if sentry_sdk.get_client().is_active():
        sentry_sdk.capture_exception(exc)
    else:
        logger.error("Unhandled exception", exc_info=exc)
