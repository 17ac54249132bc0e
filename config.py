# config.py

"""Application configuration utilities.

Values are primarily loaded from ``config.json`` and may be overridden by
environment variables. The :func:`get_settings` helper merges the two sources
and caches the result.
"""

from __future__ import annotations

import json
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ReadPolicy(str, Enum):
    """Decide who owns ``is_read`` when a notification exists on both sides.

    ``REMOTE_WINS`` copies the remote flag on every sync pass, which can turn a
    locally read notification unread again until the server catches up. This
    is the historical behaviour and the default. ``LOCAL_WINS_ONCE_SET`` keeps
    a local read observation once it has been made.
    """

    REMOTE_WINS = "remote_wins"
    LOCAL_WINS_ONCE_SET = "local_wins_once_set"


class Settings(BaseSettings):
    """Application settings merged from JSON and environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    local_store_url: str = "sqlite+aiosqlite:///./zaykabill.db"
    remote_base_url: str = "https://zaykabill.com"
    remote_timeout_secs: float = 10.0
    notification_sync_interval_secs: int = 120
    notification_read_policy: ReadPolicy = ReadPolicy.REMOTE_WINS
    notification_preview_limit: int = 5
    block_delete_with_balance: bool = False
    gst_state_code: str = "29"
    gstin: str | None = None
    export_dir: str = "./exports"
    error_dsn: str | None = None
    log_level: str = "INFO"


# Cached singleton to avoid repeated file reads
@lru_cache
def get_settings() -> Settings:
    """Return merged settings with environment variable precedence.

    The configuration is read from ``config.json`` located alongside this file
    and fed into :class:`Settings`. Environment variables override any values
    from the JSON file. The result is cached to prevent repeated disk reads.
    """

    config_path = Path(__file__).with_name("config.json")
    data = json.loads(config_path.read_text()) if config_path.exists() else {}
    env_override = {
        k.lower(): v
        for k, v in os.environ.items()
        if k.lower() in Settings.model_fields
    }
    merged = {**data, **env_override}
    # Environment variables override values from the JSON file.
    return Settings(**merged)
