import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from config import get_settings  # noqa: E402
from zaykacore.app.db import create_test_engine  # noqa: E402
from zaykacore.app.repos_sqlalchemy import LocalStore  # noqa: E402

from factories import FakeRemoteService, RecordingSink  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
async def store(anyio_backend):
    store = LocalStore(await create_test_engine())
    yield store
    await store.dispose()


@pytest.fixture
def remote_service() -> FakeRemoteService:
    return FakeRemoteService()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
