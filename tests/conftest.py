import os

# routes are mounted under prefixes read from the settings at import time
os.environ.update(
    IMGBED_GITHUB_REPO="octo/pics",
    IMGBED_GITHUB_BRANCH="main",
    IMGBED_GITHUB_TOKEN="test-token",
    IMGBED_ADMIN_USER="admin",
    IMGBED_ADMIN_PASSWORD="hunter2",
    IMGBED_SECRET_KEY="unittest-secret-key",
    IMGBED_CACHE_BACKEND="memory",
    IMGBED_ENV_FILE="tests/.env.unittest",
)

import httpx  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from imgbed import api  # noqa: E402
from imgbed.api.admin import MEMORY_CACHE  # noqa: E402
from imgbed.config import get_settings  # noqa: E402
from imgbed.connections import imgbed_connections  # noqa: E402
from imgbed.store.cache import MemoryCacheStore  # noqa: E402
from imgbed.store.client import RemoteStoreClient  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="function")
async def client():
    MEMORY_CACHE.clear()
    async with imgbed_connections():
        async with AsyncClient(
            transport=ASGITransport(app=api.app), base_url="http://test", follow_redirects=False
        ) as client:
            yield client
    MEMORY_CACHE.clear()


@pytest.fixture(scope="function")
async def http():
    async with httpx.AsyncClient() as http:
        yield http


@pytest.fixture(scope="function")
def store(http) -> RemoteStoreClient:
    return RemoteStoreClient(http, get_settings())


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture(scope="function")
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="function")
def cache(clock) -> MemoryCacheStore:
    return MemoryCacheStore(clock=clock)


@pytest.fixture(scope="function")
def app():
    return api.app
