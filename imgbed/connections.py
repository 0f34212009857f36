import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from elasticsearch import AsyncElasticsearch

from imgbed.config import CacheBackend, get_settings


class ImgbedConnections:
    http: httpx.AsyncClient | None
    elastic: AsyncElasticsearch | None

    def __init__(self, http: httpx.AsyncClient | None = None, elastic: AsyncElasticsearch | None = None):
        self.http = http
        self.elastic = elastic


CONNECTIONS = ImgbedConnections()


@asynccontextmanager
async def imgbed_connections() -> AsyncGenerator[None, None]:
    """
    The main context manager to start and stop connections used by imgbed.
    Always use this once (and only once):
        - For running the server: in the FastAPI lifespan
        - For tests: in the client fixture
        - For CLI commands: within the CLI command
    """
    try:
        _start_http()
        await _start_elastic()
        yield
    finally:
        await _close_http()
        await _close_elastic()


def http() -> httpx.AsyncClient:
    """
    Use this function to access the shared http client for all upstream calls.
    """
    if CONNECTIONS.http is None:
        raise ConnectionError("HTTP client not started")
    return CONNECTIONS.http


def es() -> AsyncElasticsearch:
    """
    Use this function to access the elasticsearch connection (only started for the elastic cache backend).
    """
    if CONNECTIONS.elastic is None:
        raise ConnectionError("Elasticsearch connection not initialized")
    return CONNECTIONS.elastic


def elastic_enabled() -> bool:
    return get_settings().cache_backend == CacheBackend.elastic


def _start_http() -> None:
    CONNECTIONS.http = httpx.AsyncClient()


async def _close_http() -> None:
    if CONNECTIONS.http is not None:
        await CONNECTIONS.http.aclose()
        CONNECTIONS.http = None


async def _start_elastic() -> None:
    if not elastic_enabled():
        return None
    settings = get_settings()
    logging.debug(
        f"Connecting with elasticsearch at {settings.elastic_host}, password? {'yes' if settings.elastic_password else 'no'} "
    )
    if settings.elastic_password:
        CONNECTIONS.elastic = AsyncElasticsearch(settings.elastic_host, basic_auth=("elastic", settings.elastic_password))
    else:
        CONNECTIONS.elastic = AsyncElasticsearch(settings.elastic_host)

    if not await CONNECTIONS.elastic.ping():
        raise ConnectionError(f"Cannot connect to elasticsearch server {settings.elastic_host}")


async def _close_elastic() -> None:
    if CONNECTIONS.elastic is not None:
        await CONNECTIONS.elastic.close()
        CONNECTIONS.elastic = None
