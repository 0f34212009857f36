"""Key/value stores with a time to live, used to keep the tree index between requests."""

import json
import logging
import time
from typing import Any, Callable, Protocol

from elasticsearch import AsyncElasticsearch, NotFoundError


class CacheStore(Protocol):
    async def get(self, key: str) -> Any | None:
        """The value stored under key, or None if it is missing or expired"""
        ...

    async def put(self, key: str, value: Any, ttl: int) -> None:
        """Replace the value under key, valid for ttl seconds"""
        ...


class MemoryCacheStore:
    """Process-local store. Values are kept serialized so callers never share mutable state."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._entries: dict[str, tuple[float, str]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if self.clock() >= expires_at:
            del self._entries[key]
            return None
        return json.loads(payload)

    async def put(self, key: str, value: Any, ttl: int) -> None:
        self._entries[key] = (self.clock() + ttl, json.dumps(value))

    def clear(self) -> None:
        self._entries.clear()


class ElasticCacheStore:
    """
    Store backed by an elasticsearch index, one document per key.

    Elasticsearch has no expiry of its own, so each document records an absolute
    expires_at timestamp and expired documents read as missing.
    """

    def __init__(self, elastic: AsyncElasticsearch, index: str, clock: Callable[[], float] = time.time):
        self.elastic = elastic
        self.index = index
        self.clock = clock

    async def create_index(self) -> None:
        """Create the cache index if it does not exist yet"""
        if await self.elastic.indices.exists(index=self.index):
            return
        logging.info(f"Creating cache index {self.index}")
        mappings = {
            "dynamic": "strict",
            "properties": {"value": {"type": "text", "index": False}, "expires_at": {"type": "double"}},
        }
        await self.elastic.indices.create(index=self.index, mappings=mappings)

    async def get(self, key: str) -> Any | None:
        try:
            doc = (await self.elastic.get(index=self.index, id=key))["_source"]
        except NotFoundError:
            return None
        if self.clock() >= doc["expires_at"]:
            logging.debug(f"Cache entry {key} expired")
            return None
        return json.loads(doc["value"])

    async def put(self, key: str, value: Any, ttl: int) -> None:
        doc = dict(value=json.dumps(value), expires_at=self.clock() + ttl)
        await self.elastic.index(index=self.index, id=key, document=doc)
