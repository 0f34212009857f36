"""
The image index: every image in the repository, derived from one recursive tree fetch.

Fetching the tree costs one call proportional to the repository size, so the derived list
is kept in a cache store for a fixed time. Nothing invalidates it early; moves and deletes
show up in the index once the entry expires.
"""

import asyncio
import logging
from typing import Any, Callable, Iterable
from urllib.parse import quote

from pydantic import ValidationError

from imgbed.models import AssetRecord, TreeItem
from imgbed.store.cache import CacheStore
from imgbed.store.client import RemoteStoreClient

CACHE_KEY_VERSION = "v1"

Defer = Callable[..., Any]


def is_image(name: str, extensions: Iterable[str]) -> bool:
    suffix = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    return suffix in {e.lower().lstrip(".") for e in extensions}


def public_url(proxy_prefix: str, path: str) -> str:
    return f"{proxy_prefix.rstrip('/')}/{quote(path.lstrip('/'))}"


def assets_from_tree(tree: list[TreeItem], proxy_prefix: str, extensions: Iterable[str]) -> list[AssetRecord]:
    extensions = list(extensions)
    return [
        AssetRecord(path=item.path, public_url=public_url(proxy_prefix, item.path))
        for item in tree
        if item.kind == "blob" and is_image(item.path, extensions)
    ]


class TreeIndex:
    def __init__(
        self,
        client: RemoteStoreClient,
        cache: CacheStore,
        proxy_prefix: str,
        extensions: Iterable[str],
        ttl: int,
    ):
        self.client = client
        self.cache = cache
        self.proxy_prefix = proxy_prefix
        self.extensions = list(extensions)
        self.ttl = ttl
        self._pending: set[asyncio.Task] = set()

    @property
    def cache_key(self) -> str:
        return f"tree-index:{CACHE_KEY_VERSION}:{self.client.repo}@{self.client.branch}"

    async def get_index(self, defer: Defer | None = None) -> list[AssetRecord]:
        """
        Return all images in the repository, from the cache if possible.

        On a miss the fresh list is returned without waiting for the cache write. The write
        is handed to defer (e.g. BackgroundTasks.add_task), or run as a detached task if no
        defer is given.
        """
        cached = await self.cache.get(self.cache_key)
        if cached is not None:
            try:
                records = [AssetRecord.model_validate(a) for a in cached]
            except (TypeError, ValidationError) as e:
                logging.warning(f"Ignoring unreadable tree index in cache {self.cache_key}: {e}")
            else:
                logging.debug(f"Tree index cache hit for {self.cache_key}")
                return records

        logging.debug(f"Tree index cache miss for {self.cache_key}, fetching tree")
        assets = assets_from_tree(await self.client.fetch_tree(), self.proxy_prefix, self.extensions)
        value = [a.model_dump() for a in assets]
        if defer is not None:
            defer(self._store, value)
        else:
            task = asyncio.create_task(self._store(value))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return assets

    async def wait_pending(self) -> None:
        """Wait for detached cache writes to finish"""
        if self._pending:
            await asyncio.gather(*self._pending)

    async def _store(self, value: list[dict]) -> None:
        try:
            await self.cache.put(self.cache_key, value, self.ttl)
        except Exception:
            logging.exception(f"Could not store tree index {self.cache_key}")


async def export_urls(index: TreeIndex, prefix: str = "", defer: Defer | None = None) -> list[str]:
    """Public URLs of all indexed images whose path starts with prefix"""
    return [a.public_url for a in await index.get_index(defer) if a.path.startswith(prefix)]
