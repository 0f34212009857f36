from typing import Iterable

from imgbed.models import DirectoryEntry, EntryKind
from imgbed.store.client import RemoteStoreClient
from imgbed.store.tree_index import is_image, public_url


async def browse(client: RemoteStoreClient, path: str, proxy_prefix: str, extensions: Iterable[str]) -> list[DirectoryEntry]:
    """
    List one directory straight from the repository, adding proxy URLs to image files.

    Never cached here: the listing has to show the result of a move or delete right away.
    """
    extensions = list(extensions)
    entries = await client.list_directory(path)
    for entry in entries:
        if entry.kind == EntryKind.file and is_image(entry.name, extensions):
            entry.public_url = public_url(proxy_prefix, entry.path)
    return entries
