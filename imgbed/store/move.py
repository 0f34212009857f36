"""
Moving a file in a repository that has no rename call.

A move is three dependent steps, each leaving the repository in a known state:

    pending-write --(download source, write destination)--> written --(delete source)--> deleted

A failure before ``written`` leaves the repository untouched. A failure of the delete leaves
two copies of the file; this is reported as SourceDeleteFailed and not rolled back, so the
operator can retry the delete on its own.
"""

import logging

import httpx

from imgbed.errors import (
    DestinationWriteFailed,
    ImgbedError,
    InvalidDestination,
    SourceDeleteFailed,
    SourceFetchFailed,
    WriteResultUnreadable,
)
from imgbed.models import MoveOperation, MoveState
from imgbed.store.client import RemoteStoreClient


class MoveOrchestrator:
    def __init__(self, client: RemoteStoreClient, http: httpx.AsyncClient):
        self.client = client
        self.http = http

    async def move(self, op: MoveOperation) -> MoveState:
        source, destination = op.source_path.strip("/"), op.destination_path.strip("/")
        if not destination or destination == source:
            raise InvalidDestination("Invalid destination path")

        state = MoveState.pending_write
        content = await self._download(op)
        message = f"Move {source} to {destination}"
        try:
            await self.client.write_file(destination, content, message)
        except WriteResultUnreadable as e:
            # accepted by GitHub, so the destination exists
            logging.warning(f"Move {source} -> {destination}: {e}")
        except ImgbedError as e:
            raise DestinationWriteFailed(f"Create new file failed: {e}", source, destination) from e
        state = MoveState.written
        logging.info(f"Move {source} -> {destination}: {state.value}")

        try:
            await self.client.delete_file(source, op.version_token, message)
        except Exception as e:
            logging.error(f"Move {source} -> {destination}: destination written but source not deleted: {e}")
            raise SourceDeleteFailed(f"Delete old file failed, {source} still exists: {e}", source, destination) from e
        state = MoveState.deleted
        logging.info(f"Move {source} -> {destination}: {state.value}")
        return state

    async def _download(self, op: MoveOperation) -> bytes:
        try:
            r = await self.http.get(op.source_content_url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise SourceFetchFailed(f"Download source failed: {e}", op.source_path, op.destination_path) from e
        if not r.is_success:
            raise SourceFetchFailed(
                f"Download source failed: {r.status_code}", op.source_path, op.destination_path
            )
        return r.content
