"""Client for the GitHub contents and trees API of the image repository."""

import base64
import logging
from typing import Any
from urllib.parse import quote

import httpx

from imgbed.config import Settings
from imgbed.errors import UpstreamUnavailable, UpstreamWriteRejected, WriteResultUnreadable
from imgbed.models import DirectoryEntry, EntryKind, TreeItem


class RemoteStoreClient:
    """
    Reads and writes files in one branch of a GitHub repository.

    The http client is shared with the rest of the application, so the identity and
    authorization headers are added per call rather than to the client.
    """

    def __init__(self, http: httpx.AsyncClient, settings: Settings):
        if not settings.github_repo:
            raise UpstreamUnavailable("No repository configured")
        self.http = http
        self.repo = settings.github_repo
        self.branch = settings.github_branch
        self.base_url = f"{settings.github_api_url.rstrip('/')}/repos/{self.repo}"
        self.headers = {
            "User-Agent": "imgbed-admin",
            "Accept": "application/vnd.github.v3+json",
        }
        if settings.github_token:
            self.headers["Authorization"] = f"token {settings.github_token}"

    def contents_url(self, path: str) -> str:
        return f"{self.base_url}/contents/{quote(path.strip('/'))}"

    async def fetch_tree(self) -> list[TreeItem]:
        """Every object in the branch, recursively."""
        url = f"{self.base_url}/git/trees/{quote(self.branch)}"
        data = await self._read("GET", url, params={"recursive": "1"})
        try:
            if data.get("truncated"):
                logging.warning(f"GitHub truncated the tree of {self.repo}@{self.branch}, the image index is incomplete")
            return [TreeItem(path=item["path"], kind=item["type"]) for item in data["tree"]]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise UpstreamUnavailable(f"Unexpected tree response from GitHub: {e!r}") from e

    async def list_directory(self, path: str = "") -> list[DirectoryEntry]:
        """
        The immediate children of a directory, directories first, then by name.

        An empty path lists the repository root.
        """
        data = await self._read("GET", self.contents_url(path), params={"ref": self.branch})
        if not isinstance(data, list):
            raise UpstreamUnavailable(f"{path} is not a directory")
        try:
            entries = [
                DirectoryEntry(
                    name=item["name"],
                    path=item["path"],
                    kind=EntryKind.directory if item["type"] == "dir" else EntryKind.file,
                    version_token=item["sha"],
                )
                for item in data
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamUnavailable(f"Unexpected listing of {path} from GitHub: {e!r}") from e
        return sort_entries(entries)

    async def write_file(self, path: str, content: bytes, message: str, version_token: str | None = None) -> str:
        """
        Create or overwrite a file, returning the version token of the new content.

        Overwriting an existing file requires its current version token. If GitHub accepted
        the write but the reply cannot be read, WriteResultUnreadable is raised: the file
        is written, only its new version token is unknown.
        """
        body = dict(message=message, content=base64.b64encode(content).decode("ascii"), branch=self.branch)
        if version_token:
            body["sha"] = version_token
        r = await self._write("PUT", self.contents_url(path), json=body)
        try:
            return r.json()["content"]["sha"]
        except (KeyError, TypeError, ValueError) as e:
            raise WriteResultUnreadable(f"GitHub wrote {path} but sent an unexpected reply: {e!r}") from e

    async def delete_file(self, path: str, version_token: str, message: str) -> None:
        body = dict(message=message, sha=version_token, branch=self.branch)
        try:
            r = await self.http.request("DELETE", self.contents_url(path), headers=self.headers, json=body)
        except httpx.HTTPError as e:
            raise UpstreamWriteRejected(f"Deleting {path} failed: {e}") from e
        if r.status_code == 404:
            logging.info(f"{path} was already deleted from {self.repo}")
            return
        if not r.is_success:
            logging.warning(f"DELETE {path} returned {r.status_code}: {r.text}")
            raise UpstreamWriteRejected(f"Deleting {path} failed: GitHub returned {r.status_code}")

    async def _read(self, method: str, url: str, **kargs) -> Any:
        """Send a read call and return the parsed json body"""
        try:
            r = await self.http.request(method, url, headers=self.headers, **kargs)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"GitHub API error: {e}") from e
        if not r.is_success:
            logging.warning(f"{method} {url} returned {r.status_code}: {r.text}")
            raise UpstreamUnavailable(f"GitHub API error: {r.status_code}")
        try:
            return r.json()
        except ValueError as e:
            logging.warning(f"{method} {url} returned a body that is not json: {r.text[:200]}")
            raise UpstreamUnavailable("GitHub API error: response is not json") from e

    async def _write(self, method: str, url: str, **kargs) -> httpx.Response:
        try:
            r = await self.http.request(method, url, headers=self.headers, **kargs)
        except httpx.HTTPError as e:
            raise UpstreamWriteRejected(f"GitHub API error: {e}") from e
        if not r.is_success:
            logging.warning(f"{method} {url} returned {r.status_code}: {r.text}")
            raise UpstreamWriteRejected(f"GitHub rejected the change: {r.status_code}")
        return r


def sort_entries(entries: list[DirectoryEntry]) -> list[DirectoryEntry]:
    return sorted(entries, key=lambda e: (e.kind != EntryKind.directory, e.name))
