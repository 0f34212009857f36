import base64

import httpx
import pytest
from pytest_httpx import HTTPXMock

from imgbed.errors import UpstreamUnavailable, UpstreamWriteRejected, WriteResultUnreadable
from imgbed.models import EntryKind
from imgbed.store.client import RemoteStoreClient
from tests.tools import GITHUB_API, TREE_URL, contents_item, mock_contents, mock_tree, request_json


@pytest.mark.anyio
async def test_fetch_tree(store: RemoteStoreClient, httpx_mock: HTTPXMock):
    mock_tree(httpx_mock, ["2024/01/a.png", "README.md"], trees=["2024", "2024/01"])
    tree = await store.fetch_tree()
    assert {(t.path, t.kind) for t in tree} == {
        ("2024", "tree"),
        ("2024/01", "tree"),
        ("2024/01/a.png", "blob"),
        ("README.md", "blob"),
    }
    request = httpx_mock.get_requests()[0]
    assert request.headers["Authorization"] == "token test-token"
    assert request.headers["Accept"] == "application/vnd.github.v3+json"
    assert request.headers["User-Agent"] == "imgbed-admin"


@pytest.mark.anyio
async def test_fetch_tree_errors(store: RemoteStoreClient, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=TREE_URL, status_code=403, json={"message": "rate limited"})
    with pytest.raises(UpstreamUnavailable):
        await store.fetch_tree()

    httpx_mock.add_exception(httpx.ConnectError("no route to host"), url=TREE_URL)
    with pytest.raises(UpstreamUnavailable):
        await store.fetch_tree()


@pytest.mark.anyio
async def test_list_directory_sorted(store: RemoteStoreClient, httpx_mock: HTTPXMock):
    mock_contents(
        httpx_mock,
        "",
        [
            contents_item("b.png"),
            contents_item("A", type="dir"),
            contents_item("a.png"),
            contents_item("Z", type="dir"),
        ],
    )
    entries = await store.list_directory("")
    assert [(e.name, e.kind) for e in entries] == [
        ("A", EntryKind.directory),
        ("Z", EntryKind.directory),
        ("a.png", EntryKind.file),
        ("b.png", EntryKind.file),
    ]
    assert entries[2].version_token == "sha-a.png"
    assert all(e.public_url is None for e in entries)


@pytest.mark.anyio
async def test_list_directory_errors(store: RemoteStoreClient, httpx_mock: HTTPXMock):
    # a path to a file returns a single object instead of a list
    httpx_mock.add_response(url=f"{GITHUB_API}/contents/cat.png?ref=main", json=contents_item("cat.png"))
    with pytest.raises(UpstreamUnavailable, match="not a directory"):
        await store.list_directory("cat.png")

    httpx_mock.add_response(url=f"{GITHUB_API}/contents/missing?ref=main", status_code=404, json={})
    with pytest.raises(UpstreamUnavailable):
        await store.list_directory("missing")


@pytest.mark.anyio
async def test_write_file(store: RemoteStoreClient, httpx_mock: HTTPXMock):
    content = bytes(range(256))
    httpx_mock.add_response(
        url=f"{GITHUB_API}/contents/new/my%20cat.png", method="PUT", status_code=201, json={"content": {"sha": "newsha"}}
    )
    assert await store.write_file("new/my cat.png", content, "Add cat") == "newsha"
    body = request_json(httpx_mock.get_requests()[0])
    assert base64.b64decode(body["content"]) == content
    assert body["message"] == "Add cat"
    assert body["branch"] == "main"
    assert "sha" not in body


@pytest.mark.anyio
async def test_write_file_rejected(store: RemoteStoreClient, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=f"{GITHUB_API}/contents/x.png", method="PUT", status_code=409, json={})
    with pytest.raises(UpstreamWriteRejected):
        await store.write_file("x.png", b"x", "overwrite", version_token="stale")
    assert request_json(httpx_mock.get_requests()[0])["sha"] == "stale"


@pytest.mark.anyio
async def test_delete_file(store: RemoteStoreClient, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=f"{GITHUB_API}/contents/a.png", method="DELETE", json={"commit": {}})
    await store.delete_file("a.png", "sha-a", "Delete a.png")
    body = request_json(httpx_mock.get_requests()[0])
    assert body == dict(message="Delete a.png", sha="sha-a", branch="main")

    # already gone is not an error
    httpx_mock.add_response(url=f"{GITHUB_API}/contents/b.png", method="DELETE", status_code=404, json={})
    await store.delete_file("b.png", "sha-b", "Delete b.png")

    httpx_mock.add_response(url=f"{GITHUB_API}/contents/c.png", method="DELETE", status_code=409, json={})
    with pytest.raises(UpstreamWriteRejected):
        await store.delete_file("c.png", "wrong-sha", "Delete c.png")


@pytest.mark.anyio
@pytest.mark.parametrize(
    "reply",
    [
        dict(text="<html>not json</html>"),
        dict(json={"sha": "root"}),
        dict(json=["not", "a", "tree"]),
        dict(json={"tree": [{"path": "a.png", "type": "weird"}]}),
    ],
)
async def test_fetch_tree_malformed(store: RemoteStoreClient, httpx_mock: HTTPXMock, reply):
    httpx_mock.add_response(url=TREE_URL, **reply)
    with pytest.raises(UpstreamUnavailable):
        await store.fetch_tree()


@pytest.mark.anyio
async def test_list_directory_malformed(store: RemoteStoreClient, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=f"{GITHUB_API}/contents/2024?ref=main", text="<html>oops</html>")
    with pytest.raises(UpstreamUnavailable):
        await store.list_directory("2024")

    httpx_mock.add_response(url=f"{GITHUB_API}/contents/2025?ref=main", json=[{"name": "a.png", "type": "file"}])
    with pytest.raises(UpstreamUnavailable):
        await store.list_directory("2025")


@pytest.mark.anyio
async def test_write_file_unreadable_reply(store: RemoteStoreClient, httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=f"{GITHUB_API}/contents/x.png", method="PUT", status_code=201, json={"commit": {}})
    with pytest.raises(WriteResultUnreadable):
        await store.write_file("x.png", b"x", "Add x")

    httpx_mock.add_response(url=f"{GITHUB_API}/contents/y.png", method="PUT", status_code=201, text="created")
    with pytest.raises(WriteResultUnreadable):
        await store.write_file("y.png", b"y", "Add y")
