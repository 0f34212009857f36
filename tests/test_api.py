import pytest
from httpx import ASGITransport, AsyncClient

from imgbed.api.admin import get_remote_store
from imgbed.config import get_settings
from tests.tools import ADMIN_API, PROXY_PREFIX, auth_cookie, get_json, imgbed_settings


@pytest.mark.anyio
async def test_index_redirects(client: AsyncClient):
    r = await client.get("/")
    assert r.status_code == 302
    assert r.headers["location"] == "/admin"


@pytest.mark.anyio
async def test_config(client: AsyncClient):
    result = await get_json(client, "/config", user=None)
    assert result["repository"] == "octo/pics"
    assert result["branch"] == "main"
    assert result["proxy_prefix"] == PROXY_PREFIX
    assert result["admin_route"] == "/admin"
    assert result["cache_backend"] == "memory"
    assert result["warnings"] == []
    assert "hunter2" not in str(result)

    with imgbed_settings(github_token=None):
        result = await get_json(client, "/config", user=None)
    assert "token" in result["warnings"][0]


@pytest.mark.anyio
@pytest.mark.parametrize(
    "headers",
    [{"cf-ipcountry": "KP"}, {"cf-ipcountry": "cu"}, {"cf-connecting-ip": "0.0.0.0"}],
)
async def test_access_gate(client: AsyncClient, headers):
    for url in ["/config", f"{PROXY_PREFIX}/a.png", "/admin/api/dashboard"]:
        r = await client.get(url, headers=headers)
        assert r.status_code == 403
        assert r.text == "Access denied"


@pytest.mark.anyio
async def test_access_gate_peer_address(client: AsyncClient):
    await get_json(client, "/config", user=None, headers={"cf-ipcountry": "NL"})
    with imgbed_settings(blocked_ips=["127.0.0.1"]):
        r = await client.get("/config")
        assert r.status_code == 403
        # the CDN header wins over the socket address
        await get_json(client, "/config", user=None, headers={"cf-connecting-ip": "192.0.2.1"})


def test_derived_settings():
    settings = get_settings()
    assert settings.proxy_prefix == "/octo/pics/main"
    assert settings.proxy_referer == "https://github.com/octo/pics"
    assert not settings.secure_cookies


@pytest.mark.anyio
async def test_unexpected_errors_are_json(app):
    def broken_store():
        raise RuntimeError("something broke")

    app.dependency_overrides[get_remote_store] = broken_store
    try:
        # the server error middleware re-raises after responding, so don't raise in the client
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            r = await client.get(f"{ADMIN_API}/browse", cookies=auth_cookie("admin"))
    finally:
        app.dependency_overrides.pop(get_remote_store)
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}
