"""Public read-through proxy for repository content."""

import logging
from typing import AsyncIterator
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from imgbed.config import get_settings
from imgbed.connections import http
from imgbed.errors import ProxyTransportError

app_proxy = APIRouter(tags=["proxy"])

CACHE_FOREVER = f"public, max-age={60 * 60 * 24 * 365}, immutable"

# request headers passed on to the raw host, everything else is dropped
FORWARD_HEADERS = {"accept", "accept-encoding", "range", "if-none-match", "if-modified-since"}
# response headers that would stop other sites from embedding the image
STRIP_HEADERS = {"content-security-policy", "x-frame-options"}
# hop-by-hop headers that belong to the upstream connection only
HOP_HEADERS = {"connection", "keep-alive", "transfer-encoding"}


def upstream_url(path: str, query: str) -> str:
    settings = get_settings()
    url = f"https://{settings.raw_host}/{settings.github_repo}/{settings.github_branch}/{quote(path)}"
    return f"{url}?{query}" if query else url


async def relay_body(r: httpx.Response, path: str) -> AsyncIterator[bytes]:
    try:
        async for chunk in r.aiter_raw():
            yield chunk
    except httpx.HTTPError as e:
        logging.warning(f"Proxy error while relaying {path}: {e!r}")
    finally:
        await r.aclose()


def relay_headers(upstream: httpx.Headers) -> dict[str, str]:
    headers = {k: v for k, v in upstream.items() if k.lower() not in STRIP_HEADERS | HOP_HEADERS}
    headers["access-control-allow-origin"] = "*"
    headers["cache-control"] = CACHE_FOREVER
    return headers


async def open_upstream(request: Request, path: str) -> httpx.Response:
    """Send the request on to the raw host, returning the response with its body still unread"""
    settings = get_settings()
    headers = {k: v for k, v in request.headers.items() if k.lower() in FORWARD_HEADERS}
    headers["User-Agent"] = "imgbed-proxy"
    if settings.proxy_referer:
        headers["Referer"] = settings.proxy_referer

    client = http()
    upstream_request = client.build_request(
        request.method, upstream_url(path, request.url.query), headers=headers, content=await request.body()
    )
    try:
        return await client.send(upstream_request, stream=True)
    except httpx.HTTPError as e:
        raise ProxyTransportError(f"{settings.raw_host} unreachable: {e!r}") from e


@app_proxy.api_route(
    f"{get_settings().proxy_prefix}/{{path:path}}", methods=["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]
)
async def proxy(path: str, request: Request) -> Response:
    """Relay a request to the raw content host and make the response cacheable and embeddable."""
    try:
        r = await open_upstream(request, path)
    except ProxyTransportError as e:
        logging.warning(f"Proxy error for {path}: {e}")
        return PlainTextResponse("Proxy Error", status_code=e.status_code)

    if r.status_code == 404:
        await r.aclose()
        return PlainTextResponse("File not found.", status_code=404)

    return StreamingResponse(relay_body(r, path), status_code=r.status_code, headers=relay_headers(r.headers))
