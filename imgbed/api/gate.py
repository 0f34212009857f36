import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import PlainTextResponse

from imgbed.config import get_settings


def client_origin(request: Request) -> tuple[str, str]:
    """Region and IP address of the client, as reported by the CDN in front of us if any"""
    region = request.headers.get("cf-ipcountry") or "XX"
    ip = request.headers.get("cf-connecting-ip") or (request.client.host if request.client else "0.0.0.0")
    return region, ip


def is_blocked(request: Request) -> bool:
    settings = get_settings()
    region, ip = client_origin(request)
    return region.upper() in {r.upper() for r in settings.blocked_regions} or ip in settings.blocked_ips


class AccessGateMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if is_blocked(request):
            logging.info("Blocked request from %s/%s for %s", *client_origin(request), request.url.path)
            return PlainTextResponse("Access denied", status_code=403)
        return await call_next(request)
