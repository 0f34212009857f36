"""imgbed: public image proxy and management API for images stored in a GitHub repository."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from imgbed.api.admin import app_admin
from imgbed.api.auth import app_auth
from imgbed.api.gate import AccessGateMiddleware
from imgbed.api.info import app_info
from imgbed.api.proxy import app_proxy
from imgbed.config import get_settings, validate_settings
from imgbed.connections import elastic_enabled, es, imgbed_connections
from imgbed.errors import ImgbedError
from imgbed.store.cache import ElasticCacheStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    if warning := validate_settings():
        logging.warning(warning)
    async with imgbed_connections():
        if elastic_enabled():
            await ElasticCacheStore(es(), get_settings().cache_index).create_index()
        yield


app = FastAPI(
    title="imgbed",
    description=__doc__ if __doc__ else "",
    openapi_tags=[
        dict(name="proxy", description="Public, cacheable access to the images"),
        dict(name="auth", description="Operator login and logout"),
        dict(name="admin", description="Endpoints to list, export, move, and delete images"),
    ],
    lifespan=lifespan,
)
app.include_router(app_info)
app.include_router(app_proxy)
app.include_router(app_auth)
app.include_router(app_admin)
app.add_middleware(AccessGateMiddleware)


@app.exception_handler(ImgbedError)
async def imgbed_error_handler(request: Request, exc: ImgbedError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc), **exc.details()},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc) -> JSONResponse:
    return JSONResponse(
        status_code=422, content={"error": "There was an issue with the data you sent.", "fields_invalid": exc.errors()}
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logging.exception(f"Unexpected error handling {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})
