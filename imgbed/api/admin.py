"""API endpoints for managing the images in the repository. All require an operator session."""

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from imgbed.api.auth import authenticated_admin
from imgbed.config import get_settings
from imgbed.connections import elastic_enabled, es, http
from imgbed.dashboard import sample_dashboard
from imgbed.models import AssetRecord, DirectoryEntry, MoveOperation, User
from imgbed.store.cache import CacheStore, ElasticCacheStore, MemoryCacheStore
from imgbed.store.client import RemoteStoreClient
from imgbed.store.listing import browse
from imgbed.store.move import MoveOrchestrator
from imgbed.store.tree_index import TreeIndex, export_urls

app_admin = APIRouter(
    prefix=f"{get_settings().admin_route}/api", tags=["admin"], dependencies=[Depends(authenticated_admin)]
)

MEMORY_CACHE = MemoryCacheStore()


# REQUEST MODELS
class DeleteBody(BaseModel):
    path: str = Field(description="Path of the file to delete")
    version_token: str = Field(description="Version token (sha) of the file, as given by the folder listing")


# RESPONSE MODELS
class DashboardResponse(BaseModel):
    recent: list[AssetRecord] = Field(description="The images with the highest paths (i.e. most recent dated folders)")
    random: list[AssetRecord] = Field(description="A random selection of the other images")


class ExportResponse(BaseModel):
    urls: list[str] = Field(description="Public URLs of all images under the requested path")


class SuccessResponse(BaseModel):
    success: bool = True


class SessionResponse(BaseModel):
    user: str


# DEPENDENCIES
def get_cache_store() -> CacheStore:
    if elastic_enabled():
        return ElasticCacheStore(es(), get_settings().cache_index)
    return MEMORY_CACHE


def get_remote_store() -> RemoteStoreClient:
    return RemoteStoreClient(http(), get_settings())


def get_tree_index(
    client: RemoteStoreClient = Depends(get_remote_store), cache: CacheStore = Depends(get_cache_store)
) -> TreeIndex:
    settings = get_settings()
    return TreeIndex(client, cache, settings.proxy_prefix or "", settings.image_extensions, settings.dashboard_ttl)


@app_admin.get("/session")
def session(user: User = Depends(authenticated_admin)) -> SessionResponse:
    """The operator of the current session."""
    return SessionResponse(user=user.name)


@app_admin.get("/dashboard")
async def dashboard(background_tasks: BackgroundTasks, index: TreeIndex = Depends(get_tree_index)) -> DashboardResponse:
    """The most recent images and a random selection of the others, from the cached image index."""
    assets = await index.get_index(defer=background_tasks.add_task)
    recent, random = sample_dashboard(assets, get_settings().dashboard_sample_size)
    return DashboardResponse(recent=recent, random=random)


@app_admin.get("/browse")
async def browse_folder(
    response: Response,
    path: str = Query("", description="Folder to list, empty for the repository root"),
    client: RemoteStoreClient = Depends(get_remote_store),
) -> list[DirectoryEntry]:
    """List one folder, directly from the repository."""
    settings = get_settings()
    entries = await browse(client, path, settings.proxy_prefix or "", settings.image_extensions)
    response.headers["Cache-Control"] = f"private, max-age={settings.folder_ttl}"
    return entries


@app_admin.get("/batch_export")
async def batch_export(
    background_tasks: BackgroundTasks,
    path: str = Query("", description="Only export images whose path starts with this prefix"),
    index: TreeIndex = Depends(get_tree_index),
) -> ExportResponse:
    """Public URLs of all images under a path, from the cached image index."""
    return ExportResponse(urls=await export_urls(index, path, defer=background_tasks.add_task))


@app_admin.post("/move")
async def move(
    op: MoveOperation, request: Request, client: RemoteStoreClient = Depends(get_remote_store)
) -> SuccessResponse:
    """
    Move or rename a file: download it, write it to the new path, then delete the old path.

    If the last step fails, the file exists at both paths; the error reports state 'written'
    and the old path can be removed with the delete endpoint.
    """
    if not op.source_content_url.startswith(("http://", "https://")):
        url = str(request.base_url).rstrip("/") + "/" + op.source_content_url.lstrip("/")
        op = op.model_copy(update=dict(source_content_url=url))
    await MoveOrchestrator(client, http()).move(op)
    return SuccessResponse()


@app_admin.post("/delete")
async def delete(body: DeleteBody, client: RemoteStoreClient = Depends(get_remote_store)) -> SuccessResponse:
    """Delete a file."""
    await client.delete_file(body.path, body.version_token, f"Delete {body.path}")
    return SuccessResponse()


@app_admin.api_route("/{rest:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH"], include_in_schema=False)
def not_found(rest: str):
    return JSONResponse(status_code=404, content={"error": f"Unknown api endpoint {rest}"})
