"""API Endpoints for server information and configuration."""

from importlib.metadata import PackageNotFoundError, version

from fastapi import APIRouter
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from imgbed.config import get_settings, validate_settings

app_info = APIRouter(tags=["informational"])


class ConfigResponse(BaseModel):
    """Non-secret configuration of this instance."""

    repository: str | None = Field(None, description="The repository holding the images.")
    branch: str = Field(..., description="The branch that is served and changed.")
    proxy_prefix: str = Field(..., description="Path prefix of the public image proxy.")
    admin_route: str = Field(..., description="Path prefix of the management pages.")
    cache_backend: str = Field(..., description="Where the image index is cached.")
    warnings: list[str] = Field(..., description="A list of configuration warnings.")
    api_version: str = Field(..., description="The version of the imgbed API.")


def api_version() -> str:
    try:
        return version("imgbed")
    except PackageNotFoundError:
        return "unknown"


@app_info.get("/")
def index():
    """Redirect to the management pages."""
    return RedirectResponse(get_settings().admin_route, status_code=302)


@app_info.get("/config")
def get_config() -> ConfigResponse:
    """Get the configuration of this imgbed instance."""
    settings = get_settings()
    return ConfigResponse(
        repository=settings.github_repo,
        branch=settings.github_branch,
        proxy_prefix=settings.proxy_prefix or "",
        admin_route=settings.admin_route,
        cache_backend=settings.cache_backend.value,
        warnings=[w for w in [validate_settings()] if w],
        api_version=api_version(),
    )
