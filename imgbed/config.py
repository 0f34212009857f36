"""
imgbed Configuration

We read configuration from 2 sources, in order of precedence (higher is more priority)
- Environment variables
- A .env file, either in the current working directory or in a location specified
  by the IMGBED_ENV_FILE environment variable
"""

import functools
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

from class_doc import extract_docs_from_cls_obj
from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "imgbed_"


class CacheBackend(str, Enum):
    #: keep the tree index in the memory of this process (lost on restart, not shared between workers)
    memory = "memory"

    #: keep the tree index in an elasticsearch index, shared by all workers
    elastic = "elastic"

    @classmethod
    def validate(cls, value: str):
        if value not in cls.__members__:
            options = ", ".join(CacheBackend.__members__.keys())
            return f"{value} is not a valid cache backend. Choose one of {{{options}}}"


for field, doc in extract_docs_from_cls_obj(CacheBackend).items():
    CacheBackend[field].__doc__ = "\n".join(doc)


class Settings(BaseSettings):
    env_file: Annotated[
        Path,
        Field(
            description="Location of a .env file (if used) relative to working directory",
        ),
    ] = Path(".env")
    host: Annotated[
        str,
        Field(
            description="Host this instance is served at (https hosts get secure session cookies)",
        ),
    ] = "http://localhost:5000"

    github_api_url: Annotated[str, Field(description="Base URL of the GitHub REST API")] = "https://api.github.com"
    github_repo: Annotated[
        str | None,
        Field(description="Repository holding the images, as owner/name"),
    ] = None
    github_branch: Annotated[str, Field(description="Branch that is listed, proxied and committed to")] = "main"
    github_token: Annotated[
        str | None,
        Field(description="GitHub access token with contents read/write permission on the repository"),
    ] = None
    raw_host: Annotated[
        str,
        Field(description="Host serving raw repository content"),
    ] = "raw.githubusercontent.com"

    proxy_prefix: Annotated[
        str | None,
        Field(description="Public path prefix for proxied images. Default: /{github_repo}/{github_branch}"),
    ] = None
    proxy_referer: Annotated[
        str | None,
        Field(description="Referer sent to the raw host. Default: https://github.com/{github_repo}"),
    ] = None

    admin_route: Annotated[str, Field(description="Path prefix of the management pages and api")] = "/admin"
    admin_user: Annotated[str | None, Field(description="Operator user name")] = None
    admin_password: Annotated[str | None, Field(description="Operator password")] = None
    secret_key: Annotated[
        str | None,
        Field(description="Secret used to sign session cookies. Create one with `python -m imgbed create-env`"),
    ] = None
    cookie_name: Annotated[str, Field(description="Name of the session cookie")] = "imgbed_session"
    session_max_age: Annotated[int, Field(description="Lifetime of an operator session in seconds")] = 86400

    dashboard_ttl: Annotated[int, Field(description="Seconds the image index of the whole repository is cached")] = 300
    folder_ttl: Annotated[int, Field(description="max-age (seconds) sent to browsers for folder listings")] = 60
    dashboard_sample_size: Annotated[int, Field(description="Number of recent and of random images on the dashboard")] = 20
    image_extensions: Annotated[
        list[str],
        Field(description="File extensions (without dot, case-insensitive) that count as images"),
    ] = ["jpg", "jpeg", "png", "gif", "webp", "svg"]

    blocked_regions: Annotated[
        list[str],
        Field(description="Country codes (from the cf-ipcountry header) that are refused access"),
    ] = ["KP", "SY", "PK", "CU"]
    blocked_ips: Annotated[list[str], Field(description="Client IP addresses that are refused access")] = ["0.0.0.0"]

    cache_backend: Annotated[CacheBackend, Field(description="Where to cache the image index")] = CacheBackend.memory
    elastic_host: Annotated[str, Field(description="Elasticsearch host (only used for the elastic cache backend)")] = (
        "http://localhost:9200"
    )
    elastic_password: Annotated[
        str | None,
        Field(description="Password for the 'elastic' user when Elastic xpack security is enabled"),
    ] = None
    cache_index: Annotated[str, Field(description="Elasticsearch index used by the elastic cache backend")] = "imgbed_cache"

    @model_validator(mode="after")
    def set_derived(self: Any) -> "Settings":
        if self.github_repo:
            if not self.proxy_prefix:
                self.proxy_prefix = f"/{self.github_repo}/{self.github_branch}"
            if not self.proxy_referer:
                self.proxy_referer = f"https://github.com/{self.github_repo}"
        if not self.proxy_prefix:
            self.proxy_prefix = "/raw"
        self.proxy_prefix = "/" + self.proxy_prefix.strip("/")
        self.admin_route = "/" + self.admin_route.strip("/")
        return self

    @property
    def secure_cookies(self) -> bool:
        return self.host.startswith("https://")

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)


@functools.lru_cache()
def get_settings() -> Settings:
    temp = Settings()
    load_dotenv(temp.env_file, override=False)
    return Settings()


def validate_settings():
    settings = get_settings()
    if not settings.github_repo:
        return "No repository configured, set imgbed_github_repo to owner/name"
    if not settings.github_token:
        return "No GitHub token configured, the management api will not be able to read or change the repository"
    if not (settings.admin_user and settings.admin_password):
        return "No operator credentials configured (imgbed_admin_user, imgbed_admin_password), nobody can log in"
    if not settings.secret_key:
        return "No secret key configured, run `python -m imgbed create-env` to create one"


if __name__ == "__main__":
    for k, v in get_settings().model_dump().items():
        print(f"{ENV_PREFIX.upper()}{k.upper()}={v}")
