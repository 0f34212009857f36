"""
imgbed: image proxy and management API on top of a GitHub repository
"""

import argparse
import asyncio
import inspect
import logging
import os
import secrets
import sys
from enum import Enum
from pathlib import Path
from typing import Any, get_origin

import uvicorn
from pydantic.fields import FieldInfo
from uvicorn.config import LOGGING_CONFIG

from imgbed.config import ENV_PREFIX, CacheBackend, get_settings, validate_settings
from imgbed.connections import elastic_enabled, es, http, imgbed_connections
from imgbed.store.cache import ElasticCacheStore, MemoryCacheStore
from imgbed.store.client import RemoteStoreClient
from imgbed.store.tree_index import TreeIndex, export_urls


def run(args):
    settings = get_settings()
    logging.info(f"Starting server at port {args.port}, debug={not args.nodebug}, repository={settings.github_repo}")
    if warning := validate_settings():
        logging.warning(warning)
    logging.info(
        "To change server config, create an .env file and/or set environment parameters,\n"
        f"{' ' * 26}see README.md or imgbed/config.py for more information.\n"
        f"{' ' * 26}You can also run `python -m imgbed config` to create the .env settings file interactively\n"
    )
    log_config = "logging.yml" if Path("logging.yml").exists() else LOGGING_CONFIG
    uvicorn.run("imgbed.api:app", host="0.0.0.0", reload=not args.nodebug, port=int(args.port), log_config=log_config)


def base_env():
    return dict(imgbed_secret_key=secrets.token_hex(nbytes=32))


def create_env(args):
    if os.path.exists(".env"):
        print("*** File .env already exists, quitting ***")
        sys.exit(1)

    env = base_env()
    if args.admin_user:
        env["imgbed_admin_user"] = args.admin_user
    if args.repo:
        env["imgbed_github_repo"] = args.repo
    with open(".env", "w") as f:
        for key, val in env.items():
            f.write(f"{key}={val}\n")
    os.chmod(".env", 0o600)
    print("*** Created .env file ***")


async def list_assets(args):
    settings = get_settings()
    async with imgbed_connections():
        if elastic_enabled():
            cache = ElasticCacheStore(es(), settings.cache_index)
        else:
            cache = MemoryCacheStore()
        client = RemoteStoreClient(http(), settings)
        index = TreeIndex(client, cache, settings.proxy_prefix or "", settings.image_extensions, settings.dashboard_ttl)
        urls = await export_urls(index, args.prefix)
        await index.wait_pending()
    for url in urls:
        print(url)
    logging.info(f"{len(urls)} images under '{args.prefix}'")


def config_imgbed(args):
    settings = get_settings()
    print(f"Reading/writing settings from {settings.env_file}")
    for fieldname, fieldinfo in type(settings).model_fields.items():
        if fieldname == "env_file":
            continue

        validation_function = CacheBackend.validate if fieldname == "cache_backend" else None
        value = getattr(settings, fieldname)
        value = menu(fieldname, fieldinfo, value, validation_function=validation_function)
        if value is ABORTED:
            return
        if value is not UNCHANGED:
            setattr(settings, fieldname, value)

    with settings.env_file.open("w") as f:
        for fieldname, fieldinfo in type(settings).model_fields.items():
            if fieldname == "env_file":
                continue
            value = getattr(settings, fieldname)
            if doc := fieldinfo.description:
                f.write(f"# {doc}\n")
            if _isenum(fieldinfo) and fieldinfo.annotation:
                f.write("# Valid options:\n")
                for option in fieldinfo.annotation:
                    doc = (option.__doc__ or "").replace("\n", " ")
                    f.write(f"# - {option.name}: {doc}\n")
            if value is None:
                f.write(f"#{ENV_PREFIX}{fieldname}=\n\n")
            else:
                f.write(f"{ENV_PREFIX}{fieldname}={_env_value(value)}\n\n")
    os.chmod(settings.env_file, 0o600)
    print(f"*** Written {bold('.env')} file to {settings.env_file} ***")


def _env_value(value) -> str:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return "[" + ",".join(f'"{v}"' for v in value) + "]"
    return str(value)


def bold(x):
    return "\033[1m" + str(x) + "\033[0m"


ABORTED = object()
UNCHANGED = object()


def _isenum(fieldinfo: FieldInfo) -> bool:
    try:
        return issubclass(fieldinfo.annotation, Enum) if fieldinfo.annotation is not None else False
    except TypeError:
        return False


def menu(fieldname: str, fieldinfo: FieldInfo, value, validation_function=None):
    print(f"\n{bold(fieldname)}: {fieldinfo.description}")
    if _isenum(fieldinfo) and fieldinfo.annotation:
        print("  Possible choices:")
        options: Any = fieldinfo.annotation
        for option in options:
            print(f"  - {option.name}: {option.__doc__}")
        print()
    elif get_origin(fieldinfo.annotation) is list:
        print('  Enter lists as json, e.g. ["a", "b"]')
    print(f"The current value for {bold(fieldname)} is {bold(value)}.")
    while True:
        try:
            value = input("Enter a new value, press [enter] to leave unchanged, or press [control+c] to abort: ")
        except KeyboardInterrupt:
            return ABORTED
        if not value.strip():
            return UNCHANGED
        if validation_function and (message := validation_function(value)):
            print(f"\nInvalid value: {message}")
            continue
        return value


def main():
    parser = argparse.ArgumentParser(description=__doc__, prog="python -m imgbed")

    subparsers = parser.add_subparsers(dest="action", title="action", help="Action to perform:", required=True)
    p = subparsers.add_parser("run", help="Run the backend API in development mode")
    p.add_argument(
        "--no-debug",
        action="store_true",
        dest="nodebug",
        help="Disable debug mode (useful for testing downstream clients)",
    )
    p.add_argument("-p", "--port", help="Port", default=5000)
    p.set_defaults(func=run)

    p = subparsers.add_parser("create-env", help="Create the .env file with a random secret key")
    p.add_argument("-a", "--admin-user", dest="admin_user", help="The operator user name.")
    p.add_argument("-r", "--repo", help="The image repository, as owner/name.")
    p.set_defaults(func=create_env)

    p = subparsers.add_parser("config", help="Configure imgbed settings in an interactive menu.")
    p.set_defaults(func=config_imgbed)

    p = subparsers.add_parser("list-assets", help="Print the public URL of every image in the repository")
    p.add_argument("prefix", nargs="?", default="", help="Only list images whose path starts with this prefix")
    p.set_defaults(func=list_assets)

    args = parser.parse_args()

    logging.basicConfig(format="[%(levelname)-7s:%(name)-15s] %(message)s", level=logging.INFO)
    es_logger = logging.getLogger("elasticsearch")
    es_logger.setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if inspect.iscoroutinefunction(args.func):
        asyncio.run(args.func(args))
    else:
        args.func(args)


if __name__ == "__main__":
    main()
