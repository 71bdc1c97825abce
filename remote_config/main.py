"""
Process entry point: the development server app and a small command line.

    python -m remote_config.main get <component> <key> [<key> ...]
    python -m remote_config.main serve [port]
"""
import asyncio
import json
import logging
import sys
from typing import List, Optional

from fastapi import FastAPI
from pydantic import ValidationError

from remote_config.api.server import router as server_router
from remote_config.core.dependencies import create_downloader, create_provider, get_settings

logger = logging.getLogger(__name__)


app = FastAPI(
    title="Remote configuration server",
    version="0.1.0",
    description="Serves local component directories as zip configuration bundles.",
)
app.include_router(server_router)


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or get_settings().log_level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


async def fetch_values(component: str, keys: List[str]) -> int:
    """
    Download a component's bundle, print each requested key and clean up.

    Returns a process exit code: 0 when every key resolved, 1 otherwise.
    """
    settings = get_settings()
    async with create_downloader() as downloader:
        result = await downloader.download(settings.server_url, component)

    if result.is_err:
        print(f"Error: {result.error}")
        return 1

    exit_code = 0
    with create_provider(result.unwrap()) as provider:
        for key in keys:
            value = await provider.get(key)
            if value.is_ok:
                print(f"{key} = {json.dumps(value.unwrap())}")
            else:
                print(f"{key}: {value.error}")
                exit_code = 1
    return exit_code


def main(argv: Optional[List[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    usage = "usage: remote_config.main get <component> <key> [<key> ...] | serve [port]"

    if not args:
        print(usage)
        return 2

    command, rest = args[0], args[1:]
    if command in ("get", "serve"):
        try:
            get_settings()
        except ValidationError as e:
            print(f"Error: invalid configuration in REMOTE_CONFIG_* environment variables:\n{e}")
            return 1

    if command == "get" and len(rest) >= 2:
        configure_logging()
        return asyncio.run(fetch_values(rest[0], rest[1:]))

    if command == "serve" and len(rest) <= 1:
        import uvicorn

        configure_logging()
        port = int(rest[0]) if rest else 8000
        logger.info(f"Serving components from {get_settings().resolved_serve_root()}")
        uvicorn.run("remote_config.main:app", host="0.0.0.0", port=port)
        return 0

    print(usage)
    return 2


if __name__ == "__main__":
    sys.exit(main())
