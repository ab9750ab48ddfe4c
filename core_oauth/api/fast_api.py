"""FastAPI application configuration and lifecycle management.

Example:
    Basic usage::

        from core_oauth.api.fast_api import get_app

        app = get_app()

    Or with uvicorn::

        uvicorn core_oauth.api.fast_api:get_app --factory
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger as log

from ..constants import OAUTH_PREFIX
from ..log_config import configure_logging
from ..oauth.router import get_oauth_router


def get_allow_origins() -> list[str]:
    return [
        o.strip()
        for o in os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:8080,http://127.0.0.1:8080").split(",")
        if o.strip()
    ]


def get_allow_credentials() -> bool:
    return os.getenv("CORS_ALLOW_CREDENTIALS", "True").lower() in ("true", "1", "yes")


__app: Optional[FastAPI] = None
__running: bool = False


def is_running() -> bool:
    return __running


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Track the running state across application startup and shutdown."""
    global __running

    __running = True
    log.info("OAuth server started")

    yield

    __running = False
    log.info("OAuth server shutdown")


def get_app() -> FastAPI:
    """Get or create the FastAPI application instance.

    Loads ``.env``, configures logging, and mounts the OAuth2 endpoints under
    ``OAUTH_PREFIX``. Subsequent calls return the same instance.
    """
    global __app

    if __app is not None:
        return __app

    load_dotenv(find_dotenv(), override=False)
    configure_logging()

    __app = FastAPI(
        title="SCK Core OAuth",
        description="OAuth2 authorization server",
        version="0.1.0",
        lifespan=lifespan,
    )

    __app.add_middleware(
        CORSMiddleware,
        allow_origins=get_allow_origins(),
        allow_credentials=get_allow_credentials(),
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=86400,
    )

    __app.include_router(get_oauth_router(), prefix=OAUTH_PREFIX, tags=["OAuth"])

    @__app.get("/health", include_in_schema=False)
    async def health_check() -> dict:
        return {"status": "healthy", "running": is_running()}

    return __app


def run(host: str = "0.0.0.0", port: int = 8090) -> None:
    """Start a local development server."""
    import uvicorn

    uvicorn.run(get_app(), host=host, port=int(os.getenv("API_PORT", port)), workers=1)
