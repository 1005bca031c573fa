"""
Application factory for the download proxy.

The cache store, fetcher and resolver are built on startup and owned by
the app; on shutdown the HTTP client is closed and, if configured, the
cache is wiped.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .cache_store import CacheStore
from .config import ProxyConfig
from .fetcher import Fetcher
from .resolver import Resolver
from .routes_fastapi import router

logger = logging.getLogger(__name__)


def build_resolver(config: ProxyConfig) -> Resolver:
    """Wire a fresh CacheStore and Fetcher into a Resolver."""
    return Resolver(CacheStore(), Fetcher(config), coalesce_fetches=config.coalesce_fetches)


def create_app(config: Optional[ProxyConfig] = None, resolver: Optional[Resolver] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Settings; read from the environment when omitted
        resolver: Pre-built resolver (tests); built on startup when omitted
    """
    config = config or ProxyConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "resolver", None) is None
        if owned:
            app.state.resolver = build_resolver(config)
        logger.info(f"[DownloadProxy] Staging directory: {config.staging_dir}")

        try:
            yield
        finally:
            active: Resolver = app.state.resolver
            if config.purge_on_shutdown:
                active.store.wipe()
            if owned:
                await active.fetcher.close()
                app.state.resolver = None

    app = FastAPI(title="Download Proxy", lifespan=lifespan)
    app.state.config = config
    app.state.resolver = resolver

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
