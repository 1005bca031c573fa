"""
Download Proxy API Routes

Provides endpoints for:
- Fetching a remote resource through the local cache
- Wiping every cached artifact
- Health check
"""

import os
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import FileResponse, PlainTextResponse
from pydantic import BaseModel

from .errors import FetchFailure, InvalidRequest, StorageFailure
from .resolver import Resolver

logger = logging.getLogger(__name__)

WIPE_MESSAGE = "Cache wiped successfully."

# ============================================
# Router
# ============================================

router = APIRouter(tags=["Download Proxy"])


class HealthResponse(BaseModel):
    status: str
    service: str
    entries: int


def get_resolver(request: Request) -> Resolver:
    return request.app.state.resolver


# ============================================
# Endpoints
# ============================================

@router.get("/")
async def proxy_download(
    request: Request,
    url: Optional[str] = Query(None, description="Percent-encoded URL of the resource"),
):
    """
    Serve a remote resource from the local cache.

    This endpoint:
    1. Decodes the url parameter
    2. Returns the cached file if present
    3. Otherwise downloads it, caches it, and returns it

    Example:
        GET /?url=https%3A%2F%2Fexample.com%2Ffile.pdf
    """
    resolver = get_resolver(request)

    try:
        resolution = await resolver.resolve_entry(url)
    except InvalidRequest as e:
        raise HTTPException(status_code=400, detail=e.message)
    except (FetchFailure, StorageFailure) as e:
        raise HTTPException(status_code=500, detail=f"Error downloading file: {e.message}")

    # Removed from disk outside the proxy; the entry stays until the next wipe.
    if not os.path.isfile(resolution.path):
        logger.warning(f"[DownloadProxy] Cached file missing: {resolution.path} for {resolution.url}")
        raise HTTPException(status_code=404, detail=f"Cached file not found: {resolution.path}")

    return FileResponse(
        resolution.path,
        headers={"X-Cache": "HIT" if resolution.cache_hit else "MISS"},
    )


@router.get("/wipe-cache", response_class=PlainTextResponse)
async def wipe_cache(request: Request):
    """
    Delete every cached file and clear the cache.

    Always succeeds; files that could not be removed are only logged.
    """
    result = await get_resolver(request).wipe()
    logger.info(
        f"[DownloadProxy] Wiped {result.entries_cleared} entries "
        f"({result.files_removed} files removed, {len(result.failures)} failed)"
    )
    return PlainTextResponse(WIPE_MESSAGE)


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        service="download-proxy",
        entries=len(get_resolver(request).store),
    )
