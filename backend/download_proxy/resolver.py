"""
Resolver

Turns a raw `url` query parameter into a local artifact path:
1. Decode and validate the parameter
2. Return the stored path on a cache hit (no network activity)
3. On a miss, fetch, insert, and return the new path

Lookup and insert are individually locked by the store, but the
lookup-fetch-insert sequence is not atomic. Concurrent misses for one URL
each fetch and the last insert wins, unless coalesce_fetches is enabled.
A wipe racing an in-flight fetch does not stop that fetch from inserting.
"""

import re
import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol
from urllib.parse import unquote_plus

from .cache_store import CacheStore
from .errors import FetchFailure, InvalidRequest

logger = logging.getLogger(__name__)

# A '%' not followed by two hex digits
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class SupportsFetch(Protocol):
    async def fetch(self, url: str) -> str: ...


@dataclass
class Resolution:
    """Result of resolving a URL."""
    url: str                # Canonical decoded URL (the cache key)
    path: str               # Local artifact path
    cache_hit: bool


def decode_url_param(raw: Optional[str]) -> str:
    """
    Percent-decode a url query parameter.

    '+' decodes to a space. Malformed escapes and byte sequences that are
    not UTF-8 are rejected.

    Raises:
        InvalidRequest: parameter missing, empty or undecodable
    """
    if not raw:
        raise InvalidRequest("Missing 'url' parameter")
    if _BAD_ESCAPE.search(raw):
        raise InvalidRequest("Error decoding 'url' parameter")
    try:
        return unquote_plus(raw, errors="strict")
    except UnicodeDecodeError as e:
        raise InvalidRequest("Error decoding 'url' parameter") from e


class Resolver:
    """
    Resolves URLs against a CacheStore, fetching on a miss.

    Usage:
        resolver = Resolver(CacheStore(), Fetcher(config))
        path = await resolver.resolve("https%3A%2F%2Fexample.com%2Fa.txt")
    """

    def __init__(self, store: CacheStore, fetcher: SupportsFetch, coalesce_fetches: bool = False):
        self.store = store
        self.fetcher = fetcher
        self.coalesce_fetches = coalesce_fetches

        # url -> future of the fetch currently running for it (coalescing only)
        self._inflight: Dict[str, asyncio.Future] = {}

    async def resolve(self, raw_url_param: Optional[str]) -> str:
        """Return the local path for a raw url parameter."""
        resolution = await self.resolve_entry(raw_url_param)
        return resolution.path

    async def resolve_entry(self, raw_url_param: Optional[str]) -> Resolution:
        """
        Resolve a raw url parameter, reporting whether it was a cache hit.

        Raises:
            InvalidRequest: bad parameter; neither cache nor network is touched
            FetchFailure, StorageFailure: propagated from the fetcher, nothing is cached
        """
        url = decode_url_param(raw_url_param)

        path = self.store.lookup(url)
        if path is not None:
            logger.debug(f"[Resolver] Cache hit: {url}")
            return Resolution(url=url, path=path, cache_hit=True)

        if self.coalesce_fetches:
            path = await self._fetch_shared(url)
        else:
            path = await self._fetch_and_insert(url)
        return Resolution(url=url, path=path, cache_hit=False)

    async def wipe(self):
        """Delete all artifacts. See CacheStore.wipe."""
        return self.store.wipe()

    async def _fetch_and_insert(self, url: str) -> str:
        path = await self.fetcher.fetch(url)
        self.store.insert(url, path)
        return path

    async def _fetch_shared(self, url: str) -> str:
        """
        Fetch with per-URL deduplication.

        The first miss registers a future before awaiting anything; later
        misses for the same URL await that future instead of fetching.
        """
        pending = self._inflight.get(url)
        if pending is not None:
            logger.debug(f"[Resolver] Joining in-flight fetch: {url}")
            return await asyncio.shield(pending)

        future = asyncio.get_running_loop().create_future()
        self._inflight[url] = future
        try:
            path = await self._fetch_and_insert(url)
        except Exception as e:
            future.set_exception(e)
            # Waiters may not exist; mark the exception as retrieved.
            future.exception()
            raise
        except asyncio.CancelledError:
            future.set_exception(FetchFailure("Fetch cancelled", url))
            future.exception()
            raise
        else:
            future.set_result(path)
            return path
        finally:
            self._inflight.pop(url, None)
