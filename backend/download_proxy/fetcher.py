"""
Fetcher

Handles:
- Downloading a URL with redirects followed unconditionally
- Streaming the body into the staging directory in fixed-size chunks
- Reporting transport and storage failures as distinct errors
"""

import os
import sys
import hashlib
import logging
import posixpath
import tempfile
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx

from .config import ProxyConfig
from .errors import FetchFailure, StorageFailure

logger = logging.getLogger(__name__)

# httpx wants a number; this one is never reached in practice.
UNLIMITED_REDIRECTS = sys.maxsize


def artifact_name(url: str, hash_filenames: bool = False) -> str:
    """
    Name of the staged file for a URL.

    Uses the last path segment, falling back to the host name when the
    path is empty. With hash_filenames the name is a hash of the full URL
    plus the segment's extension, so distinct URLs never share a file.
    """
    parsed = urlparse(url)
    segment = posixpath.basename(parsed.path.rstrip("/"))
    if segment in ("", ".", ".."):
        segment = parsed.netloc or "index"

    if hash_filenames:
        digest = hashlib.sha256(url.encode()).hexdigest()[:16]
        return digest + posixpath.splitext(segment)[1]
    return segment


class Fetcher:
    """
    Downloads remote resources into the staging directory.

    Usage:
        fetcher = Fetcher(config)
        path = await fetcher.fetch("https://example.com/a.txt")
        await fetcher.close()
    """

    def __init__(
        self,
        config: Optional[ProxyConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or ProxyConfig()
        self.staging_dir = Path(self.config.staging_dir)

        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.fetch_timeout),
            follow_redirects=True,
            max_redirects=UNLIMITED_REDIRECTS,
        )

    async def close(self):
        """Close HTTP client."""
        if self._owns_client:
            await self.http_client.aclose()

    def destination_for(self, url: str) -> Path:
        return self.staging_dir / artifact_name(url, self.config.hash_filenames)

    async def fetch(self, url: str) -> str:
        """
        Download a URL into the staging directory.

        Args:
            url: Decoded URL to fetch

        Returns:
            Path of the completely written artifact.

        Error responses are cached like any other body unless
        fail_on_error_status is set.

        Raises:
            FetchFailure: malformed URL, transport error, or (opt-in) error status
            StorageFailure: staging file could not be created or written
        """
        try:
            destination = self.destination_for(url)
        except ValueError as e:
            logger.error(f"[Fetcher] Invalid URL {url}: {e}")
            raise FetchFailure(f"Invalid URL {url}: {e}", url) from e

        try:
            self.staging_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"[Fetcher] Error creating '{self.staging_dir}' directory: {e}")
            raise StorageFailure(
                f"Error creating '{self.staging_dir}' directory: {e}", url=url, path=str(self.staging_dir)
            ) from e

        logger.info(f"[Fetcher] Fetching: {url}")

        try:
            async with self.http_client.stream("GET", url) as response:
                if response.is_error:
                    if self.config.fail_on_error_status:
                        logger.error(f"[Fetcher] HTTP error {response.status_code}: {url}")
                        raise FetchFailure(f"HTTP {response.status_code} from {response.url}", url)
                    logger.warning(f"[Fetcher] Caching HTTP {response.status_code} body for {url}")
                await self._copy_to_file(response, destination, url)
        except (httpx.InvalidURL, ValueError) as e:
            logger.error(f"[Fetcher] Invalid URL {url}: {e}")
            raise FetchFailure(f"Invalid URL {url}: {e}", url) from e
        except httpx.HTTPError as e:
            logger.error(f"[Fetcher] Error downloading file {url}: {e!r}")
            raise FetchFailure(str(e) or type(e).__name__, url) from e

        logger.info(f"[Fetcher] Downloaded {url} to {destination}")
        return str(destination)

    async def _copy_to_file(self, response: httpx.Response, destination: Path, url: str) -> None:
        """
        Stream the body into a temporary file, then rename it into place.

        The final name only ever refers to a fully written artifact. The
        temporary file is removed on every failure path.
        """
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=self.staging_dir, prefix=f".{destination.name}.", suffix=".part"
            )
        except OSError as e:
            logger.error(f"[Fetcher] Error creating file {destination}: {e}")
            raise StorageFailure(f"Error creating file {destination}: {e}", url=url, path=str(destination)) from e

        try:
            with os.fdopen(fd, "wb") as f:
                async for chunk in response.aiter_bytes(self.config.chunk_size):
                    try:
                        f.write(chunk)
                    except OSError as e:
                        logger.error(f"[Fetcher] Error copying content to file {destination}: {e}")
                        raise StorageFailure(
                            f"Error copying content to file {destination}: {e}", url=url, path=str(destination)
                        ) from e

            try:
                os.replace(temp_path, destination)
            except OSError as e:
                logger.error(f"[Fetcher] Error creating file {destination}: {e}")
                raise StorageFailure(f"Error creating file {destination}: {e}", url=url, path=str(destination)) from e
        except BaseException:
            try:
                os.remove(temp_path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning(f"[Fetcher] Error removing partial file {temp_path}: {e}")
            raise
