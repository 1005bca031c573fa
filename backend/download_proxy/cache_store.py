"""
Cache Store
缓存存储

Thread-safe mapping from a decoded URL to the staged file holding its bytes.

Features:
- One Lock guards the mapping; it is held only for the dict operation
- Last-writer-wins inserts, no reference counting
- Best-effort wipe: a failed file deletion is logged and skipped
"""

import os
import time
import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """
    Cache entry data structure
    缓存条目数据结构
    """
    url: str                         # Canonical decoded URL
    path: str                        # Staged artifact file
    created_at: float                # Unix timestamp of the insert


@dataclass
class WipeResult:
    """Counts from a wipe. Paths that could not be deleted are listed in failures."""
    entries_cleared: int = 0
    files_removed: int = 0
    failures: List[str] = field(default_factory=list)


class CacheStore:
    """
    Thread-safe URL -> artifact path store
    线程安全的缓存存储

    Paths are only inserted after their file has been completely written,
    so every path held here points at a whole artifact until the next wipe.
    """

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = Lock()

    def lookup(self, url: str) -> Optional[str]:
        """
        Get the artifact path for a URL
        根据 URL 获取缓存路径

        Returns:
            The stored path, or None on a miss.
        """
        with self._lock:
            entry = self._entries.get(url)
            return entry.path if entry else None

    def insert(self, url: str, path: str) -> None:
        """Register a path for a URL, replacing any previous mapping."""
        with self._lock:
            previous = self._entries.get(url)
            self._entries[url] = CacheEntry(url=url, path=path, created_at=time.time())

        if previous and previous.path != path:
            logger.debug(f"[CacheStore] Replaced {previous.path} with {path} for {url}")

    def wipe(self) -> WipeResult:
        """
        Delete every artifact and reset the mapping
        清空所有缓存

        Deletion failures are logged as warnings; the mapping is cleared
        regardless, so a wipe never fails as a whole.
        """
        result = WipeResult()
        with self._lock:
            result.entries_cleared = len(self._entries)

            for entry in self._entries.values():
                try:
                    os.remove(entry.path)
                    result.files_removed += 1
                except OSError as e:
                    logger.warning(f"[CacheStore] Error removing file {entry.path}: {e}")
                    result.failures.append(entry.path)

            self._entries = {}

        logger.info("[CacheStore] Cache wiped successfully.")
        return result

    def entries(self) -> List[CacheEntry]:
        """List all entries, oldest first."""
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.created_at)

    def snapshot(self) -> Dict[str, str]:
        """Copy of the current url -> path mapping."""
        with self._lock:
            return {url: entry.path for url, entry in self._entries.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._entries
