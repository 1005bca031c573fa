"""
Download Proxy Module

Fetches remote resources on behalf of clients, keeps each one as a file
in a local staging directory, and serves repeat requests from that copy.

Features:
- One file per cached URL, written completely before it is served
- Lock-guarded in-memory URL -> path map
- Wipe endpoint that deletes every cached file
"""

from .app import create_app
from .cache_store import CacheEntry, CacheStore, WipeResult
from .config import ProxyConfig
from .errors import (
    ConfigError,
    DownloadProxyError,
    FetchFailure,
    InvalidRequest,
    StorageFailure,
)
from .fetcher import Fetcher, artifact_name
from .resolver import Resolution, Resolver, decode_url_param

__all__ = [
    "create_app",
    "CacheEntry",
    "CacheStore",
    "WipeResult",
    "ProxyConfig",
    "ConfigError",
    "DownloadProxyError",
    "FetchFailure",
    "InvalidRequest",
    "StorageFailure",
    "Fetcher",
    "artifact_name",
    "Resolution",
    "Resolver",
    "decode_url_param",
]
