"""
Download Proxy Configuration

Defaults reproduce the plain proxy: files staged under ./temp, port 8080,
no fetch timeout, filenames taken from the last URL segment and duplicate
fetches allowed on concurrent misses. Every field can be overridden with
a DOWNLOAD_PROXY_* environment variable.
"""

import os
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigError

ENV_PREFIX = "DOWNLOAD_PROXY_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass
class ProxyConfig:
    """Runtime settings for the download proxy."""
    # Storage settings
    staging_dir: str = "temp"           # Directory holding cached artifacts
    hash_filenames: bool = False        # Name files by URL hash instead of last segment
    purge_on_shutdown: bool = False     # Wipe the cache when the app stops

    # Fetch settings
    fetch_timeout: Optional[float] = None   # Seconds; None waits indefinitely
    chunk_size: int = 64 * 1024             # Stream copy buffer in bytes
    coalesce_fetches: bool = False          # Share one fetch among concurrent misses
    fail_on_error_status: bool = False      # Treat 4xx/5xx responses as fetch failures

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "ProxyConfig":
        """Build a config from DOWNLOAD_PROXY_* environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str) -> Optional[str]:
            return env.get(ENV_PREFIX + name)

        return cls(
            staging_dir=get("STAGING_DIR") or defaults.staging_dir,
            hash_filenames=_parse_bool("HASH_FILENAMES", get("HASH_FILENAMES"), defaults.hash_filenames),
            purge_on_shutdown=_parse_bool("PURGE_ON_SHUTDOWN", get("PURGE_ON_SHUTDOWN"), defaults.purge_on_shutdown),
            fetch_timeout=_parse_timeout(get("FETCH_TIMEOUT")),
            chunk_size=_parse_int("CHUNK_SIZE", get("CHUNK_SIZE"), defaults.chunk_size),
            coalesce_fetches=_parse_bool("COALESCE_FETCHES", get("COALESCE_FETCHES"), defaults.coalesce_fetches),
            fail_on_error_status=_parse_bool(
                "FAIL_ON_ERROR_STATUS", get("FAIL_ON_ERROR_STATUS"), defaults.fail_on_error_status
            ),
            host=get("HOST") or defaults.host,
            port=_parse_int("PORT", get("PORT"), defaults.port),
            log_level=(get("LOG_LEVEL") or defaults.log_level).upper(),
        )


def _parse_bool(name: str, raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: Optional[str], default: int) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{ENV_PREFIX}{name} must be positive, got {value}")
    return value


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"{ENV_PREFIX}FETCH_TIMEOUT must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigError(f"{ENV_PREFIX}FETCH_TIMEOUT must be positive, got {value}")
    return value
