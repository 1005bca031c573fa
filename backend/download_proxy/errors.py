"""
Download Proxy Errors

Every failure the proxy core can report to its caller:
- InvalidRequest: missing or undecodable url parameter
- FetchFailure: network/transport failure or a failed response
- StorageFailure: staging file could not be created, written or deleted
- ConfigError: bad environment configuration
"""

from typing import Optional


class DownloadProxyError(Exception):
    """Base class for download proxy errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidRequest(DownloadProxyError):
    """The url parameter is missing or cannot be percent-decoded."""


class FetchFailure(DownloadProxyError):
    """The remote resource could not be retrieved."""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class StorageFailure(DownloadProxyError):
    """A staging file could not be created, written or removed."""

    def __init__(self, message: str, url: Optional[str] = None, path: Optional[str] = None):
        super().__init__(message)
        self.url = url
        self.path = path


class ConfigError(DownloadProxyError):
    """An environment variable holds a value of the wrong type."""
