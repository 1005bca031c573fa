"""
Download Proxy 测试配置文件

这个文件包含 pytest fixtures（测试夹具）。
所有测试都在临时 staging 目录中运行，不访问网络：
- CountingFetcher：记录调用次数的假 fetcher
- mock_fetcher：基于 httpx.MockTransport 的真实 Fetcher
"""

import asyncio
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import httpx
import pytest

# 添加 backend 目录到 Python 路径
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from download_proxy.cache_store import CacheStore
from download_proxy.config import ProxyConfig
from download_proxy.fetcher import Fetcher, artifact_name


# ============================================
# Fakes
# ============================================

class CountingFetcher:
    """
    假 fetcher：把预设内容写入 staging 目录，并记录调用次数。

    gate 不为 None 时，每次 fetch 都会等待 gate 被 set，
    用来让多个并发请求同时处于 "miss" 状态。
    """

    def __init__(self, staging_dir: Path, payloads: Optional[Dict[str, bytes]] = None):
        self.staging_dir = staging_dir
        self.payloads = payloads or {}
        self.calls: List[str] = []
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def fetch(self, url: str) -> str:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error

        self.staging_dir.mkdir(parents=True, exist_ok=True)
        path = self.staging_dir / artifact_name(url)
        path.write_bytes(self.payloads.get(url, b"hello"))
        return str(path)


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def staging_dir(tmp_path):
    """每个测试独立的 staging 目录（尚未创建）"""
    return tmp_path / "temp"


@pytest.fixture
def config(staging_dir):
    return ProxyConfig(staging_dir=str(staging_dir))


@pytest.fixture
def store():
    return CacheStore()


@pytest.fixture
def counting_fetcher(staging_dir):
    return CountingFetcher(staging_dir)


@pytest.fixture
def mock_fetcher(config):
    """
    返回一个工厂：传入 handler，得到使用 MockTransport 的 Fetcher。

    使用方式：
    ```python
    fetcher = mock_fetcher(lambda request: httpx.Response(200, content=b"hi"))
    path = await fetcher.fetch("http://example.com/a.txt")
    ```
    """

    def build(handler: Callable[[httpx.Request], httpx.Response]) -> Fetcher:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            follow_redirects=True,
        )
        return Fetcher(config, http_client=client)

    return build
