"""Pytest fixtures：内存 sink 与假请求。"""

from typing import Dict, List, Optional

import pytest


class MemorySink:
    """把写入的字节记录在内存里，可模拟写入失败。"""

    def __init__(self, fail_with: Optional[BaseException] = None):
        self.chunks: List[bytes] = []
        self.closed = False
        self.close_calls = 0
        self.fail_with = fail_with

    async def write(self, data: bytes) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.chunks.append(data)

    async def close(self) -> None:
        self.close_calls += 1
        self.closed = True

    @property
    def text(self) -> str:
        return b"".join(self.chunks).decode("utf-8")


class FakeRequest:
    def __init__(self, method: str = "GET", query: Optional[Dict[str, str]] = None, body: bytes = b""):
        self.method = method
        self.query_params = query or {}
        self._body = body

    async def body(self) -> bytes:
        return self._body


@pytest.fixture
def sink():
    return MemorySink()


@pytest.fixture
def clean_env(monkeypatch):
    """去掉可能影响配置加载的环境变量。"""
    for name in (
        "LOG_LEVEL",
        "HOST",
        "PORT",
        "DATASTAR_QUERY_PARAMETER",
        "DATASTAR_MAX_SIGNALS_SIZE",
        "DATASTAR_MAX_BODY_SIZE",
        "DATASTAR_STRICT_SIGNALS",
        "DATASTAR_KEEP_ALIVE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def broken_sink():
    return MemorySink(fail_with=ConnectionResetError("connection reset by peer"))


@pytest.fixture
def make_request():
    return FakeRequest
