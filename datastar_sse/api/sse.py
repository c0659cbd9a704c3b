"""
SSE（Server-Sent Events）响应工具函数。

说明：
协议拼帧在 datastar_sse.core 里完成，这里只负责把 DatastarStream
接到 FastAPI 的 StreamingResponse 上：
- 回调在后台 task 里运行，每写一帧就放进队列；
- StreamingResponse 从队列里逐帧取出发送给浏览器；
- 浏览器断开时，Starlette 会关闭 body 迭代器，此时取消流并调用 on_abort。
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Dict, Optional

from fastapi.responses import StreamingResponse

from datastar_sse.core.consts import SSE_HEADERS
from datastar_sse.core.errors import StreamClosedError
from datastar_sse.core.stream import DatastarStream, OnAbort, OnError, OnStart
from datastar_sse.utils.logger import logger

_EOF = None


class QueueSink:
    """
    基于 asyncio.Queue 的 sink，由响应体迭代器消费。

    队列容量为 1：上一帧被取走之前，write 会一直等待（背压），
    不会在慢客户端面前无限堆积。
    """

    def __init__(self, maxsize: int = 1) -> None:
        self._queue: "asyncio.Queue[Optional[bytes]]" = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    async def write(self, data: bytes) -> None:
        if self.closed:
            raise StreamClosedError("sink is closed")
        await self._queue.put(data)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._queue.put(_EOF)

    def abort(self) -> None:
        """消费方已经离开：标记关闭并清空队列，唤醒阻塞在 write 上的生产者。"""
        self.closed = True
        while not self._queue.empty():
            self._queue.get_nowait()

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is _EOF:
                return
            yield chunk


def sse_headers(*, keep_alive: bool = True, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """SSE 响应头；keep_alive=False 时去掉 Connection 头。"""
    headers = dict(SSE_HEADERS)
    if not keep_alive:
        headers.pop("Connection", None)
    if extra:
        headers.update(extra)
    return headers


def datastar_response(
    on_start: OnStart,
    *,
    on_error: Optional[OnError] = None,
    on_abort: Optional[OnAbort] = None,
    keep_open: bool = False,
    keep_alive: bool = True,
    headers: Optional[Dict[str, str]] = None,
) -> StreamingResponse:
    """
    创建一个 Datastar SSE 响应。

    用法示例：
        async def on_start(sse):
            await sse.patch_signals({"shape": "heart"})

        return datastar_response(on_start)
    """

    sink = QueueSink()
    stream = DatastarStream(sink, on_abort=on_abort)

    async def body() -> AsyncIterator[bytes]:
        task = asyncio.create_task(stream.run(on_start, on_error=on_error, keep_open=keep_open))
        finished = False
        try:
            async for chunk in sink:
                yield chunk
            finished = True
        finally:
            if finished:
                await task
            else:
                # 客户端断开：协作式取消，回调在下一次写入时结束
                sink.abort()
                await stream.cancel()
                task.add_done_callback(_log_task_result)

    return StreamingResponse(
        body(),
        media_type="text/event-stream",
        headers=sse_headers(keep_alive=keep_alive, extra=headers),
    )


def _log_task_result(task: "asyncio.Task[None]") -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.opt(exception=error).error(f"SSE 后台任务异常结束：{error}")
