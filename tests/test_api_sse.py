import asyncio

import pytest

from datastar_sse.api.sse import QueueSink, datastar_response, sse_headers
from datastar_sse.core.errors import StreamClosedError


def test_sse_headers():
    assert sse_headers() == {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "Content-Type": "text/event-stream",
    }
    assert "Connection" not in sse_headers(keep_alive=False)
    assert sse_headers(extra={"X-Accel-Buffering": "no"})["X-Accel-Buffering"] == "no"


@pytest.mark.asyncio
async def test_queue_sink_yields_until_closed():
    sink = QueueSink()

    async def produce():
        await sink.write(b"one")
        await sink.write(b"two")
        await sink.close()

    producer = asyncio.create_task(produce())
    assert [chunk async for chunk in sink] == [b"one", b"two"]
    await producer


@pytest.mark.asyncio
async def test_queue_sink_rejects_writes_after_close():
    sink = QueueSink()
    await sink.close()
    with pytest.raises(StreamClosedError):
        await sink.write(b"late")


@pytest.mark.asyncio
async def test_response_streams_frames_then_ends():
    async def on_start(sse):
        await sse.patch_signals({"a": 1})
        await sse.remove_signals("a")

    response = datastar_response(on_start)
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"

    chunks = [chunk async for chunk in response.body_iterator]
    assert chunks == [
        b'event: datastar-patch-signals\ndata: signals {"a":1}\n\n',
        b"event: datastar-remove-signals\ndata: paths a\n\n",
    ]


@pytest.mark.asyncio
async def test_response_error_hook_and_close():
    errors = []

    async def on_start(sse):
        await sse.patch_signals({"a": 1})
        raise RuntimeError("boom")

    response = datastar_response(on_start, on_error=errors.append)
    chunks = [chunk async for chunk in response.body_iterator]

    assert len(chunks) == 1
    assert isinstance(errors[0], RuntimeError)


@pytest.mark.asyncio
async def test_client_disconnect_cancels_stream():
    release = asyncio.Event()
    aborted = []
    late_writes = []

    async def on_start(sse):
        await sse.patch_signals({"n": 1})
        await release.wait()
        try:
            await sse.patch_signals({"n": 2})
        except StreamClosedError:
            late_writes.append("rejected")
            raise

    response = datastar_response(on_start, on_abort=lambda: aborted.append(True), keep_open=True)
    body = response.body_iterator
    first = await body.__anext__()
    assert first == b'event: datastar-patch-signals\ndata: signals {"n":1}\n\n'

    # 模拟浏览器断开：Starlette 会关闭 body 迭代器
    await body.aclose()
    assert aborted == [True]

    release.set()
    for _ in range(5):
        await asyncio.sleep(0)
    assert late_writes == ["rejected"]


@pytest.mark.asyncio
async def test_queue_sink_write_waits_for_consumer():
    sink = QueueSink()
    await sink.write(b"one")

    second = asyncio.create_task(sink.write(b"two"))
    for _ in range(3):
        await asyncio.sleep(0)
    assert not second.done()

    chunks = sink.__aiter__()
    assert await chunks.__anext__() == b"one"
    await asyncio.wait_for(second, timeout=1)
    assert await chunks.__anext__() == b"two"


@pytest.mark.asyncio
async def test_queue_sink_abort_releases_blocked_writer():
    sink = QueueSink()
    await sink.write(b"one")
    blocked = asyncio.create_task(sink.write(b"two"))
    await asyncio.sleep(0)

    sink.abort()
    await asyncio.wait_for(blocked, timeout=1)
    with pytest.raises(StreamClosedError):
        await sink.write(b"three")


@pytest.mark.asyncio
async def test_disconnect_while_producer_is_blocked():
    aborted = []
    outcome = []

    async def on_start(sse):
        try:
            for n in range(10):
                await sse.patch_signals({"n": n})
        except StreamClosedError:
            outcome.append("stopped")
            raise

    response = datastar_response(on_start, on_abort=lambda: aborted.append(True))
    body = response.body_iterator
    await body.__anext__()
    await body.aclose()

    for _ in range(10):
        await asyncio.sleep(0)
    assert aborted == [True]
    assert outcome == ["stopped"]
