import asyncio

import pytest

from datastar_sse.core.errors import StreamClosedError
from datastar_sse.core.stream import DatastarStream, ServerSentEventGenerator, StreamState


@pytest.mark.asyncio
async def test_run_closes_after_callback(sink):
    stream = DatastarStream(sink)

    async def on_start(sse):
        await sse.patch_signals({"shape": "heart"})
        await sse.patch_elements("<div>x</div>", mode="append", selector="body")

    await stream.run(on_start)

    assert stream.state is StreamState.CLOSED
    assert sink.closed is True
    assert sink.text == (
        "event: datastar-patch-signals\n"
        'data: signals {"shape":"heart"}\n'
        "\n"
        "event: datastar-patch-elements\n"
        "data: mode append\n"
        "data: selector body\n"
        "data: elements <div>x</div>\n"
        "\n"
    )


@pytest.mark.asyncio
async def test_sync_callback_is_supported(sink):
    seen = []
    stream = DatastarStream(sink)
    await stream.run(lambda sse: seen.append(sse))
    assert isinstance(seen[0], ServerSentEventGenerator)
    assert stream.state is StreamState.CLOSED


@pytest.mark.asyncio
async def test_keep_open(sink):
    stream = DatastarStream(sink)

    async def on_start(sse):
        await sse.remove_signals(["a", "b"])

    await stream.run(on_start, keep_open=True)
    assert stream.state is StreamState.OPEN
    assert sink.closed is False

    await stream.generator.remove_fragments("#toast")
    await stream.generator.close()
    assert stream.state is StreamState.CLOSED
    assert sink.text.endswith("event: datastar-remove-fragments\ndata: selector #toast\n\n")


@pytest.mark.asyncio
async def test_close_is_idempotent(sink):
    stream = DatastarStream(sink)
    await stream.close()
    await stream.close()
    assert sink.close_calls == 1


@pytest.mark.asyncio
async def test_callback_error_calls_hook_then_closes(sink):
    errors = []
    stream = DatastarStream(sink)

    async def on_start(sse):
        await sse.patch_signals({"step": 1})
        raise RuntimeError("boom")

    async def on_error(error):
        # 出错钩子被调用时流还没有关闭
        errors.append((error, stream.state))

    await stream.run(on_start, on_error=on_error)

    assert len(errors) == 1
    assert isinstance(errors[0][0], RuntimeError)
    assert errors[0][1] is StreamState.OPEN
    assert stream.state is StreamState.CLOSED
    assert sink.closed is True


@pytest.mark.asyncio
async def test_callback_error_closes_even_with_keep_open(sink):
    stream = DatastarStream(sink)

    def on_start(sse):
        raise ValueError("bad")

    await stream.run(on_start, keep_open=True)
    assert stream.state is StreamState.CLOSED


@pytest.mark.asyncio
async def test_failing_error_hook_does_not_leak(sink):
    stream = DatastarStream(sink)

    def on_start(sse):
        raise ValueError("bad")

    def on_error(error):
        raise RuntimeError("hook failed too")

    await stream.run(on_start, on_error=on_error)
    assert sink.closed is True


@pytest.mark.asyncio
async def test_encoding_error_leaves_stream_open(sink):
    stream = DatastarStream(sink)
    with pytest.raises(TypeError):
        await stream.generator.patch_signals({"bad": object()})
    assert sink.chunks == []
    assert stream.is_open

    await stream.generator.patch_signals({"good": True})
    assert sink.text == 'event: datastar-patch-signals\ndata: signals {"good":true}\n\n'


@pytest.mark.asyncio
async def test_write_error_propagates(broken_sink):
    stream = DatastarStream(broken_sink)
    with pytest.raises(ConnectionResetError):
        await stream.generator.patch_signals({"a": 1})


@pytest.mark.asyncio
async def test_cancel_calls_abort_once(sink):
    aborted = []
    stream = DatastarStream(sink, on_abort=lambda: aborted.append(True))

    await stream.cancel()
    await stream.cancel()

    assert aborted == [True]
    assert stream.state is StreamState.CLOSED


@pytest.mark.asyncio
async def test_write_after_cancel_raises(sink):
    stream = DatastarStream(sink)
    await stream.cancel()
    with pytest.raises(StreamClosedError):
        await stream.generator.patch_signals({"late": True})
    assert sink.chunks == []


@pytest.mark.asyncio
async def test_write_after_close_raises(sink):
    stream = DatastarStream(sink)
    await stream.close()
    with pytest.raises(StreamClosedError):
        await stream.write(b"event: x\n\n")


@pytest.mark.asyncio
async def test_cancel_after_close_does_not_abort(sink):
    aborted = []
    stream = DatastarStream(sink, on_abort=lambda: aborted.append(True))
    await stream.run(lambda sse: None)
    await stream.cancel()
    assert aborted == []


@pytest.mark.asyncio
async def test_cancel_during_run_is_cooperative(sink):
    release = asyncio.Event()
    errors = []
    aborted = []

    async def on_abort():
        aborted.append(True)

    stream = DatastarStream(sink, on_abort=on_abort)

    async def on_start(sse):
        await sse.patch_signals({"n": 1})
        await release.wait()
        await sse.patch_signals({"n": 2})

    task = asyncio.create_task(stream.run(on_start, on_error=errors.append))
    await asyncio.sleep(0)
    await stream.cancel()
    release.set()
    await task

    assert aborted == [True]
    assert errors == []
    assert sink.text == 'event: datastar-patch-signals\ndata: signals {"n":1}\n\n'
    # 取消不会关闭底层 sink
    assert sink.closed is False


@pytest.mark.asyncio
async def test_generator_operations(sink):
    sse = ServerSentEventGenerator(sink)
    await sse.execute_script("go()", attributes={"type": "module"}, event_id="s1")
    await sse.execute_script_event("go()", auto_remove=True)
    assert sink.text == (
        "event: datastar-patch-elements\n"
        "id: s1\n"
        "data: mode append\n"
        "data: selector body\n"
        'data: elements <script type="module" data-effect="el.remove()">go()</script>\n'
        "\n"
        "event: datastar-execute-script\n"
        "data: autoRemove true\n"
        "data: script go()\n"
        "\n"
    )
