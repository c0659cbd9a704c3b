"""
流的生命周期（Stream Lifecycle Wrapper）。

状态机：
OPEN --(回调完成 / 回调出错)--> CLOSING --(sink 关闭)--> CLOSED
OPEN --(客户端断开 cancel)-----------------------------> CLOSED

说明：
- 同一个流只有一个写入者：调用方必须逐个 await 每个 intent，保证帧的顺序；
- cancel 是协作式的：不会打断正在运行的回调，只是让之后的写入抛出
  StreamClosedError，绝不会悄悄缓存；
- 回调出错时先调用 on_error，再无条件关闭，避免泄漏连接。
"""

from __future__ import annotations

import enum
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from datastar_sse.core.errors import StreamClosedError
from datastar_sse.core.frame import ByteSink, Frame, send_frame
from datastar_sse.core.intents import (
    ExecuteScriptIntent,
    Intent,
    PatchElementsIntent,
    PatchSignalsIntent,
    RemoveFragmentsIntent,
    RemoveSignalsIntent,
)
from datastar_sse.core.mapper import build_frame, execute_script_event_frame
from datastar_sse.utils.logger import logger

OnStart = Callable[["ServerSentEventGenerator"], Union[None, Awaitable[None]]]
OnError = Callable[[BaseException], Union[None, Awaitable[None]]]
OnAbort = Callable[[], Union[None, Awaitable[None]]]


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class StreamState(enum.Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class ServerSentEventGenerator:
    """
    绑定到某个 sink 的协议操作集合。

    每个方法只发送一帧；signals 无法序列化时在写入前就抛出异常。
    """

    def __init__(self, sink: ByteSink):
        self._sink = sink

    async def send(self, intent: Intent) -> None:
        await send_frame(self._sink, build_frame(intent))

    async def send_frame(self, frame: Frame) -> None:
        await send_frame(self._sink, frame)

    async def patch_signals(
        self,
        signals: Dict[str, Any],
        *,
        only_if_missing: Optional[bool] = None,
        event_id: Optional[str] = None,
        retry_duration: Optional[int] = None,
    ) -> None:
        await self.send(
            PatchSignalsIntent(
                signals=signals,
                only_if_missing=only_if_missing,
                event_id=event_id,
                retry_duration=retry_duration,
            )
        )

    async def patch_elements(
        self,
        content: Any,
        *,
        mode: Optional[str] = None,
        selector: Optional[str] = None,
        use_view_transition: Optional[bool] = None,
        event_id: Optional[str] = None,
        retry_duration: Optional[int] = None,
    ) -> None:
        await self.send(
            PatchElementsIntent(
                content=content,
                mode=mode,
                selector=selector,
                use_view_transition=use_view_transition,
                event_id=event_id,
                retry_duration=retry_duration,
            )
        )

    async def remove_fragments(
        self,
        selector: str,
        *,
        use_view_transition: Optional[bool] = None,
        event_id: Optional[str] = None,
        retry_duration: Optional[int] = None,
    ) -> None:
        await self.send(
            RemoveFragmentsIntent(
                selector=selector,
                use_view_transition=use_view_transition,
                event_id=event_id,
                retry_duration=retry_duration,
            )
        )

    async def remove_signals(
        self,
        paths: Union[str, List[str]],
        *,
        event_id: Optional[str] = None,
        retry_duration: Optional[int] = None,
    ) -> None:
        await self.send(RemoveSignalsIntent(paths=paths, event_id=event_id, retry_duration=retry_duration))

    async def execute_script(
        self,
        script: str,
        *,
        attributes: Optional[Union[Dict[str, str], List[str]]] = None,
        auto_remove: Optional[bool] = None,
        event_id: Optional[str] = None,
        retry_duration: Optional[int] = None,
    ) -> None:
        await self.send(
            ExecuteScriptIntent(
                script=script,
                attributes=attributes,
                auto_remove=auto_remove,
                event_id=event_id,
                retry_duration=retry_duration,
            )
        )

    async def execute_script_event(
        self,
        script: str,
        *,
        attributes: Optional[Union[Dict[str, str], List[str]]] = None,
        auto_remove: Optional[bool] = None,
        event_id: Optional[str] = None,
        retry_duration: Optional[int] = None,
    ) -> None:
        """以旧协议的 datastar-execute-script 事件发送脚本（1.0 之前的客户端）。"""
        intent = ExecuteScriptIntent(
            script=script,
            attributes=attributes,
            auto_remove=auto_remove,
            event_id=event_id,
            retry_duration=retry_duration,
        )
        await send_frame(self._sink, execute_script_event_frame(intent))

    async def close(self) -> None:
        await self._sink.close()


class DatastarStream:
    """包装底层 sink，负责 open / closing / closed 状态转换。"""

    def __init__(self, sink: ByteSink, *, on_abort: Optional[OnAbort] = None):
        self._sink = sink
        self._on_abort = on_abort
        self.state = StreamState.OPEN
        self.generator = ServerSentEventGenerator(self)

    @property
    def is_open(self) -> bool:
        return self.state is StreamState.OPEN

    async def write(self, data: bytes) -> None:
        if self.state is not StreamState.OPEN:
            raise StreamClosedError(f"cannot write to a {self.state.value} stream")
        await self._sink.write(data)

    async def close(self) -> None:
        if self.state is not StreamState.OPEN:
            return
        self.state = StreamState.CLOSING
        logger.debug("SSE 流进入 closing 状态")
        try:
            await self._sink.close()
        finally:
            self.state = StreamState.CLOSED
            logger.debug("SSE 流已关闭")

    async def cancel(self) -> None:
        """客户端断开：直接进入 CLOSED，并调用一次 on_abort。"""
        if self.state is StreamState.CLOSED:
            return
        self.state = StreamState.CLOSED
        logger.debug("客户端已断开，SSE 流被取消")
        if self._on_abort is not None:
            await _maybe_await(self._on_abort())

    async def run(
        self,
        on_start: OnStart,
        *,
        on_error: Optional[OnError] = None,
        keep_open: bool = False,
    ) -> None:
        """
        执行调用方的回调，并按结果推进状态机。

        - 正常完成：除非 keep_open，否则立即关闭；
        - 回调出错：记录日志，调用 on_error，然后无条件关闭；
        - 已被 cancel：回调里随后的写入会抛 StreamClosedError，这里只记录，不再调用 on_error。
        """

        try:
            await _maybe_await(on_start(self.generator))
        except Exception as e:
            if self.state is StreamState.CLOSED:
                logger.debug(f"SSE 流已取消，回调结束：{e!r}")
                return
            logger.opt(exception=e).error(f"SSE 回调出错：{e}")
            if on_error is not None:
                try:
                    await _maybe_await(on_error(e))
                except Exception as hook_error:
                    logger.opt(exception=hook_error).error(f"on_error 回调出错：{hook_error}")
            try:
                await self.close()
            except Exception as close_error:
                # 错误已经上报过，这里的关闭只是尽力而为
                logger.debug(f"出错后关闭 SSE 流失败：{close_error!r}")
            return

        if not keep_open:
            await self.close()
