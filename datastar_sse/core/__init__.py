"""
Datastar SSE 协议层。

导出的组件：
1. 帧编码：
   - Frame / encode_frame / send_frame

2. Intent 与映射：
   - PatchSignalsIntent / PatchElementsIntent / RemoveFragmentsIntent
     / RemoveSignalsIntent / ExecuteScriptIntent
   - build_frame: Intent -> Frame
   - execute_script_to_patch: 脚本推导为元素追加

3. 读取 signals：
   - read_signals -> ReadSignalsSuccess | ReadSignalsError

4. 生命周期：
   - DatastarStream / ServerSentEventGenerator / StreamState
"""

from datastar_sse.core.errors import DatastarError, StreamClosedError
from datastar_sse.core.frame import ByteSink, Frame, encode_frame, send_frame
from datastar_sse.core.intents import (
    ExecuteScriptIntent,
    PatchElementsIntent,
    PatchSignalsIntent,
    RemoveFragmentsIntent,
    RemoveSignalsIntent,
)
from datastar_sse.core.mapper import build_frame, execute_script_to_patch
from datastar_sse.core.signals import (
    ReadSignalsError,
    ReadSignalsResult,
    ReadSignalsSuccess,
    read_signals,
)
from datastar_sse.core.stream import DatastarStream, ServerSentEventGenerator, StreamState

__all__ = [
    # 异常
    "DatastarError",
    "StreamClosedError",
    # 帧编码
    "ByteSink",
    "Frame",
    "encode_frame",
    "send_frame",
    # Intent
    "PatchSignalsIntent",
    "PatchElementsIntent",
    "RemoveFragmentsIntent",
    "RemoveSignalsIntent",
    "ExecuteScriptIntent",
    "build_frame",
    "execute_script_to_patch",
    # 读取 signals
    "read_signals",
    "ReadSignalsResult",
    "ReadSignalsSuccess",
    "ReadSignalsError",
    # 生命周期
    "DatastarStream",
    "ServerSentEventGenerator",
    "StreamState",
]
