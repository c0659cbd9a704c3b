"""
SSE 帧编码（Frame Encoder）。

一帧的固定结构：
event: <type>
id: <id>                （可选）
retry: <ms>             （可选，等于默认 1000 时省略）
data: <line>            （按顺序重复）

（以空行结尾表示一帧结束）

这里只负责“拼帧 + 写入 sink”，不关心数据行的语义，
数据行由 mapper 按各事件的字段规则生成。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple

from datastar_sse.core.consts import DEFAULT_RETRY_DURATION


class ByteSink(Protocol):
    """响应流的抽象：只需要能写字节、能关闭。"""

    async def write(self, data: bytes) -> None: ...

    async def close(self) -> None: ...


@dataclass(frozen=True)
class Frame:
    event_type: str
    data_lines: Tuple[str, ...] = ()
    event_id: Optional[str] = None
    retry_duration: Optional[int] = None

    @classmethod
    def build(
        cls,
        event_type: str,
        data_lines: Sequence[str],
        *,
        event_id: Optional[str] = None,
        retry_duration: Optional[int] = None,
    ) -> "Frame":
        return cls(event_type, tuple(data_lines), event_id, retry_duration)


def frame_lines(frame: Frame) -> list[str]:
    """按固定顺序生成一帧的所有 SSE 行（不含结尾空行）。"""
    # 任何字段里的换行都会提前结束这一帧
    for value in (frame.event_type, frame.event_id or "", *frame.data_lines):
        if "\n" in value or "\r" in value:
            raise ValueError(f"SSE field contains a line break: {value!r}")
    lines: list[str] = [f"event: {frame.event_type}"]
    if frame.event_id:
        lines.append(f"id: {frame.event_id}")
    if frame.retry_duration is not None and frame.retry_duration != DEFAULT_RETRY_DURATION:
        lines.append(f"retry: {frame.retry_duration}")
    lines.extend(f"data: {line}" for line in frame.data_lines)
    return lines


def encode_frame(frame: Frame) -> bytes:
    """
    把一个 Frame 编码为 SSE 字节串。

    返回值示例（UTF-8 编码前）：
    event: datastar-patch-signals
    data: signals {"shape":"heart"}

    同一个 Frame 多次编码结果完全一致（没有隐藏的计数器或时间戳）。
    """

    return ("\n".join(frame_lines(frame)) + "\n\n").encode("utf-8")


async def send_frame(sink: ByteSink, frame: Frame) -> None:
    # 写入失败（sink 已关闭 / 连接断开）直接向上抛出
    await sink.write(encode_frame(frame))
