"""
Intent -> data 行映射（Intent-to-Lines Mapper）。

说明：
- 客户端对部分字段的顺序敏感，所以控制行（mode / selector / onlyIfMissing /
  useViewTransition / autoRemove / attributes）一律排在主体行
  （signals / elements / script）之前；removeSignals 只有 paths 行。
- 主体内容按换行拆成多行，每行加同一个前缀。
- execute_script 不是独立事件：先推导成 PatchElementsIntent（追加到 body 的
  <script> 元素），再走 patch_elements 的同一条路径，编码器不需要特殊处理。
"""

from __future__ import annotations

import html
import json
import re
from typing import Any, Callable, Dict, List, Optional, Type, Union

from datastar_sse.core.consts import (
    ATTRIBUTES_DATALINE,
    AUTO_REMOVE_ATTRIBUTE,
    AUTO_REMOVE_DATALINE,
    DEFAULT_AUTO_REMOVE,
    DEFAULT_ELEMENT_PATCH_MODE,
    ELEMENTS_DATALINE,
    EVENT_EXECUTE_SCRIPT,
    EVENT_PATCH_ELEMENTS,
    EVENT_PATCH_SIGNALS,
    EVENT_REMOVE_FRAGMENTS,
    EVENT_REMOVE_SIGNALS,
    MODE_DATALINE,
    ONLY_IF_MISSING_DATALINE,
    PATHS_DATALINE,
    SCRIPT_DATALINE,
    SELECTOR_DATALINE,
    SIGNALS_DATALINE,
    USE_VIEW_TRANSITION_DATALINE,
)
from datastar_sse.core.frame import Frame
from datastar_sse.core.intents import (
    ExecuteScriptIntent,
    Intent,
    PatchElementsIntent,
    PatchSignalsIntent,
    RemoveFragmentsIntent,
    RemoveSignalsIntent,
)

# SSE 规范里的三种行结束符
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def dumps_signals(signals: Dict[str, Any]) -> str:
    """
    紧凑序列化 signals，输出与浏览器端 JSON.stringify 一致。

    不可序列化 / 循环引用 / NaN 会直接抛出 TypeError 或 ValueError，
    此时还没有任何字节写入响应流。
    """

    return json.dumps(signals, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def prefix_lines(prefix: str, text: str) -> List[str]:
    return [f"{prefix} {line}" for line in _LINE_BREAK.split(text)]


def patch_signals_lines(intent: PatchSignalsIntent) -> List[str]:
    lines: List[str] = []
    if intent.only_if_missing is True:
        lines.append(f"{ONLY_IF_MISSING_DATALINE} true")
    lines.extend(prefix_lines(SIGNALS_DATALINE, dumps_signals(intent.signals)))
    return lines


def patch_elements_lines(intent: PatchElementsIntent) -> List[str]:
    lines: List[str] = []
    if intent.mode and intent.mode != DEFAULT_ELEMENT_PATCH_MODE:
        lines.append(f"{MODE_DATALINE} {intent.mode}")
    if intent.selector:
        lines.append(f"{SELECTOR_DATALINE} {intent.selector}")
    if intent.use_view_transition is True:
        lines.append(f"{USE_VIEW_TRANSITION_DATALINE} true")
    lines.extend(prefix_lines(ELEMENTS_DATALINE, intent.content))
    return lines


def remove_fragments_lines(intent: RemoveFragmentsIntent) -> List[str]:
    lines: List[str] = []
    if intent.use_view_transition is True:
        lines.append(f"{USE_VIEW_TRANSITION_DATALINE} true")
    lines.append(f"{SELECTOR_DATALINE} {intent.selector}")
    return lines


def remove_signals_lines(intent: RemoveSignalsIntent) -> List[str]:
    return [f"{PATHS_DATALINE} {path}" for path in intent.paths]


def script_attributes(attributes: Optional[Union[Dict[str, str], List[str]]]) -> List[str]:
    """把 attributes 的两种形态统一成 <script> 标签里的属性字符串列表。"""
    if not attributes:
        return []
    if isinstance(attributes, dict):
        return [f'{key}="{html.escape(value, quote=True)}"' for key, value in attributes.items()]
    return list(attributes)


def execute_script_to_patch(intent: ExecuteScriptIntent) -> PatchElementsIntent:
    """
    纯函数：ExecuteScriptIntent -> PatchElementsIntent。

    生成 <script ...>...</script>，显式属性在前，自动移除属性（如果开启）在最后，
    然后以 mode=append、selector=body 追加到页面。
    """

    attributes = script_attributes(intent.attributes)
    auto_remove = DEFAULT_AUTO_REMOVE if intent.auto_remove is None else intent.auto_remove
    if auto_remove:
        attributes.append(AUTO_REMOVE_ATTRIBUTE)

    attributes_string = f" {' '.join(attributes)}" if attributes else ""
    return PatchElementsIntent(
        content=f"<script{attributes_string}>{intent.script}</script>",
        mode="append",
        selector="body",
        event_id=intent.event_id,
        retry_duration=intent.retry_duration,
    )


def execute_script_lines(intent: ExecuteScriptIntent) -> List[str]:
    """
    旧协议 datastar-execute-script 事件的数据行。

    autoRemove 只在显式指定时输出；映射形态的属性输出为 `attributes <key> <value>`，
    按插入顺序，每项一行。
    """

    lines: List[str] = []
    if intent.auto_remove is not None:
        lines.append(f"{AUTO_REMOVE_DATALINE} {'true' if intent.auto_remove else 'false'}")
    if isinstance(intent.attributes, dict):
        lines.extend(f"{ATTRIBUTES_DATALINE} {key} {value}" for key, value in intent.attributes.items())
    elif intent.attributes:
        lines.extend(f"{ATTRIBUTES_DATALINE} {attr}" for attr in intent.attributes)
    lines.extend(prefix_lines(SCRIPT_DATALINE, intent.script))
    return lines


def _frame(event_type: str, lines: List[str], intent: Intent) -> Frame:
    return Frame.build(
        event_type,
        lines,
        event_id=intent.event_id,
        retry_duration=intent.retry_duration,
    )


def patch_signals_frame(intent: PatchSignalsIntent) -> Frame:
    return _frame(EVENT_PATCH_SIGNALS, patch_signals_lines(intent), intent)


def patch_elements_frame(intent: PatchElementsIntent) -> Frame:
    return _frame(EVENT_PATCH_ELEMENTS, patch_elements_lines(intent), intent)


def remove_fragments_frame(intent: RemoveFragmentsIntent) -> Frame:
    return _frame(EVENT_REMOVE_FRAGMENTS, remove_fragments_lines(intent), intent)


def remove_signals_frame(intent: RemoveSignalsIntent) -> Frame:
    return _frame(EVENT_REMOVE_SIGNALS, remove_signals_lines(intent), intent)


def execute_script_frame(intent: ExecuteScriptIntent) -> Frame:
    return patch_elements_frame(execute_script_to_patch(intent))


def execute_script_event_frame(intent: ExecuteScriptIntent) -> Frame:
    return _frame(EVENT_EXECUTE_SCRIPT, execute_script_lines(intent), intent)


_FRAME_BUILDERS: Dict[Type[Any], Callable[[Any], Frame]] = {
    PatchSignalsIntent: patch_signals_frame,
    PatchElementsIntent: patch_elements_frame,
    RemoveFragmentsIntent: remove_fragments_frame,
    RemoveSignalsIntent: remove_signals_frame,
    ExecuteScriptIntent: execute_script_frame,
}


def build_frame(intent: Intent) -> Frame:
    """根据 Intent 类型选择对应的映射函数。"""
    try:
        builder = _FRAME_BUILDERS[type(intent)]
    except KeyError:
        raise TypeError(f"unsupported intent type: {type(intent).__name__}") from None
    return builder(intent)
