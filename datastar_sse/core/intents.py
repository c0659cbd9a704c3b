"""
服务端推送意图（Intent）的数据结构（Pydantic）。

每个 Intent 对应一次协议操作，只描述“要做什么”，
如何变成 data 行由 mapper 负责。所有 Intent 都是一次性的，
按请求构造、写完即丢弃。

注意：只有 signals / content / script 会按行拆分，
其他字段（id、selector、paths、attributes）必须是单行，否则会截断帧。
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from datastar_sse.core.consts import ElementPatchMode

_LINE_BREAK = re.compile(r"[\r\n]")


def single_line(value: Optional[str], name: str) -> Optional[str]:
    if value is not None and _LINE_BREAK.search(value):
        raise ValueError(f"{name} must not contain line breaks")
    return value


class EventOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: Optional[str] = Field(default=None, description="SSE 事件 id（可选）")
    retry_duration: Optional[int] = Field(default=None, description="重连间隔（毫秒），等于 1000 时不输出")

    @field_validator("event_id")
    @classmethod
    def _single_line_id(cls, value: Optional[str]) -> Optional[str]:
        return single_line(value, "event_id")


class PatchSignalsIntent(EventOptions):
    signals: Dict[str, Any] = Field(description="要合并到客户端的 signals（JSON 对象）")
    only_if_missing: Optional[bool] = Field(default=None, description="仅在客户端不存在该 signal 时写入")


class PatchElementsIntent(EventOptions):
    content: str = Field(default="", description="预先渲染好的 HTML 片段")
    mode: Optional[ElementPatchMode] = Field(default=None, description="合并模式，默认 outer")
    selector: Optional[str] = Field(default=None, description="目标元素的 CSS 选择器")
    use_view_transition: Optional[bool] = Field(default=None, description="是否使用 View Transition API")

    @field_validator("content", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        # 允许传入任何可 str() 的对象（例如模板渲染结果）
        return value if isinstance(value, str) else str(value)

    @field_validator("selector")
    @classmethod
    def _single_line_selector(cls, value: Optional[str]) -> Optional[str]:
        return single_line(value, "selector")


class RemoveFragmentsIntent(EventOptions):
    selector: str = Field(description="要删除的元素的 CSS 选择器")
    use_view_transition: Optional[bool] = Field(default=None, description="是否使用 View Transition API")

    @field_validator("selector")
    @classmethod
    def _single_line_selector(cls, value: str) -> str:
        return single_line(value, "selector")


class RemoveSignalsIntent(EventOptions):
    paths: List[str] = Field(description="要删除的 signal 路径，例如 user.name")

    @field_validator("paths", mode="before")
    @classmethod
    def _single_path(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("paths")
    @classmethod
    def _single_line_paths(cls, value: List[str]) -> List[str]:
        for path in value:
            single_line(path, "paths")
        return value


class ExecuteScriptIntent(EventOptions):
    script: str = Field(description="要在浏览器执行的 JavaScript")
    attributes: Optional[Union[Dict[str, str], List[str]]] = Field(
        default=None,
        description="<script> 标签属性：字符串列表（原样输出）或 key/value 映射",
    )
    # None 表示调用方没有显式指定，按默认值 True 处理
    auto_remove: Optional[bool] = Field(default=None, description="执行后是否自动移除 <script>")

    @field_validator("attributes")
    @classmethod
    def _single_line_attributes(cls, value):
        if isinstance(value, dict):
            for key, item in value.items():
                single_line(key, "attributes")
                single_line(item, "attributes")
        elif value:
            for item in value:
                single_line(item, "attributes")
        return value


Intent = Union[
    PatchSignalsIntent,
    PatchElementsIntent,
    RemoveFragmentsIntent,
    RemoveSignalsIntent,
    ExecuteScriptIntent,
]
