"""
读取客户端 signals（Inbound Signal Reader）。

规则：
- GET/HEAD 等没有请求体语义的方法：从查询参数 `datastar` 中读取 JSON；
- 其他方法：整个请求体就是 signals JSON。

这里永远不抛异常：所有失败都以 ReadSignalsError 返回，
由调用方决定是忽略还是拒绝请求。
"""

from __future__ import annotations

import json
from typing import Any, Literal, Mapping, Optional, Protocol, Union

from pydantic import BaseModel

from datastar_sse.core.consts import (
    DATASTAR_QUERY_PARAMETER,
    ERROR_NO_DATASTAR_OBJECT,
    ERROR_NOT_AN_OBJECT,
    ERROR_PARSE,
    ERROR_PAYLOAD_TOO_LARGE,
    MAX_SIGNALS_SIZE,
    READ_METHODS,
)
from datastar_sse.utils.logger import logger


class SignalsRequest(Protocol):
    """FastAPI / Starlette 的 Request 天然满足这个接口。"""

    method: str

    @property
    def query_params(self) -> Mapping[str, str]: ...

    async def body(self) -> bytes: ...


class ReadSignalsSuccess(BaseModel):
    success: Literal[True] = True
    signals: Any


class ReadSignalsError(BaseModel):
    success: Literal[False] = False
    error: str


ReadSignalsResult = Union[ReadSignalsSuccess, ReadSignalsError]


def _parse(payload: Union[str, bytes], *, strict: bool) -> ReadSignalsResult:
    try:
        signals = json.loads(payload)
    except (ValueError, TypeError, RecursionError) as e:
        # UnicodeDecodeError 也是 ValueError 的子类；嵌套过深时解析器抛 RecursionError
        logger.debug(f"signals 解析失败：{e}")
        return ReadSignalsError(error=ERROR_PARSE)

    # 默认宽松：解析出什么就返回什么；strict 模式下只接受 JSON 对象
    if strict and not isinstance(signals, dict):
        logger.debug(f"signals 不是 JSON 对象：{type(signals).__name__}")
        return ReadSignalsError(error=ERROR_NOT_AN_OBJECT)
    return ReadSignalsSuccess(signals=signals)


def read_signals_from_query(
    query_params: Mapping[str, str],
    *,
    query_parameter: str = DATASTAR_QUERY_PARAMETER,
    max_size: int = MAX_SIGNALS_SIZE,
    strict: bool = False,
) -> ReadSignalsResult:
    raw = query_params.get(query_parameter)
    if not raw:
        return ReadSignalsError(error=ERROR_NO_DATASTAR_OBJECT)

    # 必须先检查长度再交给 JSON 解析器
    if len(raw) > max_size:
        logger.debug(f"查询参数过大：{len(raw)} > {max_size}")
        return ReadSignalsError(error=ERROR_PAYLOAD_TOO_LARGE)

    return _parse(raw, strict=strict)


def read_signals_from_body(
    body: Optional[bytes],
    *,
    max_size: Optional[int] = None,
    strict: bool = False,
) -> ReadSignalsResult:
    if not body:
        return ReadSignalsError(error=ERROR_PARSE)

    if max_size is not None and len(body) > max_size:
        logger.debug(f"请求体过大：{len(body)} > {max_size}")
        return ReadSignalsError(error=ERROR_PAYLOAD_TOO_LARGE)

    return _parse(body, strict=strict)


async def read_signals(
    request: SignalsRequest,
    *,
    query_parameter: str = DATASTAR_QUERY_PARAMETER,
    max_size: int = MAX_SIGNALS_SIZE,
    max_body_size: Optional[int] = None,
    strict: bool = False,
) -> ReadSignalsResult:
    """
    从请求中读取 signals。

    返回值：
    - ReadSignalsSuccess(success=True, signals=...)
    - ReadSignalsError(success=False, error="...")
    """

    if request.method.upper() in READ_METHODS:
        return read_signals_from_query(
            request.query_params,
            query_parameter=query_parameter,
            max_size=max_size,
            strict=strict,
        )

    try:
        body = await request.body()
    except Exception as e:
        # 读取请求体失败（例如客户端中途断开）同样按解析错误返回
        logger.debug(f"读取请求体失败：{e}")
        return ReadSignalsError(error=ERROR_PARSE)

    return read_signals_from_body(body, max_size=max_body_size, strict=strict)
