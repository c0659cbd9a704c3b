"""
最小 HTTP API（Datastar SSE 示例消费方）。

路由说明：
- GET      /healthz       健康检查
- GET/POST /api/signals   读取客户端 signals，并以 patch-signals 原样推回
- GET      /shape         轮换形状：推送 signals、元素片段和一段脚本
"""

from __future__ import annotations

import asyncio
import html
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from datastar_sse.api.sse import datastar_response
from datastar_sse.config import AppConfig, load_config, validate_config
from datastar_sse.core.consts import ERROR_NOT_AN_OBJECT
from datastar_sse.core.signals import read_signals
from datastar_sse.core.stream import ServerSentEventGenerator
from datastar_sse.utils.logger import logger

SHAPES = ("note", "heart", "circle", "diamond")
SHAPE_CHARACTERS = {"note": "♪", "heart": "♥", "circle": "○", "diamond": "◆"}


def render_shape(shape: Optional[str] = None) -> str:
    if not shape:
        return '<div id="shape"></div>'
    return (
        '<div id="shape" style="color: red; font-size: 32px; margin-bottom: 16px">'
        f"{html.escape(SHAPE_CHARACTERS[shape])}</div>"
    )


def create_app(cfg: Optional[AppConfig] = None, *, shape_delay: float = 0.2) -> FastAPI:
    cfg = cfg or load_config()
    ds = cfg.datastar
    app = FastAPI(title="datastar-sse", version="0.1.0")
    app.state.shape_index = -1
    config_errors = validate_config(cfg)
    if config_errors:
        logger.warning(f"配置校验失败：{config_errors}")

    async def _read(request: Request):
        return await read_signals(
            request,
            query_parameter=ds.query_parameter,
            max_size=ds.max_signals_size,
            max_body_size=ds.max_body_size,
            strict=ds.strict_signals,
        )

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    @app.api_route("/api/signals", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
    async def echo_signals(request: Request):
        if config_errors:
            return JSONResponse(status_code=400, content={"errors": config_errors})
        result = await _read(request)
        if not result.success:
            logger.info(f"读取 signals 失败：{result.error}")
            return JSONResponse(status_code=400, content=result.model_dump())
        if not isinstance(result.signals, dict):
            return JSONResponse(status_code=400, content={"success": False, "error": ERROR_NOT_AN_OBJECT})

        async def on_start(sse: ServerSentEventGenerator) -> None:
            await sse.patch_signals(result.signals)

        return datastar_response(on_start, keep_alive=ds.keep_alive_header)

    @app.get("/shape")
    async def shape(request: Request):
        if config_errors:
            return JSONResponse(status_code=400, content={"errors": config_errors})
        result = await _read(request)
        if result.success:
            logger.debug(f"客户端 signals：{result.signals}")

        # 轮换到下一个形状
        app.state.shape_index = (app.state.shape_index + 1) % len(SHAPES)
        next_shape = SHAPES[app.state.shape_index]

        async def on_start(sse: ServerSentEventGenerator) -> None:
            await sse.patch_signals({"shape": next_shape})
            await asyncio.sleep(shape_delay)
            await sse.patch_elements(render_shape(next_shape))
            await asyncio.sleep(shape_delay)
            await sse.execute_script(f'console.log("The shape is {next_shape}")')

        return datastar_response(on_start, keep_alive=ds.keep_alive_header)

    return app
