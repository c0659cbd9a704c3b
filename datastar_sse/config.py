"""
配置加载模块：
- 优先从 `.env` 读取环境变量（如 DATASTAR_MAX_SIGNALS_SIZE）
- 再从 `config/config.yaml` 读取其他配置
- 配置不合法时由 validate_config 给出友好提示
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import os

import yaml
from dotenv import load_dotenv

from datastar_sse.core.consts import DATASTAR_QUERY_PARAMETER, MAX_SIGNALS_SIZE

# 加载 .env 文件中的环境变量（如果存在）
load_dotenv()

CONFIG_PATH = Path("config/config.yaml")

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerSettings:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class DatastarSettings:
    query_parameter: str = DATASTAR_QUERY_PARAMETER
    max_signals_size: int = MAX_SIGNALS_SIZE
    # None 表示请求体不限制大小
    max_body_size: Optional[int] = None
    strict_signals: bool = False
    keep_alive_header: bool = True


@dataclass
class AppConfig:
    log_level: str = "INFO"
    server: ServerSettings = field(default_factory=ServerSettings)
    datastar: DatastarSettings = field(default_factory=DatastarSettings)


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _as_int(value: Any, default: Optional[int]) -> Optional[int]:
    if value is None or value == "":
        return default
    return int(value)


def load_yaml_config(path: Optional[Path] = None) -> dict:
    """读取 YAML 配置文件为字典。"""
    config_path = path or CONFIG_PATH
    if not config_path.exists():
        return {}
    with config_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config(path: Optional[Path] = None) -> AppConfig:
    """合并环境变量与 YAML，生成最终配置对象。"""
    data = load_yaml_config(path)
    server_cfg = data.get("server") or {}
    datastar_cfg = data.get("datastar") or {}

    # 环境变量优先（如果存在）
    log_level = (os.getenv("LOG_LEVEL") or data.get("log_level") or "INFO").strip()

    host = os.getenv("HOST") or server_cfg.get("host") or "127.0.0.1"
    port = _as_int(os.getenv("PORT") or server_cfg.get("port"), 8000)

    query_parameter = (
        os.getenv("DATASTAR_QUERY_PARAMETER")
        or datastar_cfg.get("query_parameter")
        or DATASTAR_QUERY_PARAMETER
    )
    max_signals_size = _as_int(
        os.getenv("DATASTAR_MAX_SIGNALS_SIZE") or datastar_cfg.get("max_signals_size"),
        MAX_SIGNALS_SIZE,
    )
    max_body_size = _as_int(
        os.getenv("DATASTAR_MAX_BODY_SIZE") or datastar_cfg.get("max_body_size"),
        None,
    )
    strict_signals = _as_bool(
        os.getenv("DATASTAR_STRICT_SIGNALS", datastar_cfg.get("strict_signals")), False
    )
    keep_alive_header = _as_bool(
        os.getenv("DATASTAR_KEEP_ALIVE", datastar_cfg.get("keep_alive_header")), True
    )

    return AppConfig(
        log_level=log_level,
        server=ServerSettings(host=host, port=port),
        datastar=DatastarSettings(
            query_parameter=query_parameter,
            max_signals_size=max_signals_size,
            max_body_size=max_body_size,
            strict_signals=strict_signals,
            keep_alive_header=keep_alive_header,
        ),
    )


def validate_config(cfg: AppConfig) -> list[str]:
    """校验配置，返回错误列表。"""
    errors: list[str] = []
    if cfg.log_level.upper() not in LOG_LEVELS:
        errors.append(f"LOG_LEVEL 不正确：{cfg.log_level}，可选值为 {', '.join(LOG_LEVELS)}")

    if not (0 < cfg.server.port < 65536):
        errors.append(f"端口号不合法：{cfg.server.port}")

    ds = cfg.datastar
    if not ds.query_parameter:
        errors.append("DATASTAR_QUERY_PARAMETER 不能为空")
    if ds.max_signals_size <= 0:
        errors.append("DATASTAR_MAX_SIGNALS_SIZE 必须为正整数")
    if ds.max_body_size is not None and ds.max_body_size <= 0:
        errors.append("DATASTAR_MAX_BODY_SIZE 必须为正整数（不限制请留空）")

    return errors
