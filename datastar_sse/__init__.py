"""Datastar 服务端 SSE 编码与 signals 读取。"""

from datastar_sse.core import *  # noqa: F401,F403
from datastar_sse.core import __all__

__version__ = "0.1.0"
