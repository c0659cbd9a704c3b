"""
Datastar SSE 协议常量。

事件名、数据行前缀、默认值都集中在这里，编码器与解析器共用，
避免各处出现魔法字符串。
"""

from typing import Literal

# 事件类型
EVENT_PATCH_SIGNALS = "datastar-patch-signals"
EVENT_PATCH_ELEMENTS = "datastar-patch-elements"
EVENT_REMOVE_FRAGMENTS = "datastar-remove-fragments"
EVENT_REMOVE_SIGNALS = "datastar-remove-signals"
# 1.0 之前的旧协议事件，新协议用 patch-elements 追加 <script> 代替
EVENT_EXECUTE_SCRIPT = "datastar-execute-script"

EventType = Literal[
    "datastar-patch-signals",
    "datastar-patch-elements",
    "datastar-remove-fragments",
    "datastar-remove-signals",
    "datastar-execute-script",
]

ElementPatchMode = Literal[
    "outer",
    "inner",
    "replace",
    "prepend",
    "append",
    "before",
    "after",
    "remove",
]

# 客户端在缺省 retry 时默认使用 1000ms，因此等于默认值时不写 retry 行
DEFAULT_RETRY_DURATION = 1000
DEFAULT_ELEMENT_PATCH_MODE = "outer"
DEFAULT_AUTO_REMOVE = True
AUTO_REMOVE_ATTRIBUTE = 'data-effect="el.remove()"'

# 数据行前缀
SIGNALS_DATALINE = "signals"
ONLY_IF_MISSING_DATALINE = "onlyIfMissing"
ELEMENTS_DATALINE = "elements"
MODE_DATALINE = "mode"
SELECTOR_DATALINE = "selector"
USE_VIEW_TRANSITION_DATALINE = "useViewTransition"
PATHS_DATALINE = "paths"
SCRIPT_DATALINE = "script"
ATTRIBUTES_DATALINE = "attributes"
AUTO_REMOVE_DATALINE = "autoRemove"

# 读取 signals
DATASTAR_QUERY_PARAMETER = "datastar"
MAX_SIGNALS_SIZE = 1024 * 1024
# 这些方法没有请求体语义，signals 放在查询参数里
READ_METHODS = frozenset({"GET", "HEAD"})

ERROR_NO_DATASTAR_OBJECT = "No datastar object in request"
ERROR_PAYLOAD_TOO_LARGE = "Request payload too large"
ERROR_PARSE = "Unknown error while parsing request"
ERROR_NOT_AN_OBJECT = "Datastar signals must be a JSON object"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Content-Type": "text/event-stream",
}
