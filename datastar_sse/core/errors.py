"""协议层异常。读取 signals 的失败不走异常，而是返回 ReadSignalsError。"""


class DatastarError(Exception):
    """datastar_sse 所有异常的基类。"""


class StreamClosedError(DatastarError):
    """流已关闭或已被客户端取消后仍尝试写入。"""
