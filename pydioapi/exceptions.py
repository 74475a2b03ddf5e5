"""
Pydio 客户端异常。

只有两类错误：请求没能完成（TransportError），或服务端给出了错误状态码/无法解析的内容（ProtocolError）。
文件不存在等「缺失」情况不是错误，由调用方通过返回值（None / False）判断。
"""

from __future__ import annotations


class PydioError(Exception):
    """所有 pydioapi 异常的基类。"""


class TransportError(PydioError):
    """底层 HTTP 请求未能完成（连接失败、超时等）。"""


class ProtocolError(PydioError):
    """服务端返回状态码 >= 400，或响应内容不是期望的格式（非 XML / 非 JSON）。"""

    def __init__(self, message: str, *, status_code: int | None = None, body: bytes | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
