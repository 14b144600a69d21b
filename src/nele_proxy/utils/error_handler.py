"""错误响应工具模块。

提供统一的错误响应构造逻辑：网关自身的错误使用 OpenAI 风格的错误信封，
后端的非成功响应则原样转发。
"""

from fastapi import Response

from ..exceptions import ProxyError, UpstreamResponseError
from ..models import ErrorDetail, ErrorResponse


def error_response(status_code: int, message: str, error_type: str, code: str) -> Response:
    """构造 OpenAI 风格的错误响应。

    :param status_code: HTTP 状态码
    :param message: 错误消息
    :param error_type: 错误类型
    :param code: 错误代码
    :return: ``{"error": {"message", "type", "code"}}`` 格式的JSON响应
    """
    body = ErrorResponse(error=ErrorDetail(message=message, type=error_type, code=code))
    return Response(
        status_code=status_code,
        content=body.model_dump_json(),
        media_type="application/json",
    )


def proxy_error_response(exc: ProxyError) -> Response:
    """将 :class:`ProxyError` 转换为错误响应。"""
    return error_response(exc.status_code, exc.message, exc.error_type, exc.code)


def upstream_response(exc: UpstreamResponseError) -> Response:
    """原样转发后端的非成功响应（状态码、Content-Type、响应体）。

    :param exc: 携带后端响应的异常
    :return: 与后端响应一致的响应
    """
    return Response(
        status_code=exc.status_code,
        content=exc.body,
        headers={"Content-Type": exc.content_type},
    )


def upstream_no_body_response(exc: UpstreamResponseError) -> Response:
    """后端失败且响应体为空时，合成一个带相同状态码的错误信封。

    .. note::
       仅在流式路径中使用；非流式路径即使响应体为空也原样转发。
    """
    return error_response(
        exc.status_code,
        f"Upstream returned {exc.status_code} {exc.reason}.",
        "upstream_error",
        "upstream_no_body",
    )
