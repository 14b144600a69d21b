"""自定义异常模块。

本模块定义了网关中使用的异常类型。所有异常最终都会被 ``app.py`` 中注册的
异常处理器转换为 OpenAI 风格的错误响应 ``{"error": {"message", "type", "code"}}``，
或（对于 :class:`UpstreamResponseError`）原样转发后端响应。
"""


class ProxyError(Exception):
    """网关错误基类。

    :ivar status_code: 返回给客户端的HTTP状态码
    :ivar message: 错误消息
    :ivar error_type: OpenAI 错误类型（如 invalid_request_error、upstream_error）
    :ivar code: 机器可读的错误代码（如 invalid_json、missing_api_key）
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        error_type: str = "invalid_request_error",
        code: str = "invalid_request",
    ):
        self.status_code = status_code
        self.message = message
        self.error_type = error_type
        self.code = code
        super().__init__(self.message)


class InvalidRequestError(ProxyError):
    """请求格式错误（400）。"""

    def __init__(self, message: str, code: str, status_code: int = 400):
        super().__init__(status_code, message, "invalid_request_error", code)


class InvalidJSONError(InvalidRequestError):
    """请求体无法解析。"""

    def __init__(self, message: str = "Invalid JSON body."):
        super().__init__(message, "invalid_json")


class MissingApiKeyError(InvalidRequestError):
    """未能解析到任何凭证。"""

    def __init__(
        self,
        message: str = "Missing API key. Use Authorization: Bearer <key> or set NELE_API_KEY.",
    ):
        super().__init__(message, "missing_api_key", status_code=401)


class ImageURLError(InvalidRequestError):
    """image_url 无法解析或下载。"""

    def __init__(self, message: str = "Invalid image_url."):
        super().__init__(message, "invalid_image_url")


class ModelNotFoundError(InvalidRequestError):
    """请求的模型不存在于后端模型目录中。"""

    def __init__(self, message: str = "Model not found."):
        super().__init__(message, "model_not_found", status_code=404)


class UpstreamContractError(ProxyError):
    """后端返回成功状态但响应内容不符合约定。"""

    def __init__(self, message: str, code: str, status_code: int = 502):
        super().__init__(status_code, message, "upstream_error", code)


class UpstreamResponseError(Exception):
    """后端返回非成功状态码。

    携带后端的原始响应，由异常处理器原样转发给客户端（状态码、Content-Type、响应体）。

    :ivar status_code: 后端状态码
    :ivar body: 后端原始响应体
    :ivar content_type: 后端响应的 Content-Type
    :ivar reason: 状态码对应的原因短语
    """

    def __init__(
        self,
        status_code: int,
        body: bytes,
        content_type: str | None = None,
        reason: str = "",
    ):
        self.status_code = status_code
        self.body = body
        self.content_type = content_type or "application/json"
        self.reason = reason
        super().__init__(f"Upstream returned {status_code} {reason}".strip())

    @property
    def is_empty(self) -> bool:
        """后端响应体是否为空（或只有空白字符）。"""
        return not self.body.strip()


class ClientDisconnectedError(ProxyError):
    """客户端在后端调用完成前断开连接。

    后端调用会被取消，该响应通常不会被客户端收到。
    """

    def __init__(self, message: str = "Client closed request."):
        super().__init__(499, message, "invalid_request_error", "client_closed_request")
