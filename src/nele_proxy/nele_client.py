"""Nele 后端客户端模块。

封装对 Nele 后端 REST API 的所有调用。所有请求共享同一个连接池化的
``httpx.AsyncClient``（基础地址为 ``NELE_BASE_URL``），由 ``asgi.py``
中的生命周期管理器创建和关闭。

后端调用的错误约定：

- 非 2xx 响应：抛出 :class:`UpstreamResponseError`，由异常处理器原样转发
- 2xx 但响应体不是 JSON 对象：抛出 ``upstream_invalid_json``
- 连接失败、超时等传输层错误：抛出 ``upstream_unreachable``
"""

from typing import Any

import httpx
import orjson
from fastapi import Request
from pydantic import ValidationError

from .config import AppConfig, get_settings
from .exceptions import UpstreamContractError, UpstreamResponseError
from .logger import get_logger
from .models import NeleChatResult

logger = get_logger(__name__)


def create_backend_http_client(settings: AppConfig | None = None) -> httpx.AsyncClient:
    """创建访问 Nele 后端的连接池化 HTTP 客户端。"""
    settings = settings or get_settings()
    return httpx.AsyncClient(
        base_url=settings.nele_base_url,
        timeout=httpx.Timeout(float(settings.timeout_chat)),
    )


def create_download_http_client(settings: AppConfig | None = None) -> httpx.AsyncClient:
    """创建下载 image_url 图片的连接池化 HTTP 客户端。"""
    settings = settings or get_settings()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(float(settings.timeout_image_download)),
        follow_redirects=True,
    )


class NeleClient:
    """Nele 后端 API 客户端。

    :ivar http_client: 连接池化的 httpx 异步客户端
    """

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self.http_client = http_client

    async def aclose(self) -> None:
        await self.http_client.aclose()

    @staticmethod
    def _headers(api_key: str, accept_language: str | None = None, content_type: str | None = None) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {api_key}"}
        if accept_language:
            headers["Accept-Language"] = accept_language
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    async def send(self, method: str, path: str, api_key: str, **kwargs: Any) -> httpx.Response:
        """向后端发送请求并返回原始响应。

        :param method: HTTP 方法
        :param path: 相对于后端基础地址的路径（可包含查询字符串）
        :param api_key: 转发给后端的 Bearer 凭证
        :param kwargs: 透传给 :meth:`httpx.AsyncClient.request` 的参数
            （``content``/``files``/``data``/``headers`` 等）
        :return: 后端响应（任意状态码）
        :raises UpstreamContractError: 传输层错误（``upstream_unreachable``）
        """
        extra_headers = kwargs.pop("headers", None) or {}
        headers = {**self._headers(api_key), **extra_headers}
        try:
            return await self.http_client.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as e:
            logger.error(
                "Upstream request failed: method={}, path={}, error_type={}, error={}",
                method,
                path,
                type(e).__name__,
                str(e),
            )
            raise UpstreamContractError(
                f"Failed to reach upstream: {type(e).__name__}.", "upstream_unreachable"
            ) from e

    async def send_json(self, method: str, path: str, api_key: str, **kwargs: Any) -> dict[str, Any]:
        """发送请求并将成功响应解析为 JSON 对象。

        :raises UpstreamResponseError: 后端返回非 2xx 状态码
        :raises UpstreamContractError: 响应体不是 JSON 对象（``upstream_invalid_json``）
        """
        response = await self.send(method, path, api_key, **kwargs)
        if not response.is_success:
            logger.warning(
                "Upstream call failed: path={}, status_code={}, reason={}",
                path,
                response.status_code,
                response.reason_phrase,
            )
            raise UpstreamResponseError(
                response.status_code,
                response.content,
                response.headers.get("content-type"),
                response.reason_phrase,
            )

        try:
            data = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            logger.error("Upstream returned invalid JSON: path={}, body={}", path, response.text[:200])
            raise UpstreamContractError("Upstream returned invalid JSON.", "upstream_invalid_json") from e

        if not isinstance(data, dict):
            logger.error("Upstream returned non-object JSON: path={}, body={}", path, response.text[:200])
            raise UpstreamContractError("Upstream returned invalid JSON.", "upstream_invalid_json")
        return data

    async def chat_completion(self, payload: dict[str, Any], api_key: str) -> NeleChatResult:
        """调用 ``POST chat-completion-sync``。

        :param payload: 由 :func:`build_chat_payload` 构造的后端请求体
        :param api_key: Bearer 凭证
        :return: 解析后的后端回复
        """
        data = await self.send_json(
            "POST",
            "chat-completion-sync",
            api_key,
            content=orjson.dumps(payload),
            headers={"Content-Type": "application/json"},
        )
        try:
            return NeleChatResult.model_validate(data)
        except ValidationError as e:
            logger.error("Upstream chat result has unexpected shape: error={}", str(e))
            raise UpstreamContractError("Upstream returned invalid JSON.", "upstream_invalid_json") from e

    async def upload_image_attachment(
        self, file_name: str, data: bytes, content_type: str, api_key: str
    ) -> str:
        """调用 ``POST image-attachment`` 上传图片并返回后端文件路径。

        :param file_name: 文件名
        :param data: 图片字节
        :param content_type: 图片 MIME 类型，为空时不设置
        :param api_key: Bearer 凭证
        :return: 后端返回的 ``path``
        :raises UpstreamContractError: 响应缺少 ``path``（``image_attachment_missing_path``）
            或 ``path`` 为空（``image_attachment_empty_path``）
        """
        file_tuple = (file_name, data, content_type) if content_type else (file_name, data)
        result = await self.send_json("POST", "image-attachment", api_key, files={"file": file_tuple})

        if "path" not in result:
            logger.warning("Image attachment upload succeeded but no path was returned by upstream")
            raise UpstreamContractError(
                "Upstream did not return image path.", "image_attachment_missing_path"
            )

        path = result["path"]
        if not isinstance(path, str) or not path.strip():
            logger.warning("Image attachment upload returned an empty path")
            raise UpstreamContractError(
                "Upstream returned empty image path.", "image_attachment_empty_path"
            )
        return path

    async def get_models(self, api_key: str, accept_language: str | None = None) -> dict[str, Any]:
        """调用 ``GET models`` 获取后端模型目录。"""
        headers = {"Accept-Language": accept_language} if accept_language else None
        return await self.send_json("GET", "models", api_key, headers=headers)

    async def transcribe(
        self,
        file_name: str,
        data: bytes,
        content_type: str | None,
        model: str,
        language: str | None,
        api_key: str,
    ) -> dict[str, Any]:
        """调用 ``POST transcription`` 进行语音转写。"""
        form = {"model": model}
        if language:
            form["language"] = language
        file_tuple = (file_name, data, content_type) if content_type else (file_name, data)
        return await self.send_json(
            "POST", "transcription", api_key, data=form, files={"file": file_tuple}
        )

    async def generate_image(self, payload: dict[str, Any], api_key: str) -> dict[str, Any]:
        """调用 ``POST image`` 生成图片。"""
        return await self.send_json(
            "POST",
            "image",
            api_key,
            content=orjson.dumps(payload),
            headers={"Content-Type": "application/json"},
        )


def get_nele_client(request: Request) -> NeleClient:
    """获取挂载在应用状态上的后端客户端，不存在时创建。"""
    client = getattr(request.app.state, "nele_client", None)
    if client is None:
        client = NeleClient(create_backend_http_client())
        request.app.state.nele_client = client
    return client


def get_download_client(request: Request) -> httpx.AsyncClient:
    """获取挂载在应用状态上的图片下载客户端，不存在时创建。"""
    client = getattr(request.app.state, "download_client", None)
    if client is None:
        client = create_download_http_client()
        request.app.state.download_client = client
    return client
