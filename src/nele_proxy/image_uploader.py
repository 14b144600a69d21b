"""图片附件处理模块。

本模块负责把消息中的 ``image_url`` 内容片段转换为后端附件：

1. 解析 data URL，或从 http(s) URL 下载图片
2. 根据 URL 和 Content-Type 推断文件名
3. 以 multipart 形式上传到后端 ``image-attachment`` 接口
4. 根据后端返回的文件路径构造 :class:`Attachment`

图片按消息中出现的顺序逐个处理，任何一步失败都会中止整个请求。
"""

import base64
import binascii
import os
import posixpath
from typing import TypedDict
from urllib.parse import unquote

import httpx

from .exceptions import ImageURLError
from .logger import get_logger
from .models import Attachment, ImageURL
from .nele_client import NeleClient

logger = get_logger(__name__)

DEFAULT_FILE_NAME = "image"

# 已知图片类型的扩展名，其余 image/<sub> 直接使用 <sub>
CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/svg+xml": "svg",
}


class ImageContent(TypedDict):
    """解析或下载得到的图片内容。

    :ivar data: 图片字节
    :ivar content_type: MIME 类型（可能为空）
    :ivar file_name: 上传时使用的文件名
    """
    data: bytes
    content_type: str
    file_name: str


def parse_data_url(url: str) -> tuple[bytes, str]:
    """解析 base64 编码的 data URL。

    :param url: 形如 ``data:image/png;base64,iVBORw0...`` 的 URL
    :return: (图片字节, MIME 类型) 二元组，MIME 类型可能为空
    :raises ImageURLError: URL 格式错误、缺少 ``;base64`` 或 base64 数据无效
    """
    comma_index = url.find(",")
    if comma_index <= 0:
        raise ImageURLError("Invalid data URL for image_url.")

    header = url[len("data:"):comma_index]
    # base64 数据中的换行和空白不参与解码
    payload = "".join(url[comma_index + 1:].split())
    if ";base64" not in header.lower():
        raise ImageURLError("Invalid data URL for image_url.")

    content_type = header.split(";")[0].strip()

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageURLError("Invalid data URL for image_url.") from e
    return data, content_type


def extension_for_content_type(content_type: str) -> str:
    """根据 MIME 类型获取文件扩展名（不含点号），未知类型返回空字符串。"""
    if not content_type or not content_type.strip():
        return ""

    lowered = content_type.lower()
    if lowered in CONTENT_TYPE_EXTENSIONS:
        return CONTENT_TYPE_EXTENSIONS[lowered]
    if lowered.startswith("image/"):
        return content_type[len("image/"):]
    return ""


def ensure_file_name_extension(file_name: str, content_type: str) -> str:
    """文件名没有扩展名时，根据 MIME 类型补全扩展名。"""
    _, ext = os.path.splitext(file_name)
    if len(ext) > 1:
        return file_name

    extension = extension_for_content_type(content_type)
    return f"{file_name}.{extension}" if extension else file_name


def file_name_from_url(url: httpx.URL) -> str:
    """取 URL 路径的最后一段作为文件名，为空时返回 ``image``。"""
    name = posixpath.basename(unquote(url.path))
    return name if name.strip() else DEFAULT_FILE_NAME


def parse_http_url(url: str) -> httpx.URL:
    """校验并解析绝对 http(s) URL。

    :raises ImageURLError: URL 不是绝对的 http(s) 地址
    """
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise ImageURLError("image_url must be a data URL or an http(s) URL.") from e

    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ImageURLError("image_url must be a data URL or an http(s) URL.")
    return parsed


class ImageUploader:
    """图片附件上传工具类。

    每个聊天请求创建一个实例，复用应用级的连接池化客户端。

    :ivar nele_client: 后端客户端
    :ivar download_client: 图片下载客户端
    :ivar api_key: 上传时使用的 Bearer 凭证
    """

    def __init__(self, nele_client: NeleClient, download_client: httpx.AsyncClient, api_key: str) -> None:
        self.nele_client = nele_client
        self.download_client = download_client
        self.api_key = api_key

    async def download_image(self, url: httpx.URL) -> ImageContent:
        """下载 http(s) 图片。

        :raises ImageURLError: 下载返回非 2xx 状态码或发生传输错误
        """
        try:
            response = await self.download_client.get(url)
        except httpx.HTTPError as e:
            raise ImageURLError(f"Failed to download image_url: {type(e).__name__}.") from e

        if not response.is_success:
            raise ImageURLError(
                f"Failed to download image_url: {response.status_code} {response.reason_phrase}."
            )

        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        logger.debug(
            "Image downloaded: url={}, size={}, content_type={}",
            str(url),
            len(response.content),
            content_type,
        )
        return ImageContent(
            data=response.content,
            content_type=content_type,
            file_name=ensure_file_name_extension(file_name_from_url(url), content_type),
        )

    async def load_image(self, url: str) -> ImageContent:
        """从 data URL 或 http(s) URL 获取图片内容。"""
        if url[:5].lower() == "data:":
            data, content_type = parse_data_url(url)
            return ImageContent(
                data=data,
                content_type=content_type,
                file_name=ensure_file_name_extension(DEFAULT_FILE_NAME, content_type),
            )
        return await self.download_image(parse_http_url(url))

    async def upload(self, image_url: ImageURL) -> Attachment:
        """处理单个图片引用并上传到后端。

        :param image_url: 带有非空 URL 的图片引用
        :return: 后端附件引用
        :raises ImageURLError: 图片无法解析或下载
        :raises UpstreamResponseError: 后端拒绝上传
        :raises UpstreamContractError: 后端未返回有效路径

        Example::

            >>> uploader = ImageUploader(nele_client, download_client, "key")
            >>> attachment = await uploader.upload(ImageURL(url="data:image/png;base64,iVBORw0KGgo="))
            >>> attachment.name
            'image.png'
        """
        try:
            image = await self.load_image(image_url.url or "")
        except ImageURLError as e:
            logger.warning("Image attachment download failed: reason={}", e.message)
            raise

        logger.info(
            "Uploading image attachment: content_type={}, bytes={}",
            image["content_type"],
            len(image["data"]),
        )
        path = await self.nele_client.upload_image_attachment(
            image["file_name"], image["data"], image["content_type"], self.api_key
        )
        logger.debug("Image attachment uploaded: file_name={}, path={}", image["file_name"], path)

        return Attachment(
            id=path,
            name=image["file_name"],
            content=path,
            detail=image_url.detail if image_url.detail and image_url.detail.strip() else None,
        )
