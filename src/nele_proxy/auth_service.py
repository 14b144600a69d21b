"""凭证解析模块。

网关本身不做用户认证，只负责为每次后端调用确定一个 Nele API 密钥。
解析顺序（先命中者生效）：

1. ``Authorization: Bearer <token>``（scheme 不区分大小写，token 去除首尾空白）
2. ``X-Api-Key`` 请求头（去除首尾空白，非空）
3. 配置项 ``API_KEY``
4. 环境变量 ``NELE_API_KEY``
"""

import os

from fastapi.datastructures import Headers

from .config import AppConfig, get_settings
from .exceptions import MissingApiKeyError
from .logger import get_logger, mask_secret

logger = get_logger(__name__)

BEARER_PREFIX = "bearer "


def get_configured_api_key(settings: AppConfig | None = None) -> str | None:
    """获取静态配置的 API 密钥。

    :param settings: 应用配置，默认使用全局配置
    :return: 配置项 ``API_KEY`` 或环境变量 ``NELE_API_KEY`` 的值，都为空时返回 None
    """
    settings = settings or get_settings()
    if settings.api_key:
        return settings.api_key

    env_key = os.environ.get("NELE_API_KEY", "").strip()
    return env_key or None


def extract_api_key(headers: Headers, settings: AppConfig | None = None) -> str | None:
    """按优先级从请求头和配置中解析 API 密钥。

    :param headers: 入站请求头
    :param settings: 应用配置
    :return: 解析到的密钥，未找到时返回 None

    .. note::
       ``Authorization`` 头只有在使用 Bearer scheme 时才会被采用，
       其他 scheme 会继续尝试 ``X-Api-Key``。
    """
    auth_header = headers.get("Authorization")
    if auth_header and auth_header.lower().startswith(BEARER_PREFIX):
        return auth_header[len(BEARER_PREFIX):].strip()

    api_key = headers.get("X-Api-Key")
    if api_key and api_key.strip():
        return api_key.strip()

    return get_configured_api_key(settings)


def require_api_key(headers: Headers, settings: AppConfig | None = None) -> str:
    """解析 API 密钥，未找到时抛出异常。

    :raises MissingApiKeyError: 没有任何可用凭证
    """
    api_key = extract_api_key(headers, settings)
    if not api_key:
        logger.warning("Missing API key: no Authorization, X-Api-Key or configured key")
        raise MissingApiKeyError()

    logger.debug("API key resolved: key={}", mask_secret(api_key))
    return api_key
