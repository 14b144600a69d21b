"""应用配置模块。

本模块使用pydantic-settings进行环境变量管理，提供网关运行所需的所有配置参数。
支持多环境配置：
- 开发环境：读取 .env.development
- 生产环境：读取 .env.production
- 默认：读取 .env

环境通过 APP_ENV 环境变量指定，默认为 development。
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TOOL_DESCRIPTION_HARD_LIMIT = 1000


def _get_env_files() -> tuple[str, ...]:
    """根据APP_ENV环境变量获取要加载的.env文件列表。

    返回的文件列表按优先级从高到低排列。

    :return: .env文件路径元组
    """
    app_env = os.getenv("APP_ENV", "development")

    env_files_map = {
        "development": (".env.development", ".env"),
        "production": (".env.production", ".env"),
    }

    return env_files_map.get(app_env, (".env",))


class AppConfig(BaseSettings):
    """应用配置类。

    使用 Pydantic BaseSettings 从环境变量加载配置。
    支持从 ``.env`` 文件读取，优先级：环境变量 > .env 文件 > 默认值。

    :param app_env: 应用运行环境（development/production）
    :param host: 服务器监听地址
    :param port: 服务器监听端口（1-65535）
    :param workers: 工作进程数（≥1）
    :param log_level: 日志级别（DEBUG/INFO/WARNING/ERROR/CRITICAL）
    :param verbose_logging: 是否启用详细日志模式
    :param nele_base_url: Nele 后端 API 基础地址
    :param api_key: 静态配置的 Nele API 密钥（请求未携带凭证时使用）
    :param default_chat_model: 请求未指定模型时使用的默认模型
    :param default_document_collection_id: 默认知识库集合 ID
    :param reasoning_effort: 默认推理强度
    :param tool_description_max_length: 工具描述最大长度（上限 1000）
    :param force_stream: 是否对所有聊天请求强制使用流式响应

    .. code-block:: bash

       # .env 文件示例
       APP_ENV=production
       NELE_BASE_URL=https://api.aieva.io/api:v1/
       DEFAULT_CHAT_MODEL=google-claude-4.5-sonnet
       DEFAULT_DOCUMENT_COLLECTION_ID=kb-1
       REASONING_EFFORT=medium
       LOG_LEVEL=INFO

    .. seealso::
       :func:`get_settings` - 获取配置单例
    """

    model_config = SettingsConfigDict(
        env_file=_get_env_files(),
        env_file_encoding="utf-8",
        extra="allow",
        case_sensitive=False,
    )

    app_env: Literal["development", "production"] = Field(
        default="development",
        description="应用运行环境"
    )

    host: str = Field(
        default="0.0.0.0",
        description="服务器监听地址"
    )

    port: int = Field(
        default=5000,
        description="服务器监听端口",
        gt=0,
        lt=65536
    )

    workers: int = Field(
        default=1,
        description="工作进程数",
        ge=1
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="日志级别"
    )

    verbose_logging: bool = Field(
        default=False,
        description="是否启用详细日志模式"
    )

    nele_base_url: str = Field(
        default="https://api.aieva.io/api:v1/",
        description="Nele 后端 API 基础地址"
    )

    api_key: str = Field(
        default="",
        description="静态 Nele API 密钥"
    )

    default_chat_model: str = Field(
        default="google-claude-4.5-sonnet",
        description="默认聊天模型"
    )

    default_document_collection_id: str = Field(
        default="",
        description="默认知识库集合 ID（与 web_search 互斥）"
    )

    reasoning_effort: str = Field(
        default="",
        description="默认推理强度（modelConfiguration.reasoning_effort）"
    )

    tool_description_max_length: int = Field(
        default=TOOL_DESCRIPTION_HARD_LIMIT,
        description="工具描述最大长度（非正数视为上限值）"
    )

    force_stream: bool = Field(
        default=False,
        description="是否强制所有聊天请求使用流式响应"
    )

    # HTTP 超时配置（秒）
    timeout_chat: int = Field(
        default=300,
        ge=30,
        description="Nele 后端请求超时(秒)"
    )
    timeout_image_download: int = Field(
        default=30,
        ge=5,
        description="图片下载超时(秒)"
    )

    @field_validator("nele_base_url")
    @classmethod
    def validate_nele_base_url(cls, v: str) -> str:
        """验证后端 URL 格式并补全结尾斜杠。"""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("nele_base_url 必须以 http:// 或 https:// 开头")
        if not v.endswith("/"):
            v += "/"
        return v

    @field_validator("api_key", "default_chat_model", "default_document_collection_id", "reasoning_effort")
    @classmethod
    def strip_values(cls, v: str) -> str:
        return v.strip()

    @computed_field
    @property
    def effective_tool_description_max_length(self) -> int:
        """实际生效的工具描述长度上限。

        配置值大于 0 时取其与硬上限中的较小值，否则使用硬上限。
        """
        if self.tool_description_max_length > 0:
            return min(self.tool_description_max_length, TOOL_DESCRIPTION_HARD_LIMIT)
        return TOOL_DESCRIPTION_HARD_LIMIT


@lru_cache
def get_settings() -> AppConfig:
    """获取应用配置单例。

    使用lru_cache确保配置只被加载一次。

    :return: AppConfig实例

    Example::

        >>> settings = get_settings()
        >>> print(settings.nele_base_url, settings.default_chat_model)
    """
    return AppConfig()
