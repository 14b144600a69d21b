"""日志配置模块。

本模块使用loguru进行结构化日志记录，提供统一的日志配置和获取接口，
支持开发和生产环境的不同配置。
"""

import logging
import sys
from typing import Any

import orjson
from loguru import logger

# httpx 每个请求都会输出一条 INFO 日志，非详细模式下只保留警告
NOISY_LOGGERS = ("httpx", "httpcore")


def _build_format(use_colors: bool, verbose: bool) -> str:
    time_format = "YYYY-MM-DD HH:mm:ss.SSS" if verbose else "HH:mm:ss"
    location = "{name}:{function}:{line}" if verbose else "{name}:{function}"
    if use_colors:
        return (
            f"<green>{{time:{time_format}}}</green> | <level>{{level: <5}}</level> | "
            f"<cyan>{location}</cyan> - <level>{{message}}</level>"
        )
    return f"{{time:{time_format}}} | {{level: <5}} | {location} - {{message}}"


def configure_logging(log_level: str = "INFO", use_colors: bool = True, verbose: bool = False) -> None:
    """配置loguru日志系统。

    :param log_level: 日志级别，可选值：DEBUG, INFO, WARNING, ERROR, CRITICAL
    :param use_colors: 是否在控制台输出中使用颜色
    :param verbose: 是否启用详细日志模式（包含完整时间戳、行号、backtrace和diagnose）

    .. note::
       此函数应在应用启动时调用一次，配置全局日志行为。

       - 简洁模式（verbose=False，默认）：简短时间格式，不显示行号，适用于生产环境和容器
       - 详细模式（verbose=True）：完整时间格式，显示行号并启用backtrace，适用于本地调试

       DEBUG 级别会输出请求体预览、附件上传细节等调试信息；
       INFO 级别输出关键业务日志（模型、消息数量、附件数量、推理强度等）。
    """
    logger.remove()
    logger.add(
        sys.stderr,
        format=_build_format(use_colors, verbose),
        level=log_level.upper(),
        colorize=use_colors,
        backtrace=verbose,
        diagnose=verbose and use_colors,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)


def get_logger(name: str | None = None):
    """获取logger实例。

    :param name: logger名称，通常使用模块的__name__。loguru使用全局logger，此参数用于兼容性
    :return: 配置好的loguru logger实例

    Example::

        >>> from nele_proxy.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Chat request received: model={}, stream={}", "gpt-4o", False)

    .. note::
       loguru使用{}占位符进行字符串格式化，而不是结构化的键值对。
    """
    return logger


def json_str(obj: Any, max_length: int = 2000) -> str:
    """将对象序列化为用于日志输出的JSON字符串（超长时截断）。

    :param obj: 任意可JSON序列化的对象
    :param max_length: 最大输出长度
    :return: JSON字符串
    """
    try:
        text = orjson.dumps(obj, default=str).decode("utf-8")
    except TypeError:
        text = repr(obj)
    if len(text) > max_length:
        return text[:max_length] + "...(truncated)"
    return text


def mask_secret(value: str | None) -> str:
    """脱敏显示密钥，仅保留前4位。"""
    if not value:
        return "<none>"
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}****"
