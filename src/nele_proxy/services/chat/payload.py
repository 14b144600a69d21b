"""后端请求体构造模块。

负责把入站请求（已完成消息转换）组装为后端 ``chat-completion-sync`` 请求体。
字段顺序固定，同一请求构造两次得到的序列化结果完全一致。
"""

import copy
from typing import Any

from ...config import AppConfig
from ...logger import get_logger
from ...models import CompletionOptions

logger = get_logger(__name__)


def resolve_model(model: str | None, settings: AppConfig) -> str:
    """请求指定了非空模型时使用该模型，否则使用配置的默认模型。"""
    if model and model.strip():
        return model
    return settings.default_chat_model or "google-claude-4.5-sonnet"


def cap_tool_descriptions(tools: Any, max_length: int) -> tuple[Any, int]:
    """裁剪工具函数描述的长度。

    只处理 ``function.description`` 为字符串且超过上限的工具，其余内容保持不变。
    非数组的 ``tools`` 原样返回，数组中的 null 项会被丢弃。

    :param tools: 请求中的 ``tools`` 字段
    :param max_length: 描述最大长度
    :return: (处理后的工具, 被裁剪的数量)
    """
    if not isinstance(tools, list):
        return copy.deepcopy(tools), 0

    trimmed = 0
    capped: list[Any] = []
    for tool in tools:
        if tool is None:
            continue
        tool = copy.deepcopy(tool)
        function = tool.get("function") if isinstance(tool, dict) else None
        if isinstance(function, dict):
            description = function.get("description")
            if isinstance(description, str) and len(description) > max_length:
                function["description"] = description[:max_length]
                trimmed += 1
        capped.append(tool)
    return capped, trimmed


def resolve_document_collection(request: CompletionOptions, settings: AppConfig) -> str | None:
    """确定知识库集合 ID。

    请求显式提供的值优先；只有在请求没有提供且没有启用 ``web_search`` 时才使用默认值。
    """
    requested = request.documentCollectionId
    if requested and requested.strip():
        return requested

    default = settings.default_document_collection_id
    if default and not request.has_web_search:
        logger.info("Using default documentCollectionId from config")
        return default
    return None


def build_model_configuration(request: CompletionOptions, settings: AppConfig) -> dict[str, Any] | None:
    """合并模型配置。

    优先级：顶层 ``reasoning_effort`` > 请求 ``modelConfiguration`` > 配置默认值。
    请求 ``modelConfiguration`` 的其他字段覆盖在默认对象之上。

    :return: 合并后的配置，三者都不存在时返回 None
    """
    model_configuration: dict[str, Any] | None = None
    if settings.reasoning_effort:
        model_configuration = {"reasoning_effort": settings.reasoning_effort}

    if isinstance(request.modelConfiguration, dict):
        model_configuration = model_configuration if model_configuration is not None else {}
        model_configuration.update(copy.deepcopy(request.modelConfiguration))

    if isinstance(request.reasoning_effort, str):
        model_configuration = model_configuration if model_configuration is not None else {}
        model_configuration["reasoning_effort"] = request.reasoning_effort

    return model_configuration


def build_chat_payload(
    request: CompletionOptions,
    model: str,
    messages: list[dict[str, Any]] | None,
    settings: AppConfig,
) -> dict[str, Any]:
    """构造后端聊天请求体。

    :param request: 入站请求
    :param model: 已解析的模型名称
    :param messages: 已转换的消息列表，为 None 时请求体不包含 ``messages``
    :param settings: 应用配置
    :return: 后端请求体

    .. note::
       可选标量（``max_tokens``、``temperature``、``web_search``、``tool_choice``）
       仅在客户端显式提供时复制，包括显式的 null；``tools`` 为 null 时省略。
    """
    payload: dict[str, Any] = {"model": model}

    has_max_tokens, max_tokens = request.requested_max_tokens()
    if has_max_tokens:
        payload["max_tokens"] = max_tokens
    if request.has_field("temperature"):
        payload["temperature"] = request.temperature

    collection_id = resolve_document_collection(request, settings)
    if collection_id:
        payload["documentCollectionId"] = collection_id

    if request.has_field("web_search"):
        payload["web_search"] = copy.deepcopy(request.web_search)
    if request.has_field("tool_choice"):
        payload["tool_choice"] = copy.deepcopy(request.tool_choice)

    if request.tools is not None:
        max_length = settings.effective_tool_description_max_length
        tools, trimmed = cap_tool_descriptions(request.tools, max_length)
        if trimmed:
            logger.info("Trimmed {} tool description(s) to {} characters", trimmed, max_length)
        payload["tools"] = tools

    model_configuration = build_model_configuration(request, settings)
    if model_configuration is not None:
        payload["modelConfiguration"] = model_configuration

    if messages is not None:
        payload["messages"] = messages

    return payload
