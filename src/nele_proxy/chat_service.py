"""聊天服务模块。

本模块编排一次聊天请求的完整处理流程：

1. 消息转换（角色映射、内容扁平化、图片附件上传）
2. 构造后端请求体（模型、工具裁剪、知识库、模型配置）
3. 调用后端 ``chat-completion-sync``（恰好一次，客户端断开时取消）
4. 构造 OpenAI 响应，或拆分为 SSE 流式响应
"""

import asyncio
from typing import Any, Awaitable, TypeVar

import orjson
from fastapi import Request, Response
from fastapi.responses import StreamingResponse

from .config import AppConfig, get_settings
from .exceptions import ClientDisconnectedError, UpstreamResponseError
from .image_uploader import ImageUploader
from .logger import get_logger, json_str
from .models import ChatRequest, CompletionOptions, Message, NeleChatResult, ResponsesRequest
from .nele_client import get_download_client, get_nele_client
from .services.chat.converter import convert_messages, role_summary
from .services.chat.non_streaming import build_chat_completion
from .services.chat.payload import build_chat_payload, resolve_model
from .services.chat.streaming import SSE_HEADERS, stream_chat_completion
from .services.responses import build_responses_messages, build_responses_response
from .utils.error_handler import upstream_no_body_response

logger = get_logger(__name__)

T = TypeVar("T")

# 检测客户端断开的轮询间隔（秒）
DISCONNECT_POLL_INTERVAL = 0.5


async def call_until_disconnected(request: Request, awaitable: Awaitable[T]) -> T:
    """执行后端调用，客户端断开时立即取消。

    :param request: 入站请求，用于检测客户端是否断开
    :param awaitable: 后端调用
    :return: 后端调用的结果
    :raises ClientDisconnectedError: 客户端在调用完成前断开
    """
    task = asyncio.ensure_future(awaitable)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_INTERVAL)
            if task in done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected, cancelling upstream call: path={}", request.url.path)
                raise ClientDisconnectedError()
    finally:
        if not task.done():
            task.cancel()


def json_response(content: dict[str, Any]) -> Response:
    return Response(content=orjson.dumps(content), media_type="application/json")


def log_request_statistics(chat_request: ChatRequest, model: str, force_stream: bool) -> None:
    """记录请求概要（模型、流式标志、消息/图片/工具数量等）。"""
    summary = role_summary(chat_request.messages)
    if summary:
        logger.info("Incoming chat roles: {}", summary)

    messages = chat_request.messages or []
    requested_collection = chat_request.documentCollectionId
    logger.info(
        "Chat completion request received: model={}, stream_requested={}, force_stream={}, messages={}, "
        "image_parts={}, tools={}, web_search={}, document_collection={}",
        model,
        chat_request.stream_requested,
        force_stream,
        len(messages),
        sum(message.image_part_count for message in messages),
        chat_request.tool_count,
        chat_request.has_web_search,
        bool(requested_collection and requested_collection.strip()),
    )


async def prepare_payload(
    request: Request,
    options: CompletionOptions,
    messages: list[Message] | None,
    model: str,
    api_key: str,
    settings: AppConfig,
) -> dict[str, Any]:
    """转换消息并构造后端请求体。

    :param request: 入站请求，用于获取连接池化的客户端
    :param options: 聊天或 responses 请求
    :param messages: 待转换的消息，为 None 时请求体不包含 ``messages``
    :param model: 已解析的模型名称
    :param api_key: 转发给后端的凭证
    :param settings: 应用配置
    :return: 后端请求体
    """
    converted = None
    if messages is not None:
        uploader = ImageUploader(get_nele_client(request), get_download_client(request), api_key)
        converted = await convert_messages(messages, uploader)

    payload = build_chat_payload(options, model, converted, settings)

    model_configuration = payload.get("modelConfiguration")
    if isinstance(model_configuration, dict) and "reasoning_effort" in model_configuration:
        logger.info("Using reasoning_effort={}", model_configuration["reasoning_effort"])
    logger.debug("Upstream chat payload: {}", json_str(payload))
    return payload


async def send_chat_payload(request: Request, payload: dict[str, Any], api_key: str) -> NeleChatResult:
    """调用后端 ``chat-completion-sync``，客户端断开时取消。"""
    client = get_nele_client(request)
    return await call_until_disconnected(request, client.chat_completion(payload, api_key))


async def process_chat_completion(request: Request, chat_request: ChatRequest, api_key: str) -> Response:
    """处理聊天补全请求。

    :param request: 入站请求
    :param chat_request: 已解析的聊天请求
    :param api_key: 已解析的凭证
    :return: JSON 响应或 SSE 流式响应

    .. note::
       **响应模式:**

       - 客户端请求 ``stream=true`` 或配置了 ``FORCE_STREAM`` 时返回 SSE 流
       - 只有客户端自己请求了流式且 ``stream_options.include_usage`` 为 true 时才追加 usage 块
       - 流式模式下后端失败且响应体为空时，返回 ``upstream_no_body`` 错误
    """
    settings = get_settings()
    stream_requested = chat_request.stream_requested
    is_stream = stream_requested or settings.force_stream
    model = resolve_model(chat_request.model, settings)

    log_request_statistics(chat_request, model, settings.force_stream)

    payload = await prepare_payload(request, chat_request, chat_request.messages, model, api_key, settings)

    try:
        result = await send_chat_payload(request, payload, api_key)
    except UpstreamResponseError as e:
        logger.warning("Upstream chat completion failed: status_code={}, reason={}", e.status_code, e.reason)
        if is_stream and e.is_empty:
            return upstream_no_body_response(e)
        raise

    completion = build_chat_completion(model, result)

    if is_stream:
        include_usage = stream_requested and chat_request.include_usage
        logger.debug("Emulating streaming response: include_usage={}", include_usage)
        return StreamingResponse(
            stream_chat_completion(completion, include_usage),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    return json_response(completion)


async def process_responses(request: Request, responses_request: ResponsesRequest, api_key: str) -> Response:
    """处理 ``/v1/responses`` 请求（仅非流式）。

    :param request: 入站请求
    :param responses_request: 已解析的 responses 请求（已确认非流式）
    :param api_key: 已解析的凭证
    :return: ``response`` 对象的 JSON 响应
    """
    settings = get_settings()
    messages = build_responses_messages(responses_request)
    model = resolve_model(responses_request.model, settings)
    logger.info("Responses request received: model={}, messages={}", model, len(messages))

    payload = await prepare_payload(request, responses_request, messages, model, api_key, settings)
    result = await send_chat_payload(request, payload, api_key)
    return json_response(build_responses_response(model, result))
