"""Responses API 适配模块。

把 ``/v1/responses`` 请求（``input`` 或 ``messages``）展开为聊天消息，
复用聊天补全的消息转换和请求体构造逻辑，并把后端回复包装为 ``response`` 对象。
仅支持非流式调用。
"""

import time
from typing import Any

from pydantic import ValidationError

from ..exceptions import InvalidRequestError
from ..logger import get_logger
from ..models import Message, NeleChatResult, ResponsesRequest
from ..utils.uuid_helper import generate_message_id, generate_response_id

logger = get_logger(__name__)


def _invalid_input(message: str) -> InvalidRequestError:
    return InvalidRequestError(message, "invalid_input")


def _to_message(item: dict[str, Any]) -> Message:
    try:
        return Message.model_validate(item)
    except ValidationError as e:
        logger.warning("Invalid message in responses input: error={}", str(e))
        raise _invalid_input("Invalid message in input.") from e


def _user_message(text: str) -> Message:
    return Message(role="user", content=text)


def _expand_input_items(items: list[Any]) -> list[Message]:
    messages: list[Message] = []
    for item in items:
        if isinstance(item, str):
            messages.append(_user_message(item))
        elif isinstance(item, dict):
            nested = item.get("messages")
            if isinstance(nested, list):
                messages.extend(_to_message(m) for m in nested if isinstance(m, dict))
            else:
                messages.append(_to_message(item))
    return messages


def build_responses_messages(request: ResponsesRequest) -> list[Message]:
    """从 ``messages`` 或 ``input`` 中提取消息列表。

    - ``messages`` 存在时必须是数组，非对象项被忽略
    - ``input`` 为字符串时作为一条 user 消息
    - ``input`` 为数组时，字符串项作为 user 消息；带 ``messages`` 数组的对象展开其中的消息；
      其他对象作为单条消息

    :param request: responses 请求
    :return: 至少包含一条消息的列表
    :raises InvalidRequestError: 输入格式不支持或没有可用消息（``invalid_input``）
    """
    if request.has_field("messages"):
        if not isinstance(request.messages, list):
            raise _invalid_input("messages must be an array.")
        messages = [_to_message(m) for m in request.messages if isinstance(m, dict)]
    elif request.has_field("input"):
        if isinstance(request.input, str):
            messages = [_user_message(request.input)]
        elif isinstance(request.input, list):
            messages = _expand_input_items(request.input)
        else:
            raise _invalid_input("Unsupported input format.")
    else:
        raise _invalid_input("Either input or messages is required.")

    if not messages:
        raise _invalid_input("No messages found in input.")
    return messages


def build_responses_response(model: str, result: NeleChatResult) -> dict[str, Any]:
    """将后端回复包装为 Responses API 的 ``response`` 对象。

    :param model: 已解析的模型名称
    :param result: 后端回复
    :return: ``response`` 字典，``output_text`` 为回复文本（后端无内容时为空字符串）
    """
    text = result.content or ""
    output_message = {
        "id": generate_message_id(),
        "type": "message",
        "role": "assistant",
        "status": "completed",
        "content": [{"type": "output_text", "text": text}],
    }
    return {
        "id": generate_response_id(),
        "object": "response",
        "created_at": int(time.time()),
        "model": model,
        "status": "completed",
        "output": [output_message],
        "output_text": text,
    }
