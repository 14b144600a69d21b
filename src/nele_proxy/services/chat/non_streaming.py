"""非流式聊天响应构造模块。

负责将后端 ``chat-completion-sync`` 的回复转换为 OpenAI ``chat.completion`` 对象。
"""

import time
from typing import Any

from ...models import NeleChatResult
from ...utils.uuid_helper import generate_completion_id

ZERO_USAGE = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


def zero_usage() -> dict[str, int]:
    return dict(ZERO_USAGE)


def build_chat_completion(
    model: str,
    result: NeleChatResult,
    completion_id: str | None = None,
    created: int | None = None,
) -> dict[str, Any]:
    """构造 OpenAI 格式的聊天补全响应。

    :param model: 已解析的模型名称
    :param result: 后端回复
    :param completion_id: 响应 ID，默认自动生成
    :param created: 创建时间戳，默认当前时间
    :return: ``chat.completion`` 字典

    .. note::
       后端不提供 token 统计，``usage`` 固定为 0。
       当 ``tool_calls`` 为数组时 ``finish_reason`` 为 ``tool_calls``，否则为 ``stop``。
    """
    message: dict[str, Any] = {"role": "assistant", "content": result.content}
    if isinstance(result.tool_calls, list):
        message["tool_calls"] = result.tool_calls

    finish_reason = "tool_calls" if "tool_calls" in message else "stop"

    completion: dict[str, Any] = {
        "id": completion_id or generate_completion_id(),
        "object": "chat.completion",
        "created": created if created is not None else int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": message,
                "finish_reason": finish_reason,
            }
        ],
        "usage": zero_usage(),
    }

    if result.web_search_results is not None:
        completion["web_search_results"] = result.web_search_results

    return completion
