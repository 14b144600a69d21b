"""流式聊天响应模拟模块。

后端只提供同步接口，本模块把一次完整的聊天补全结果拆分为 OpenAI 流式格式的
SSE 数据块：

1. 角色块：``delta.role``，非空时附带 ``delta.content`` 和 ``delta.tool_calls``
2. 结束块：空 ``delta`` 和 ``finish_reason``，附带 ``web_search_results``
3. usage 块（可选）：``choices`` 为空数组，usage 为 0
4. ``data: [DONE]``
"""

from typing import Any, AsyncGenerator

import orjson

from .non_streaming import zero_usage

SSE_DONE = "data: [DONE]\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def json_dumps(obj: dict) -> str:
    """使用 orjson 快速序列化"""
    return orjson.dumps(obj).decode("utf-8")


def format_sse_event(payload: dict[str, Any]) -> str:
    return f"data: {json_dumps(payload)}\n\n"


def create_chat_completion_chunk(
    completion: dict[str, Any],
    choices: list[dict[str, Any]],
    **extra: Any,
) -> dict[str, Any]:
    """创建聊天补全数据块，复用完整响应的 id、created 和 model。

    :param completion: 完整的 ``chat.completion`` 响应
    :param choices: 数据块的 choices
    :param extra: 附加的顶层字段（如 ``usage``、``web_search_results``）
    :return: ``chat.completion.chunk`` 字典
    """
    chunk = {
        "id": completion["id"],
        "object": "chat.completion.chunk",
        "created": completion["created"],
        "model": completion["model"],
        "choices": choices,
    }
    chunk.update(extra)
    return chunk


def build_stream_chunks(completion: dict[str, Any], include_usage: bool) -> list[dict[str, Any]]:
    """把完整响应拆分为流式数据块（不含 ``[DONE]``）。

    :param completion: 由 :func:`build_chat_completion` 构造的完整响应
    :param include_usage: 是否追加 usage 块
    :return: 数据块列表
    """
    choice = completion["choices"][0]
    message = choice["message"]

    delta: dict[str, Any] = {"role": "assistant"}
    content = message.get("content")
    if content and content.strip():
        delta["content"] = content
    if "tool_calls" in message:
        delta["tool_calls"] = message["tool_calls"]

    chunks = [
        create_chat_completion_chunk(
            completion, [{"index": 0, "delta": delta, "finish_reason": None}]
        )
    ]

    final_extra = {}
    if completion.get("web_search_results") is not None:
        final_extra["web_search_results"] = completion["web_search_results"]
    chunks.append(
        create_chat_completion_chunk(
            completion,
            [{"index": 0, "delta": {}, "finish_reason": choice["finish_reason"]}],
            **final_extra,
        )
    )

    if include_usage:
        chunks.append(create_chat_completion_chunk(completion, [], usage=zero_usage()))

    return chunks


async def stream_chat_completion(completion: dict[str, Any], include_usage: bool) -> AsyncGenerator[str, None]:
    """逐个产出 SSE 格式的数据块。

    :param completion: 完整的 ``chat.completion`` 响应
    :param include_usage: 是否追加 usage 块
    :yields: ``data: <json>\\n\\n`` 格式的字符串，最后是 ``data: [DONE]\\n\\n``
    """
    for chunk in build_stream_chunks(completion, include_usage):
        yield format_sse_event(chunk)
    yield SSE_DONE
