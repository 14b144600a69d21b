"""测试数据构建器。

使用 Builder 模式创建测试数据，提高测试代码的可读性和可维护性。
"""

import base64
from typing import Any, Optional

# 1x1 透明 PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


class ChatRequestBuilder:
    """聊天请求构建器。

    使用链式调用构建测试用的聊天请求数据。未设置的字段不会出现在请求中。

    Example::

        request = (ChatRequestBuilder()
            .with_model("gpt-4o")
            .with_message("user", "Hi")
            .with_streaming(True)
            .build())
    """

    def __init__(self):
        self._data: dict[str, Any] = {"messages": []}

    def with_model(self, model: str) -> "ChatRequestBuilder":
        """设置模型名称。"""
        self._data["model"] = model
        return self

    def with_message(self, role: str, content: Any, **extra: Any) -> "ChatRequestBuilder":
        """添加消息。"""
        self._data["messages"].append({"role": role, "content": content, **extra})
        return self

    def with_image_message(self, text: str, *urls: str, detail: Optional[str] = None) -> "ChatRequestBuilder":
        """添加一条包含文本和若干图片的 user 消息。"""
        parts: list[dict[str, Any]] = [{"type": "text", "text": text}]
        for url in urls:
            image_url: dict[str, Any] = {"url": url}
            if detail:
                image_url["detail"] = detail
            parts.append({"type": "image_url", "image_url": image_url})
        return self.with_message("user", parts)

    def with_streaming(self, stream: bool = True, include_usage: Optional[bool] = None) -> "ChatRequestBuilder":
        """设置是否流式响应。"""
        self._data["stream"] = stream
        if include_usage is not None:
            self._data["stream_options"] = {"include_usage": include_usage}
        return self

    def with_tools(self, *descriptions: str) -> "ChatRequestBuilder":
        """按描述添加函数工具。"""
        self._data["tools"] = [
            {
                "type": "function",
                "function": {
                    "name": f"tool_{i}",
                    "description": description,
                    "parameters": {"type": "object", "properties": {}},
                },
            }
            for i, description in enumerate(descriptions)
        ]
        return self

    def with_field(self, key: str, value: Any) -> "ChatRequestBuilder":
        """设置任意顶层字段。"""
        self._data[key] = value
        return self

    def build(self) -> dict[str, Any]:
        """构建请求数据。"""
        return self._data.copy()


class NeleResultBuilder:
    """后端 ``chat-completion-sync`` 响应构建器。"""

    def __init__(self, content: Optional[str] = "Hello"):
        self._data: dict[str, Any] = {"content": content}

    def with_tool_call(self, name: str, arguments: str = "{}", call_id: str = "call_1") -> "NeleResultBuilder":
        """添加工具调用。"""
        self._data.setdefault("tool_calls", []).append(
            {
                "id": call_id,
                "type": "function",
                "function": {"name": name, "arguments": arguments},
            }
        )
        return self

    def with_web_search_results(self, results: Any) -> "NeleResultBuilder":
        """设置网络搜索结果。"""
        self._data["web_search_results"] = results
        return self

    def build(self) -> dict[str, Any]:
        """构建响应数据。"""
        return self._data.copy()
