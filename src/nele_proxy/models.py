"""数据模型定义模块。

本模块定义API请求和响应的Pydantic模型，用于数据验证和序列化。

入站请求中的多态字段（``content`` 既可以是字符串也可以是内容片段数组，
``image_url`` 可能不是对象等）在这里统一收敛为确定的类型，
后续的转换逻辑只处理规范化后的结构。
"""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, field_validator


def _drop_non_objects(v: Any) -> Any:
    if isinstance(v, list):
        return [item for item in v if isinstance(item, dict)]
    return v


def _only_json_bool(v: Any) -> Any:
    # 只有 JSON true/false 生效，"yes"、1 等视为未提供
    return v if isinstance(v, bool) else None


# --- Inbound Models (OpenAI 兼容请求模型) ---

class ImageURL(BaseModel):
    """``image_url`` 内容片段中的图片引用。"""
    model_config = {"extra": "allow"}

    url: Optional[str] = Field(default=None, description="data URL 或 http(s) URL")
    detail: Optional[str] = Field(default=None, description="图片细节级别（low/high/auto）")

    @field_validator("detail", mode="before")
    @classmethod
    def ignore_non_string_detail(cls, v: Any) -> Any:
        return v if isinstance(v, str) else None


class ContentPart(BaseModel):
    """多模态消息中的单个内容片段。

    支持的类型（不区分大小写）：``text``、``input_text``、``image_url``。
    其他类型会被保留但在转换时忽略。
    """
    model_config = {"extra": "allow"}

    type: str = Field(default="", description="片段类型")
    text: Optional[str] = Field(default=None, description="文本内容（text/input_text）")
    image_url: Optional[ImageURL] = Field(default=None, description="图片引用（image_url）")

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("image_url", mode="before")
    @classmethod
    def ignore_non_object_image_url(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else None

    @property
    def is_text(self) -> bool:
        return self.type.lower() in ("text", "input_text")

    @property
    def is_image(self) -> bool:
        return self.type.lower() == "image_url"

    @property
    def image_reference(self) -> Optional[ImageURL]:
        """返回可用的图片引用；URL 为空时返回 None。"""
        if self.image_url is None or not (self.image_url.url or "").strip():
            return None
        return self.image_url


class Message(BaseModel):
    """聊天消息模型。

    :param role: 消息角色（system/user/assistant/tool/function/developer）
    :param name: 可选的发送者名称
    :param content: 字符串或内容片段数组
    :param attachments: 已存在的后端附件（原样透传）
    :param results: 已存在的结果数据（原样透传）
    """
    model_config = {"extra": "allow"}

    role: Optional[str] = Field(default=None, description="消息角色")
    name: Optional[str] = Field(default=None, description="发送者名称")
    content: Union[str, List[ContentPart], None] = Field(default=None, description="消息内容")
    attachments: Optional[Any] = Field(default=None, description="已有附件（透传）")
    results: Optional[Any] = Field(default=None, description="已有结果（透传）")

    @field_validator("content", mode="before")
    @classmethod
    def drop_non_object_parts(cls, v: Any) -> Any:
        return _drop_non_objects(v)

    def has_field(self, name: str) -> bool:
        """字段是否由客户端显式提供（包括显式的 null）。"""
        return name in self.model_fields_set

    @property
    def image_part_count(self) -> int:
        if not isinstance(self.content, list):
            return 0
        return sum(1 for part in self.content if part.is_image)


class StreamOptions(BaseModel):
    """流式响应选项。"""
    include_usage: Optional[bool] = Field(default=None, description="是否在流末尾附加 usage 块")

    @field_validator("include_usage", mode="before")
    @classmethod
    def ignore_non_bool_include_usage(cls, v: Any) -> Any:
        return _only_json_bool(v)


class CompletionOptions(BaseModel):
    """聊天补全与 responses 接口共用的请求字段。

    可选标量仅在客户端显式提供时才会被复制到后端请求中，
    通过 :meth:`has_field` 判断是否提供。
    """

    model: Optional[str] = Field(default=None, description="模型名称，为空时使用默认模型")
    max_tokens: Optional[int] = Field(default=None, description="最大token数")
    temperature: Optional[Union[int, float]] = Field(default=None, description="采样温度")
    tools: Optional[Any] = Field(default=None, description="工具定义（数组时会裁剪描述长度）")
    tool_choice: Optional[Any] = Field(default=None, description="工具选择策略")
    stream: Optional[bool] = Field(default=None, description="是否流式响应")
    documentCollectionId: Optional[str] = Field(default=None, description="知识库集合 ID")
    web_search: Optional[Any] = Field(default=None, description="网络搜索选项（与知识库互斥）")
    modelConfiguration: Optional[Any] = Field(default=None, description="后端模型配置")
    reasoning_effort: Optional[Any] = Field(default=None, description="推理强度覆盖值")

    @field_validator("stream", mode="before")
    @classmethod
    def ignore_non_bool_stream(cls, v: Any) -> Any:
        return _only_json_bool(v)

    def has_field(self, name: str) -> bool:
        """字段是否由客户端显式提供（包括显式的 null）。"""
        return name in self.model_fields_set

    def requested_max_tokens(self) -> tuple[bool, Optional[int]]:
        """返回 (是否提供, 值) 形式的最大token数。"""
        return self.has_field("max_tokens"), self.max_tokens

    @property
    def stream_requested(self) -> bool:
        return self.stream is True

    @property
    def has_web_search(self) -> bool:
        return self.web_search is not None

    @property
    def tool_count(self) -> int:
        return len(self.tools) if isinstance(self.tools, list) else 0


class ChatRequest(CompletionOptions):
    """聊天补全请求模型（OpenAI 兼容）。

    .. seealso::
       :class:`Message` - 消息对象
    """

    messages: Optional[List[Message]] = Field(default=None, description="消息列表")
    stream_options: Optional[StreamOptions] = Field(default=None, description="流式响应选项")

    @field_validator("messages", mode="before")
    @classmethod
    def drop_non_object_messages(cls, v: Any) -> Any:
        return _drop_non_objects(v)

    @field_validator("stream_options", mode="before")
    @classmethod
    def ignore_non_object_stream_options(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else None

    @property
    def include_usage(self) -> bool:
        return self.stream_options is not None and self.stream_options.include_usage is True


class ResponsesRequest(CompletionOptions):
    """``/v1/responses`` 请求模型。

    ``input`` 与 ``messages`` 的形状较为多样，由
    :func:`nele_proxy.services.responses.build_responses_messages` 负责校验和展开。
    """

    input: Optional[Any] = Field(default=None, description="字符串、字符串数组或消息对象数组")
    messages: Optional[Any] = Field(default=None, description="消息数组")
    max_output_tokens: Optional[int] = Field(default=None, description="最大输出token数（覆盖 max_tokens）")

    def requested_max_tokens(self) -> tuple[bool, Optional[int]]:
        if self.has_field("max_output_tokens"):
            return True, self.max_output_tokens
        return super().requested_max_tokens()


class ImageGenerationRequest(BaseModel):
    """``/v1/images/generations`` 请求模型。"""

    prompt: Optional[str] = Field(default=None, description="图片描述")
    model: Optional[str] = Field(default=None, description="图片生成模型")
    response_format: Optional[str] = Field(default=None, description="仅支持 url")
    n: Optional[Any] = Field(default=None, description="生成数量（仅支持 1）")
    quality: Optional[str] = Field(default=None, description="图片质量")
    size: Optional[str] = Field(default=None, description="图片尺寸")
    style: Optional[str] = Field(default=None, description="图片风格")
    background: Optional[str] = Field(default=None, description="背景设置")


# --- Backend Models (Nele 后端模型) ---

class Attachment(BaseModel):
    """发送给后端的图片附件引用。

    ``id`` 与 ``content`` 均为后端返回的文件路径。
    """
    type: str = Field(default="image", description="附件类型")
    id: str = Field(..., description="后端文件路径（同时作为去重标识）")
    name: str = Field(..., description="文件名")
    content: str = Field(..., description="后端文件路径引用")
    detail: Optional[str] = Field(default=None, description="来自原始片段的图片细节级别")


class NeleChatResult(BaseModel):
    """后端 ``chat-completion-sync`` 的响应体。"""
    model_config = {"extra": "allow"}

    content: Optional[str] = Field(default=None, description="回复文本")
    tool_calls: Optional[Any] = Field(default=None, description="工具调用列表")
    web_search_results: Optional[Any] = Field(default=None, description="网络搜索结果")


# --- Downstream Models (下游 OpenAI 兼容模型) ---

class DownstreamModel(BaseModel):
    """下游模型定义（OpenAI 兼容），用于 ``/v1/models`` 端点。"""
    id: str = Field(..., description="模型唯一标识符")
    object: str = Field(default="model", description="对象类型")
    created: int = Field(..., description="创建时间戳（Unix 时间）")
    owned_by: str = Field(default="nele", description="模型所有者")


class DownstreamModelsResponse(BaseModel):
    """下游模型列表响应（OpenAI 兼容）。"""
    object: str = Field(default="list", description="对象类型")
    data: List[DownstreamModel] = Field(..., description="模型列表")


class ErrorDetail(BaseModel):
    """API 错误详情。"""
    message: str = Field(..., description="错误消息")
    type: str = Field(..., description="错误类型")
    code: str = Field(..., description="错误代码")


class ErrorResponse(BaseModel):
    """API 错误响应。"""
    error: ErrorDetail = Field(..., description="错误详情")
