"""消息格式转换模块。

负责将 OpenAI 格式的消息转换为 Nele 后端格式。
处理角色映射、多模态内容扁平化以及图片附件上传。
"""

from typing import Any

from ...image_uploader import ImageUploader
from ...logger import get_logger
from ...models import ContentPart, Message

logger = get_logger(__name__)

# 后端不支持的角色映射（键为小写）
ROLE_MAP = {
    "developer": "system",
    "tool": "assistant",
    "function": "assistant",
}


def normalize_role(role: str | None) -> str | None:
    """将 OpenAI 角色映射为后端支持的角色。

    - ``developer`` → ``system``
    - ``tool`` / ``function`` → ``assistant``
    - 其他角色保持不变

    匹配不区分大小写。
    """
    if not role or not role.strip():
        return role

    mapped = ROLE_MAP.get(role.lower(), role)
    if mapped != role:
        logger.info("Mapped role {} to {}", role, mapped)
    return mapped


def flatten_text(parts: list[ContentPart]) -> str:
    """按顺序拼接 ``text``/``input_text`` 片段的文本，以换行分隔。"""
    return "\n".join(
        part.text or ""
        for part in parts
        if part.is_text and "text" in part.model_fields_set
    )


async def convert_message(message: Message, uploader: ImageUploader | None) -> dict[str, Any]:
    """转换单条消息。

    输出字段顺序固定为 ``role``、``name``、``content``、``attachments``、``results``。
    消息已有的 ``attachments`` 追加在上传得到的图片附件之后，第一个附件始终对应第一个图片片段。

    :param message: OpenAI 格式的消息
    :param uploader: 图片上传器，消息包含图片片段时必须提供
    :return: 后端格式的消息字典
    """
    converted: dict[str, Any] = {}

    role = normalize_role(message.role)
    if role and role.strip():
        converted["role"] = role
    if message.has_field("name"):
        converted["name"] = message.name

    attachments: list[Any] = []

    if message.has_field("content"):
        content = message.content
        if isinstance(content, list):
            for part in content:
                if not part.is_image:
                    continue
                image_url = part.image_reference
                if image_url is None:
                    continue
                if uploader is None:
                    raise RuntimeError("Image parts require an ImageUploader")
                attachment = await uploader.upload(image_url)
                attachments.append(attachment.model_dump(exclude_none=True))
            converted["content"] = flatten_text(content)
        else:
            converted["content"] = content

    if isinstance(message.attachments, list):
        attachments.extend(message.attachments)

    if attachments:
        converted["attachments"] = attachments
        logger.info(
            "Added attachments to message: role={}, attachments={}",
            message.role,
            len(attachments),
        )

    if message.has_field("results"):
        converted["results"] = message.results

    return converted


async def convert_messages(messages: list[Message], uploader: ImageUploader | None = None) -> list[dict[str, Any]]:
    """转换消息列表。

    图片片段按照消息和片段在数组中的顺序逐个上传，任何失败都会中止整个转换。

    :param messages: OpenAI 格式的消息列表
    :param uploader: 图片上传器
    :return: 后端格式的消息列表

    .. code-block:: python

       messages = [
           Message(role="developer", content="Be terse."),
           Message(role="user", content=[
               {"type": "text", "text": "What is this?"},
               {"type": "image_url", "image_url": {"url": "data:image/png;base64,..."}},
           ]),
       ]

       result = await convert_messages(messages, uploader)
       # [{"role": "system", "content": "Be terse."},
       #  {"role": "user", "content": "What is this?",
       #   "attachments": [{"type": "image", "id": "<path>", "name": "image.png", "content": "<path>"}]}]
    """
    return [await convert_message(message, uploader) for message in messages]


def role_summary(messages: list[Message] | None) -> str:
    """以逗号分隔的入站角色列表，用于日志。"""
    if not messages:
        return ""
    return ", ".join(message.role or "" for message in messages)
