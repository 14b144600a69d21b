"""UUID 生成工具模块（使用 fastuuid 优化性能）"""

from fastuuid import uuid4


def generate_uuid_hex() -> str:
    """生成不带连字符的 UUID v4 字符串

    使用 fastuuid 替代标准库 uuid，性能提升约 3-5 倍

    Returns:
        str: 32 位十六进制字符串
    """
    return uuid4().hex


def generate_completion_id() -> str:
    """生成 completion ID（OpenAI 格式）"""
    return f"chatcmpl-{generate_uuid_hex()}"


def generate_response_id() -> str:
    """生成 responses 接口的响应 ID"""
    return f"resp_{generate_uuid_hex()}"


def generate_message_id() -> str:
    """生成 responses 接口输出消息的 ID"""
    return f"msg_{generate_uuid_hex()}"
