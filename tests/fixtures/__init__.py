"""测试 fixtures 模块。"""

from .builders import PNG_BYTES, PNG_DATA_URL, ChatRequestBuilder, NeleResultBuilder
from .mocks import MockNeleBackend, UploadPathSequence, json_response

__all__ = [
    "PNG_BYTES",
    "PNG_DATA_URL",
    "ChatRequestBuilder",
    "NeleResultBuilder",
    "MockNeleBackend",
    "UploadPathSequence",
    "json_response",
]
