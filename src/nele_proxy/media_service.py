"""语音转写与图片生成服务模块。

- ``/v1/audio/transcriptions``：转发 multipart 音频到后端 ``transcription``
- ``/v1/images/generations``：校验参数并调用后端 ``image``
"""

import time
from typing import Any

from fastapi import Request
from starlette.datastructures import UploadFile

from .exceptions import InvalidRequestError
from .logger import get_logger
from .models import ImageGenerationRequest
from .nele_client import get_nele_client

logger = get_logger(__name__)

DEFAULT_TRANSCRIPTION_MODEL = "azure-whisper"
TRANSCRIPTION_MODEL_MAP = {"whisper-1": DEFAULT_TRANSCRIPTION_MODEL}

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def map_transcription_model(model: str | None) -> str:
    """``whisper-1`` 或空值映射为 ``azure-whisper``，其他模型原样使用。"""
    if not model or not model.strip():
        return DEFAULT_TRANSCRIPTION_MODEL
    return TRANSCRIPTION_MODEL_MAP.get(model, model)


def default_image_quality(model: str) -> str:
    return "auto" if model == "gpt-image-1" else "standard"


def default_image_size(model: str) -> str:
    return "auto" if model == "gpt-image-1" else "1024x1024"


def _form_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


async def transcribe(request: Request, api_key: str) -> dict[str, str]:
    """处理语音转写请求。

    :param request: multipart 表单请求，必须包含 ``file`` 字段
    :param api_key: 已解析的凭证
    :return: ``{"text": ...}``
    :raises InvalidRequestError: 不是表单请求（``invalid_content_type``）
        或缺少文件（``missing_file``）
    """
    content_type = request.headers.get("content-type", "").lower()
    if not content_type.startswith(FORM_CONTENT_TYPES):
        raise InvalidRequestError("Expected multipart form data.", "invalid_content_type")

    form = await request.form()
    try:
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise InvalidRequestError("Missing form field: file.", "missing_file")

        model = map_transcription_model(_form_str(form.get("model")))
        language = _form_str(form.get("language")).strip() or None
        data = await upload.read()
        logger.info(
            "Transcription request received: model={}, language={}, file_name={}, bytes={}",
            model,
            language,
            upload.filename,
            len(data),
        )

        result = await get_nele_client(request).transcribe(
            upload.filename or "audio",
            data,
            upload.content_type,
            model,
            language,
            api_key,
        )
    finally:
        await form.close()

    text = result.get("text")
    return {"text": text if isinstance(text, str) else ""}


def validate_image_request(body: ImageGenerationRequest) -> None:
    """校验图片生成请求。

    :raises InvalidRequestError: 缺少字段、不支持的 ``response_format`` 或 ``n``
    """
    if not (body.prompt and body.prompt.strip()) or not (body.model and body.model.strip()):
        raise InvalidRequestError("Fields 'prompt' and 'model' are required.", "missing_fields")

    if body.response_format and body.response_format.strip() and body.response_format.lower() != "url":
        raise InvalidRequestError("Only response_format=url is supported.", "unsupported_response_format")

    n = body.n
    if isinstance(n, (int, float)) and not isinstance(n, bool) and n > 1:
        raise InvalidRequestError("Only n=1 is supported.", "unsupported_n")


def build_image_payload(body: ImageGenerationRequest) -> dict[str, Any]:
    """构造后端 ``image`` 请求体。

    ``quality``/``size`` 未提供时：``gpt-image-1`` 使用 ``auto``/``auto``，
    其他模型使用 ``standard``/``1024x1024``。``style``、``background`` 仅在提供时转发。
    """
    model = body.model or ""
    model_configuration: dict[str, Any] = {
        "quality": body.quality if body.quality and body.quality.strip() else default_image_quality(model),
        "size": body.size if body.size and body.size.strip() else default_image_size(model),
    }
    if body.style and body.style.strip():
        model_configuration["style"] = body.style
    if body.background and body.background.strip():
        model_configuration["background"] = body.background

    return {
        "model": model,
        "prompt": body.prompt,
        "modelConfiguration": model_configuration,
    }


async def generate_image(request: Request, body: ImageGenerationRequest, api_key: str) -> dict[str, Any]:
    """处理图片生成请求。

    :return: ``{"created": ..., "data": [{"url": ..., "revised_prompt"?: ...}]}``
    """
    validate_image_request(body)
    payload = build_image_payload(body)
    logger.info(
        "Image generation request received: model={}, model_configuration={}",
        payload["model"],
        payload["modelConfiguration"],
    )

    result = await get_nele_client(request).generate_image(payload, api_key)

    url = result.get("url")
    item: dict[str, Any] = {"url": url if isinstance(url, str) else ""}
    revised_prompt = result.get("revisedPrompt")
    if isinstance(revised_prompt, str) and revised_prompt.strip():
        item["revised_prompt"] = revised_prompt

    return {"created": int(time.time()), "data": [item]}
