"""API路由模块。

本模块定义所有 ``/v1`` 下的 OpenAI 兼容端点：模型列表、聊天补全、
Responses API、语音转写和图片生成。知识库透传端点见 :mod:`knowledge`。

请求体统一由 :func:`parse_json_body` 解析；凭证在请求体解析之后、
任何后端调用之前解析。
"""

from typing import TypeVar

import orjson
from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, ValidationError

from .auth_service import require_api_key
from .chat_service import json_response, process_chat_completion, process_responses
from .exceptions import InvalidJSONError, InvalidRequestError
from .knowledge import router as knowledge_router
from .logger import get_logger
from .media_service import generate_image, transcribe
from .model_service import get_model, get_models
from .models import ChatRequest, ImageGenerationRequest, ResponsesRequest

logger = get_logger(__name__)
router = APIRouter()
router.include_router(knowledge_router)

RequestModel = TypeVar("RequestModel", bound=BaseModel)


async def parse_json_body(request: Request, model_cls: type[RequestModel]) -> RequestModel:
    """解析并校验JSON请求体。

    :param request: FastAPI 请求对象
    :param model_cls: 请求模型类
    :return: 校验后的请求模型
    :raises InvalidJSONError: 请求体不是JSON对象，或不符合请求模型
    """
    body = await request.body()
    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError as e:
        logger.warning("Invalid JSON body: path={}, error={}", request.url.path, str(e))
        raise InvalidJSONError() from e

    if not isinstance(data, dict):
        logger.warning("JSON body is not an object: path={}", request.url.path)
        raise InvalidJSONError()

    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        logger.warning(
            "Request body failed validation: path={}, errors={}",
            request.url.path,
            e.error_count(),
        )
        raise InvalidJSONError() from e


@router.get("/models")
async def list_models(request: Request) -> Response:
    """列出所有可用的模型。

    从后端模型目录展平 ``models``、``team_models``、``image_generators``。

    :param request: FastAPI 请求对象
    :return: ``{"object": "list", "data": [...]}``
    """
    api_key = require_api_key(request.headers)
    models = await get_models(request, api_key)
    return Response(content=models.model_dump_json(), media_type="application/json")


@router.get("/models/{model_id}")
async def retrieve_model(request: Request, model_id: str) -> Response:
    """获取单个模型（ID 不区分大小写），不存在时返回 404 ``model_not_found``。"""
    api_key = require_api_key(request.headers)
    model = await get_model(request, api_key, model_id)
    return Response(content=model.model_dump_json(), media_type="application/json")


@router.post("/chat/completions", response_model=None)
async def chat_completions(request: Request) -> Response:
    """处理聊天补全请求（OpenAI 兼容）。

    支持流式和非流式两种响应模式。后端只有同步接口，流式响应是在拿到完整结果后模拟的。

    :param request: FastAPI 请求对象
    :return: JSON 响应或 SSE 流式响应

    .. note::
       凭证可以通过 ``Authorization: Bearer <key>`` 或 ``X-Api-Key`` 提供，
       也可以在服务端配置 ``API_KEY`` / ``NELE_API_KEY``。
    """
    chat_request = await parse_json_body(request, ChatRequest)
    api_key = require_api_key(request.headers)
    return await process_chat_completion(request, chat_request, api_key)


@router.post("/responses", response_model=None)
async def responses(request: Request) -> Response:
    """处理 Responses API 请求（仅非流式）。"""
    responses_request = await parse_json_body(request, ResponsesRequest)
    if responses_request.stream_requested:
        raise InvalidRequestError(
            "Streaming is not supported for /v1/responses.", "streaming_not_supported"
        )

    api_key = require_api_key(request.headers)
    return await process_responses(request, responses_request, api_key)


@router.post("/audio/transcriptions", response_model=None)
async def audio_transcriptions(request: Request) -> Response:
    """处理语音转写请求（multipart 表单，必须包含 ``file`` 字段）。"""
    api_key = require_api_key(request.headers)
    return json_response(await transcribe(request, api_key))


@router.post("/images/generations", response_model=None)
async def images_generations(request: Request) -> Response:
    """处理图片生成请求（仅支持 ``response_format=url`` 和 ``n=1``）。"""
    body = await parse_json_body(request, ImageGenerationRequest)
    api_key = require_api_key(request.headers)
    return json_response(await generate_image(request, body, api_key))
