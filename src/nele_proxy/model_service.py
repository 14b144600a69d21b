"""模型服务模块。

本模块负责从后端获取模型目录，并将其展平为 OpenAI 兼容的模型列表。
后端目录是一个不透明的JSON对象，其中 ``models``、``team_models``、
``image_generators`` 三个数组中带有非空 ``id`` 的条目会被列出。
目录不做缓存，每次请求都重新获取。
"""

import time
from typing import Any, Iterator

from fastapi import Request

from .exceptions import ModelNotFoundError
from .logger import get_logger
from .models import DownstreamModel, DownstreamModelsResponse
from .nele_client import get_nele_client

logger = get_logger(__name__)

CATALOG_SECTIONS = ("models", "team_models", "image_generators")


def iter_catalog_ids(catalog: dict[str, Any]) -> Iterator[str]:
    """按目录顺序产出所有有效的模型 ID。"""
    for section in CATALOG_SECTIONS:
        entries = catalog.get(section)
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            model_id = entry.get("id")
            if isinstance(model_id, str) and model_id.strip():
                yield model_id


def flatten_models(catalog: dict[str, Any], created: int | None = None) -> DownstreamModelsResponse:
    """将后端模型目录展平为 OpenAI 模型列表。

    :param catalog: 后端 ``GET models`` 的响应
    :param created: 所有模型共用的创建时间戳，默认当前时间
    :return: 模型列表响应
    """
    created = created if created is not None else int(time.time())
    return DownstreamModelsResponse(
        data=[DownstreamModel(id=model_id, created=created) for model_id in iter_catalog_ids(catalog)]
    )


def find_model(catalog: dict[str, Any], model_id: str, created: int | None = None) -> DownstreamModel | None:
    """在目录中查找模型（ID 不区分大小写）。

    :return: 使用请求中的 ID 构造的模型对象，未找到时返回 None
    """
    target = model_id.lower()
    for candidate in iter_catalog_ids(catalog):
        if candidate.lower() == target:
            return DownstreamModel(
                id=model_id,
                created=created if created is not None else int(time.time()),
            )
    return None


async def fetch_catalog(request: Request, api_key: str) -> dict[str, Any]:
    """从后端获取模型目录，转发客户端的 ``Accept-Language``。"""
    client = get_nele_client(request)
    return await client.get_models(api_key, request.headers.get("Accept-Language"))


async def get_models(request: Request, api_key: str) -> DownstreamModelsResponse:
    """获取 OpenAI 格式的模型列表。"""
    catalog = await fetch_catalog(request, api_key)
    models = flatten_models(catalog)
    logger.info("Models listed: count={}", len(models.data))
    return models


async def get_model(request: Request, api_key: str, model_id: str) -> DownstreamModel:
    """获取单个模型。

    :raises ModelNotFoundError: 目录中不存在该模型
    """
    catalog = await fetch_catalog(request, api_key)
    model = find_model(catalog, model_id)
    if model is None:
        logger.warning("Model not found: model_id={}", model_id)
        raise ModelNotFoundError()
    return model
