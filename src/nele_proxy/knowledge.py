"""知识库透传路由模块。

``/v1/knowledge/*`` 下的端点直接转发到后端对应的接口，
查询字符串、请求体（GET/HEAD/DELETE 除外）、Content-Type 和 ``Accept-Language``
会被转发，后端的状态码、Content-Type 和响应体原样返回。
路径参数按单个路径段编码后再拼接到后端路径中。

============================================  ==========================================
网关端点                                        后端接口
============================================  ==========================================
``GET    /knowledge/models``                    ``models``
``GET    /knowledge/collections``               ``document-collections``
``POST   /knowledge/collections``               ``document-collections``
``GET    /knowledge/collections/{c}``           ``document-collections/{c}``
``PUT    /knowledge/collections/{c}``           ``document-collections/{c}``
``DELETE /knowledge/collections/{c}``           ``document-collections/{c}``
``POST   /knowledge/collections/{c}/items``     ``document-collections/{c}/items``
``POST   /knowledge/collections/{c}/from-url``  ``document-collections/{c}/from-url``
``PUT    /knowledge/collections/{c}/embed``     ``document-collections/{c}/embed``
``POST   /knowledge/collections/{c}/search``    ``document-collections/{c}/search``
``GET    /knowledge/items/{i}``                 ``document-collection-items/{i}``
``DELETE /knowledge/items/{i}``                 ``document-collection-items/{i}``
``PUT    /knowledge/items/{i}/embed``           ``document-collection-items/{i}/embed``
============================================  ==========================================
"""

from urllib.parse import quote

from fastapi import APIRouter, Request, Response

from .auth_service import require_api_key
from .logger import get_logger
from .nele_client import get_nele_client

logger = get_logger(__name__)
router = APIRouter(prefix="/knowledge")

BODYLESS_METHODS = ("GET", "HEAD", "DELETE")


async def proxy_request(request: Request, upstream_path: str) -> Response:
    """将请求透传到后端并原样返回后端响应。

    :param request: 入站请求
    :param upstream_path: 后端路径（不含查询字符串）
    :return: 与后端一致的响应
    """
    method = request.method
    path = f"{upstream_path}?{request.url.query}" if request.url.query else upstream_path
    content_type = request.headers.get("content-type")
    logger.info(
        "Knowledge proxy request: method={}, path={}, content_type={}, content_length={}",
        method,
        path,
        content_type or "",
        request.headers.get("content-length", 0),
    )

    api_key = require_api_key(request.headers)

    headers: dict[str, str] = {}
    accept_language = request.headers.get("Accept-Language")
    if accept_language:
        headers["Accept-Language"] = accept_language

    content = None
    if method not in BODYLESS_METHODS:
        content = await request.body()
        if content_type:
            headers["Content-Type"] = content_type

    response = await get_nele_client(request).send(method, path, api_key, content=content, headers=headers)

    if response.is_success:
        logger.debug("Knowledge proxy call completed: path={}, status_code={}", path, response.status_code)
    else:
        logger.warning(
            "Knowledge proxy call failed: path={}, status_code={}, reason={}",
            path,
            response.status_code,
            response.reason_phrase,
        )

    response_headers = {}
    upstream_content_type = response.headers.get("content-type")
    if upstream_content_type:
        response_headers["Content-Type"] = upstream_content_type
    return Response(content=response.content, status_code=response.status_code, headers=response_headers)


@router.get("/models")
async def knowledge_models(request: Request) -> Response:
    return await proxy_request(request, "models")


@router.get("/collections")
async def list_collections(request: Request) -> Response:
    return await proxy_request(request, "document-collections")


@router.post("/collections")
async def create_collection(request: Request) -> Response:
    return await proxy_request(request, "document-collections")


@router.get("/collections/{collection}")
async def get_collection(request: Request, collection: str) -> Response:
    return await proxy_request(request, f"document-collections/{quote(collection, safe='')}")


@router.put("/collections/{collection}")
async def update_collection(request: Request, collection: str) -> Response:
    return await proxy_request(request, f"document-collections/{quote(collection, safe='')}")


@router.delete("/collections/{collection}")
async def delete_collection(request: Request, collection: str) -> Response:
    return await proxy_request(request, f"document-collections/{quote(collection, safe='')}")


@router.post("/collections/{collection}/items")
async def add_collection_item(request: Request, collection: str) -> Response:
    return await proxy_request(request, f"document-collections/{quote(collection, safe='')}/items")


@router.post("/collections/{collection}/from-url")
async def add_collection_item_from_url(request: Request, collection: str) -> Response:
    return await proxy_request(request, f"document-collections/{quote(collection, safe='')}/from-url")


@router.put("/collections/{collection}/embed")
async def embed_collection(request: Request, collection: str) -> Response:
    return await proxy_request(request, f"document-collections/{quote(collection, safe='')}/embed")


@router.post("/collections/{collection}/search")
async def search_collection(request: Request, collection: str) -> Response:
    return await proxy_request(request, f"document-collections/{quote(collection, safe='')}/search")


@router.get("/items/{item}")
async def get_item(request: Request, item: str) -> Response:
    return await proxy_request(request, f"document-collection-items/{quote(item, safe='')}")


@router.delete("/items/{item}")
async def delete_item(request: Request, item: str) -> Response:
    return await proxy_request(request, f"document-collection-items/{quote(item, safe='')}")


@router.put("/items/{item}/embed")
async def embed_item(request: Request, item: str) -> Response:
    return await proxy_request(request, f"document-collection-items/{quote(item, safe='')}/embed")
