"""ASGI应用入口模块。

本模块导出FastAPI应用实例，供ASGI服务器（如Granian、Uvicorn等）使用。
生命周期管理器负责创建和关闭连接池化的 HTTP 客户端。

Example::

    # 使用Granian运行
    granian --interface asgi nele_proxy.asgi:app --host 0.0.0.0 --port 5000

    # 使用Granian运行（带workers）
    granian --interface asgi nele_proxy.asgi:app --host 0.0.0.0 --port 5000 --workers 4

    # 使用Uvicorn运行
    uvicorn nele_proxy.asgi:app --host 0.0.0.0 --port 5000
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from .app import create_app as _create_app
from .config import get_settings
from .logger import get_logger
from .nele_client import NeleClient, create_backend_http_client, create_download_http_client

logger = get_logger(__name__)
settings = get_settings()


async def initialize_services(app: FastAPI) -> None:
    """创建应用级的连接池化客户端并挂载到 ``app.state``。

    - ``nele_client``：访问 Nele 后端（基础地址 ``NELE_BASE_URL``）
    - ``download_client``：下载 ``image_url`` 图片
    """
    logger.info("Initializing application services...")

    app.state.nele_client = NeleClient(create_backend_http_client(settings))
    app.state.download_client = create_download_http_client(settings)

    logger.info(
        "Application services initialized successfully: env={}, host={}, port={}, nele_base_url={}",
        settings.app_env,
        settings.host,
        settings.port,
        settings.nele_base_url,
    )


async def shutdown_services(app: FastAPI) -> None:
    """关闭连接池化客户端。"""
    logger.info("Shutting down application services...")

    nele_client = getattr(app.state, "nele_client", None)
    if nele_client is not None:
        await nele_client.aclose()
        app.state.nele_client = None

    download_client = getattr(app.state, "download_client", None)
    if download_client is not None:
        await download_client.aclose()
        app.state.download_client = None

    logger.info("Application services shut down successfully")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """FastAPI应用生命周期管理器。

    在应用启动时创建客户端，在应用关闭时释放。

    :param app: FastAPI应用实例
    :yield: None
    """
    await initialize_services(app)

    yield

    await shutdown_services(app)


def create_app_with_lifespan() -> FastAPI:
    """创建带有生命周期管理的 FastAPI 应用实例。

    :return: 配置完成的 FastAPI 应用实例
    """
    app = _create_app()
    app.router.lifespan_context = lifespan
    return app


app = create_app_with_lifespan()

__all__ = ["app"]
