"""FastAPI应用主模块。

本模块负责创建和配置FastAPI应用实例，包括中间件、路由和异常处理。
"""

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .auth_service import get_configured_api_key
from .config import get_settings
from .exceptions import ProxyError, UpstreamResponseError
from .logger import configure_logging, get_logger
from .routes import router
from .utils.error_handler import error_response, proxy_error_response, upstream_response

settings = get_settings()
configure_logging(settings.log_level, use_colors=settings.verbose_logging, verbose=settings.verbose_logging)
logger = get_logger(__name__)


def create_app() -> FastAPI:
    """创建并配置FastAPI应用实例。

    配置包括CORS中间件、API路由和异常处理。

    :return: 配置完成的FastAPI应用实例

    .. note::
       当VERBOSE_LOGGING=true时会启用API文档（/docs和/redoc）。
       生命周期管理器需要在asgi.py中单独配置。
    """
    app = FastAPI(
        title="Nele OpenAI Proxy",
        description="OpenAI-compatible gateway for the Nele chat backend",
        version="0",
        docs_url="/docs" if settings.verbose_logging else None,
        redoc_url="/redoc" if settings.verbose_logging else None,
        lifespan=None,  # 生命周期管理器将在asgi.py中配置
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/v1")

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError) -> Response:
        """网关错误处理器，返回 OpenAI 风格的错误信封。"""
        logger.info(
            "Request rejected: path={}, status_code={}, code={}, message={}",
            request.url.path,
            exc.status_code,
            exc.code,
            exc.message,
        )
        return proxy_error_response(exc)

    @app.exception_handler(UpstreamResponseError)
    async def upstream_error_handler(request: Request, exc: UpstreamResponseError) -> Response:
        """后端错误处理器，原样转发后端响应。"""
        logger.warning(
            "Forwarding upstream error: path={}, status_code={}, reason={}",
            request.url.path,
            exc.status_code,
            exc.reason,
        )
        return upstream_response(exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> Response:
        """全局异常处理器。

        :param request: FastAPI请求对象
        :param exc: 捕获的异常
        :return: 500 ``server_error``/``internal_error`` 错误响应
        """
        logger.error(
            "Unhandled exception: path={}, method={}, error_type={}, error={}",
            request.url.path,
            request.method,
            type(exc).__name__,
            str(exc),
        )
        message = str(exc) if settings.verbose_logging else "An internal server error occurred."
        return error_response(500, message, "server_error", "internal_error")

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        """根路径端点。

        :return: 运行状态文本；未配置静态密钥时提示 ``API not provided``
        """
        if get_configured_api_key():
            return "Nele OpenAI Proxy running."
        return "API not provided"

    logger.info(
        "Application created: log_level={}, verbose_logging={}, nele_base_url={}",
        settings.log_level,
        settings.verbose_logging,
        settings.nele_base_url,
    )

    return app


app = create_app()
