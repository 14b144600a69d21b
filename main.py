#!/usr/bin/env python3
"""使用 Granian 启动网关的脚本。

命令行参数的默认值来自 :class:`nele_proxy.config.AppConfig`（环境变量和 .env 文件）。

Example::

    # 使用默认配置启动（0.0.0.0:5000）
    python main.py

    # 自定义主机和端口
    python main.py --host 127.0.0.1 --port 8080

    # 使用多个 workers
    python main.py --workers 4
"""

import argparse
import sys
from pathlib import Path

# 添加 src 目录到 Python 路径（未安装包时直接运行）
sys.path.insert(0, str(Path(__file__).parent / "src"))

from granian import Granian
from granian.constants import Interfaces
from granian.log import LogLevels

from nele_proxy.config import get_settings


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="使用 Granian 启动 Nele OpenAI Proxy")
    parser.add_argument("--host", default=settings.host, help=f"服务器监听地址 (默认: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"服务器监听端口 (默认: {settings.port})")
    parser.add_argument("--workers", type=int, default=settings.workers, help=f"工作进程数 (默认: {settings.workers})")
    parser.add_argument(
        "--log-level",
        default=settings.log_level.lower(),
        choices=["critical", "error", "warning", "info", "debug"],
        help=f"Granian 日志级别 (默认: {settings.log_level.lower()})",
    )
    parser.add_argument("--reload", action="store_true", help="启用热重载（开发模式）")
    return parser.parse_args(argv)


def main() -> None:
    """解析命令行参数并启动 Granian 服务器。"""
    args = parse_args()

    print(f"Nele OpenAI Proxy 将在 http://{args.host}:{args.port} 上运行")
    print(f"Workers: {args.workers}, 日志级别: {args.log_level}")

    server = Granian(
        "nele_proxy.asgi:app",
        address=args.host,
        port=args.port,
        interface=Interfaces.ASGI,
        workers=args.workers,
        log_level=LogLevels(args.log_level),
        reload=args.reload,
    )
    server.serve()


if __name__ == "__main__":
    main()
