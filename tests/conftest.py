"""全局测试配置和 fixtures。

本模块提供所有测试共享的 fixtures 和配置。
"""

import os
import sys

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

# 在导入任何模块之前设置必需的环境变量
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("VERBOSE_LOGGING", "false")

# 确保未安装包时也可以导入 nele_proxy
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from nele_proxy.config import AppConfig, get_settings
from tests.fixtures import MockNeleBackend


@pytest.fixture(autouse=True)
def reset_lru_cache(monkeypatch):
    """自动重置配置缓存并清除凭证相关的环境变量。

    确保每个测试都有干净的配置状态。
    """
    monkeypatch.delenv("NELE_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> AppConfig:
    """当前测试使用的配置单例，可通过 monkeypatch 修改字段。"""
    return get_settings()


@pytest.fixture
def api_key() -> str:
    """模拟 Nele API 密钥。"""
    return "nele_test_key_12345"


@pytest.fixture
def auth_headers(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}


@pytest.fixture
def backend() -> MockNeleBackend:
    """模拟的 Nele 后端。"""
    return MockNeleBackend()


@pytest.fixture
def app(backend: MockNeleBackend) -> FastAPI:
    """挂载了模拟后端客户端的应用实例。"""
    from nele_proxy.app import create_app

    application = create_app()
    application.state.nele_client = backend.nele_client()
    application.state.download_client = backend.download_client()
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """测试客户端。"""
    return TestClient(app)
