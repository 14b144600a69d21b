"""Nele OpenAI Proxy 测试套件。

测试分层：
- unit/: 单元测试 - 快速、隔离，后端通过 ``httpx.MockTransport`` 模拟
- integration/: 集成测试 - 通过 TestClient 调用 HTTP 端点

使用方法：
    pytest                          # 运行所有测试
    pytest tests/unit/ -m unit      # 仅单元测试
    pytest -m integration           # 仅集成测试
"""
