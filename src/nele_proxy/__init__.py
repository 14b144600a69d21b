"""Nele OpenAI Proxy - Nele 聊天后端的 OpenAI 兼容网关。

本包提供了一个FastAPI应用，使任何 OpenAI 客户端无需修改即可访问 Nele 后端，
支持流式（模拟）和非流式响应、多模态输入（文本和图片）、工具调用、
Responses API、语音转写、图片生成以及知识库接口透传。

主要模块：
    - app: FastAPI应用实例和配置
    - routes / knowledge: API路由定义
    - chat_service: 聊天请求编排
    - auth_service: 凭证解析
    - image_uploader: 图片附件处理
    - nele_client: 后端客户端
    - config: 应用配置管理
    - logger: 日志配置
    - models: 数据模型定义
"""

__version__ = "0"
