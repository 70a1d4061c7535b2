"""
API 路由汇总

将所有子路由注册到主路由器，统一对外暴露。

路由模块说明：
- health.py    : 健康检查接口
- auth.py      : 登录、当前用户
- users.py     : 用户管理
- modules.py   : 模块管理与收藏
- chat.py      : 按模块的多轮对话（检索增强）
- knowledge.py : 知识库文件上传、统计、重建索引
- workflows.py : 多步检索增强工作流
- clients.py   : 客户档案
- providers.py : LLM 提供商 API Key 配置
- ai.py        : Claude / Perplexity 透传
"""

from fastapi import APIRouter

from app.api.routes import (
    ai,
    auth,
    chat,
    clients,
    health,
    knowledge,
    modules,
    providers,
    users,
    workflows,
)

# 主路由器，包含所有 API 端点
api_router = APIRouter()

# 注册各子路由，tags 用于 API 文档分组
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(users.router, tags=["users"])
api_router.include_router(modules.router, tags=["modules"])
api_router.include_router(chat.router, tags=["chat"])
api_router.include_router(knowledge.router, tags=["knowledge"])
api_router.include_router(workflows.router, tags=["workflows"])
api_router.include_router(clients.router, tags=["clients"])
api_router.include_router(providers.router, tags=["providers"])
api_router.include_router(ai.router, tags=["ai"])
