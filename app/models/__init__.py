"""
数据模型层 (ORM Models)

数据模型关系图：
    User (用户)
       │
       ├── UserFavorite >── Module (模块)
       │
       ├── ChatSession (聊天会话，按模块 slug)
       │      └── ChatMessage
       │
       └── Client (客户档案)

    KnowledgeFile (知识文件，按模块 slug)
       └── Chunk (文本片段 ↔ Qdrant 向量)

    Provider (LLM 提供商 API Key)
"""

from app.models.chat import ChatMessage, ChatSession
from app.models.chunk import Chunk
from app.models.client import Client
from app.models.knowledge_file import KnowledgeFile
from app.models.module import Module, UserFavorite
from app.models.provider import Provider
from app.models.user import User

__all__ = [
    "ChatMessage",
    "ChatSession",
    "Chunk",
    "Client",
    "KnowledgeFile",
    "Module",
    "Provider",
    "User",
    "UserFavorite",
]
