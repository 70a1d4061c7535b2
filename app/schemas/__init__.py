"""
数据模式层 (Schemas)

使用 Pydantic 定义 API 的请求和响应模型：
- 自动数据验证
- 自动生成 OpenAPI 文档
- 线上格式统一为 camelCase（见 CamelModel）
"""

from app.schemas.base import CamelModel, MessageResponse, TimestampedResponse
from app.schemas.chat import ChatMessageResponse, ChatSessionResponse, SendMessageRequest
from app.schemas.client import (
    ClientCreate,
    ClientPreferences,
    ClientResponse,
    ClientUpdate,
    VoiceAnalysisRequest,
)
from app.schemas.knowledge import (
    KnowledgeFileResponse,
    KnowledgePreview,
    KnowledgeStats,
    ReindexResponse,
    UploadResponse,
)
from app.schemas.module import (
    FavoriteResponse,
    ModuleCreate,
    ModulePosition,
    ModuleResponse,
    ModuleUpdate,
    ModuleWithFavorite,
)
from app.schemas.provider import (
    AnthropicCompleteRequest,
    CompletionResponse,
    PerplexityQueryRequest,
    ProviderResponse,
    ProviderUpsert,
)
from app.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    LoginUser,
    ProfileUpdate,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from app.schemas.workflow import (
    AnalysisSynthesisRequest,
    ResearchAnswerRequest,
    SimpleWorkflowRequest,
    SimpleWorkflowResponse,
    StepResultResponse,
    WorkflowResponse,
)

__all__ = [
    "AnalysisSynthesisRequest",
    "AnthropicCompleteRequest",
    "CamelModel",
    "ChangePasswordRequest",
    "ChatMessageResponse",
    "ChatSessionResponse",
    "ClientCreate",
    "ClientPreferences",
    "ClientResponse",
    "ClientUpdate",
    "CompletionResponse",
    "FavoriteResponse",
    "KnowledgeFileResponse",
    "KnowledgePreview",
    "KnowledgeStats",
    "LoginRequest",
    "LoginResponse",
    "LoginUser",
    "MessageResponse",
    "ModuleCreate",
    "ModulePosition",
    "ModuleResponse",
    "ModuleUpdate",
    "ModuleWithFavorite",
    "PerplexityQueryRequest",
    "ProfileUpdate",
    "ProviderResponse",
    "ProviderUpsert",
    "ReindexResponse",
    "ResearchAnswerRequest",
    "SendMessageRequest",
    "SimpleWorkflowRequest",
    "SimpleWorkflowResponse",
    "StepResultResponse",
    "TimestampedResponse",
    "UploadResponse",
    "UserCreate",
    "UserResponse",
    "UserUpdate",
    "VoiceAnalysisRequest",
    "WorkflowResponse",
]
