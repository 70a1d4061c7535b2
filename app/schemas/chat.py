"""聊天相关的请求/响应模型"""

from pydantic import Field

from app.schemas.base import CamelModel, TimestampedResponse


class ChatSessionResponse(TimestampedResponse):
    user_id: str
    module_slug: str
    title: str


class ChatMessageResponse(TimestampedResponse):
    session_id: str
    role: str
    content: str


class SendMessageRequest(CamelModel):
    message: str = Field(..., min_length=1)
