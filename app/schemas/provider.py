"""LLM 提供商与 AI 透传接口的请求/响应模型"""

from pydantic import Field

from app.schemas.base import CamelModel, TimestampedResponse


class ProviderUpsert(CamelModel):
    type: str = Field(..., description="openai / anthropic / perplexity / google / grok")
    api_key: str = Field(..., min_length=1)


class ProviderResponse(TimestampedResponse):
    """提供商响应（不含 API Key）"""
    type: str
    is_active: bool


class AnthropicCompleteRequest(CamelModel):
    prompt: str = Field(..., min_length=1)
    system_prompt: str | None = None
    max_tokens: int | None = Field(default=None, ge=1, le=64000)
    temperature: float | None = Field(default=None, ge=0.0, le=1.0)


class PerplexityQueryRequest(CamelModel):
    query: str = Field(..., min_length=1)
    model: str | None = None
    max_tokens: int | None = Field(default=None, ge=1, le=64000)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)


class CompletionResponse(CamelModel):
    content: str
    model: str
