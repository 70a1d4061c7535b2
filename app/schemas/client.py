"""客户档案相关的请求/响应模型"""

from datetime import datetime

from pydantic import Field, field_validator

from app.schemas.base import CamelModel, TimestampedResponse, reject_null


class ClientPreferences(CamelModel):
    tone: str | None = None
    style: str | None = None
    word_count: int | None = None
    audience: str | None = None
    frequency: str | None = None


class ClientFields(CamelModel):
    """创建/更新共享的可选字段"""
    email: str | None = None
    company: str | None = None
    avatar: str | None = None
    status: str | None = None
    bio: str | None = None
    website: str | None = None
    industry: str | None = None
    niche: str | None = None
    business_info: str | None = None
    goals: str | None = None
    voice: str | None = None
    voice_analysis: str | None = None
    feedback: str | None = None
    target_audience: str | None = None
    business_report: str | None = None
    voice_guide: str | None = None
    tags: list[str] | None = None
    domains: list[str] | None = None
    content_examples: list[str] | None = None
    competitors: list[str] | None = None
    keywords: list[str] | None = None
    preferences: ClientPreferences | None = None
    social_profiles: dict[str, str] | None = None

    check_not_null = field_validator(
        "status", "tags", "domains", "content_examples", "competitors", "keywords"
    )(reject_null)


class ClientCreate(ClientFields):
    name: str = Field(..., min_length=1, max_length=255)


class ClientUpdate(ClientFields):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    niche_tags: list[str] | None = None

    check_update_not_null = field_validator("name", "niche_tags")(reject_null)


class ClientResponse(TimestampedResponse):
    user_id: str
    name: str
    email: str | None = None
    company: str | None = None
    avatar: str | None = None
    status: str = "active"
    bio: str | None = None
    website: str | None = None
    industry: str | None = None
    niche: str | None = None
    business_info: str | None = None
    goals: str | None = None
    voice: str | None = None
    voice_analysis: str | None = None
    feedback: str | None = None
    target_audience: str | None = None
    business_report: str | None = None
    voice_guide: str | None = None
    niche_tags: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    domains: list[str] = Field(default_factory=list)
    content_examples: list[str] = Field(default_factory=list)
    competitors: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    preferences: dict | None = None
    social_profiles: dict | None = None
    last_active: datetime | None = None


class VoiceAnalysisRequest(CamelModel):
    voice: str | None = None
