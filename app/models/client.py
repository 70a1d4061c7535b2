"""
客户模型 (Client)

营销客户档案，用作内容生成的上下文。每条记录归属于创建它的用户。
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class Client(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    客户表

    字段分组：
    - 基本信息: name / email / company / avatar / status / bio / website / industry / niche
    - 内容素材: business_info / goals / voice / feedback / target_audience
    - 生成结果: voice_analysis / niche_tags / business_report / voice_guide
    - 列表字段（JSON 数组）: tags / domains / content_examples / competitors / keywords
    - 结构化字段（JSON 对象）: preferences / social_profiles
    """
    __tablename__ = "clients"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255))
    company: Mapped[str | None] = mapped_column(String(255))
    avatar: Mapped[str | None] = mapped_column(String(1024))
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    bio: Mapped[str | None] = mapped_column(Text)
    website: Mapped[str | None] = mapped_column(String(1024))
    industry: Mapped[str | None] = mapped_column(String(255))
    niche: Mapped[str | None] = mapped_column(String(255))

    business_info: Mapped[str | None] = mapped_column(Text)
    goals: Mapped[str | None] = mapped_column(Text)
    voice: Mapped[str | None] = mapped_column(Text)
    voice_analysis: Mapped[str | None] = mapped_column(Text)
    feedback: Mapped[str | None] = mapped_column(Text)
    target_audience: Mapped[str | None] = mapped_column(Text)
    business_report: Mapped[str | None] = mapped_column(Text)
    voice_guide: Mapped[str | None] = mapped_column(Text)

    niche_tags: Mapped[list] = mapped_column(JSON, default=list)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    domains: Mapped[list] = mapped_column(JSON, default=list)
    content_examples: Mapped[list] = mapped_column(JSON, default=list)
    competitors: Mapped[list] = mapped_column(JSON, default=list)
    keywords: Mapped[list] = mapped_column(JSON, default=list)

    # {"tone", "style", "wordCount", "audience", "frequency"}
    preferences: Mapped[dict | None] = mapped_column(JSON, default=dict)
    # {"linkedin": "...", "twitter": "..."}
    social_profiles: Mapped[dict | None] = mapped_column(JSON, default=dict)

    last_active: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
