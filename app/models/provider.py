"""
模型提供商模型 (Provider)

管理员在后台配置的 LLM API Key，优先于环境变量中的配置。
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class Provider(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """提供商表：type 唯一（openai / anthropic / perplexity / google / grok）"""
    __tablename__ = "providers"

    type: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    api_key: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
