"""
模块模型 (Module & UserFavorite)

模块是对 LLM 提示词的封装，按 tier 对用户开放。

数据关系：
    User ──< UserFavorite >── Module
"""

from sqlalchemy import Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class Module(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """
    模块表

    字段说明：
    - name / slug: 全局唯一，slug 用于聊天和知识库路由
    - tier: MVP 或 Pro+
    - system_prompt: 该模块的系统提示词
    - position: 排序位置（升序）
    - temperature: 调用 LLM 时的采样温度
    """
    __tablename__ = "modules"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    tier: Mapped[str] = mapped_column(String(20), nullable=False)
    cover_image: Mapped[str | None] = mapped_column(String(1024))
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    system_prompt: Mapped[str | None] = mapped_column(Text)
    position: Mapped[int] = mapped_column(default=0, nullable=False)
    is_recommended: Mapped[bool] = mapped_column(default=False, nullable=False)
    empty_state_text: Mapped[str | None] = mapped_column(Text)
    temperature: Mapped[float] = mapped_column(Float, default=0.7, nullable=False)


class UserFavorite(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """用户收藏的模块"""
    __tablename__ = "user_favorites"

    __table_args__ = (
        UniqueConstraint("user_id", "module_id", name="uq_favorite_user_module"),
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    module_id: Mapped[str] = mapped_column(
        ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True,
    )
