"""
用户模型 (User)

安全设计：
- 密码使用 bcrypt 哈希存储，永不明文保存，也不出现在任何响应中
- 邮箱全局唯一
- tier 决定用户可见的模块：basic / MVP / Pro+
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """用户表"""
    __tablename__ = "users"

    # 登录邮箱
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    # bcrypt 哈希
    password: Mapped[str] = mapped_column(String(255), nullable=False)

    is_admin: Mapped[bool] = mapped_column(default=False, nullable=False)

    # 订阅等级
    tier: Mapped[str] = mapped_column(String(20), default="basic", nullable=False)
