"""
模型混入类 (Mixins)

提供可复用的模型字段，通过多重继承添加到具体模型中。

使用示例：
    class MyModel(UUIDPrimaryKeyMixin, TimestampMixin, Base):
        __tablename__ = "my_table"
        # 自动获得 id、created_at 和 updated_at 字段
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


class UUIDPrimaryKeyMixin:
    """
    UUID 主键混入类

    String(36) 对应 UUID 的标准格式：xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx
    """
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)


class TimestampMixin:
    """
    时间戳混入类

    - created_at: 记录创建时间
    - updated_at: 记录最后更新时间，每次 UPDATE 时自动刷新

    应用侧生成微秒级时间戳（同一秒内的消息也能稳定排序），
    server_default 保证直接写 SQL 插入的行也有值。
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )
