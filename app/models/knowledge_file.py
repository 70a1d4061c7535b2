"""
知识文件模型 (KnowledgeFile)

管理员上传到某个模块的文本文件，原文保存在数据库中，
切分后的片段见 Chunk。
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class KnowledgeFile(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """知识文件表"""
    __tablename__ = "knowledge_files"

    module_slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    filename: Mapped[str] = mapped_column(String(512), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    size: Mapped[int] = mapped_column(default=0, nullable=False)  # 字节数
    mime_type: Mapped[str | None] = mapped_column(String(255))
