"""
文档片段模型 (Chunk) - RAG 检索的基本单位

数据流向: KnowledgeFile → Chunker → Chunks → Embedder → 向量库
"""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class Chunk(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """片段表：存储切分后的文本片段，与向量库通过 vector_id 关联"""
    __tablename__ = "chunks"

    module_slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    # 不设外键：文件删除失败时片段仍可单独清理
    file_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    filename: Mapped[str] = mapped_column(String(512), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_index: Mapped[int] = mapped_column(nullable=False)
    tokens: Mapped[int] = mapped_column(default=0, nullable=False)

    # Qdrant point ID
    vector_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
