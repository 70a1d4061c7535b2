"""知识库相关的响应模型"""

from app.schemas.base import CamelModel, TimestampedResponse


class KnowledgeFileResponse(TimestampedResponse):
    """知识文件（不含原文）"""
    module_slug: str
    filename: str
    size: int
    mime_type: str | None = None


class UploadResponse(CamelModel):
    """上传结果，摄取失败时只有 file_id / word_count"""
    file_id: str
    word_count: int
    chunks_created: int | None = None
    embedding_tokens: int | None = None


class KnowledgeStats(CamelModel):
    file_count: int
    total_words: int
    total_size: int
    total_chunks: int
    vector_count: int


class KnowledgePreview(CamelModel):
    module_slug: str
    stats: KnowledgeStats
    knowledge_length: int
    knowledge: str


class ReindexResponse(CamelModel):
    files_processed: int
    total_chunks: int
    total_tokens: int
