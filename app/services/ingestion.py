"""
文档摄取服务

负责把知识库文件写入检索索引：
1. 段落切分（ParagraphChunker）
2. 批量向量化
3. 写入 chunks 表
4. 写入 Qdrant（payload 带 moduleSlug / fileId）

注意：本模块只 flush 不 commit，事务由调用方（路由）提交。
"""

import logging
import math
import uuid
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infra.embeddings import get_embeddings
from app.infra.logging import RequestTimer
from app.infra.vector_store import SearchFilter, VectorPoint, vector_store
from app.models import Chunk, KnowledgeFile
from app.pipeline import operator_registry

logger = logging.getLogger(__name__)

CHUNK_MAX_TOKENS = 400
CHUNK_OVERLAP_TOKENS = 80
CHUNK_MIN_TOKENS = 50


@dataclass
class IngestionResult:
    file_id: str
    chunks_created: int = 0
    total_tokens: int = 0
    embedding_tokens: int = 0
    vectors_stored: int = 0


@dataclass
class ReindexResult:
    files_processed: int
    total_chunks: int
    total_tokens: int


@dataclass
class IngestionStats:
    total_chunks: int
    total_files: int
    total_tokens: int
    vector_count: int


async def ingest_document(
    *,
    session: AsyncSession,
    module_slug: str,
    file_id: str,
    filename: str,
    text: str,
) -> IngestionResult:
    """
    摄取单个文件

    Raises:
        EmbeddingError: 向量化失败
        VectorStoreError: 写入 Qdrant 失败
    """
    logger.info(f"开始摄取文件: {filename} ({len(text)} chars)")
    timer = RequestTimer()

    chunker = operator_registry.create(
        "chunker",
        "paragraph",
        max_tokens=CHUNK_MAX_TOKENS,
        min_tokens=CHUNK_MIN_TOKENS,
        overlap_tokens=CHUNK_OVERLAP_TOKENS,
    )
    pieces = chunker.chunk(text)
    timer.mark("chunk")

    if not pieces:
        logger.warning(f"文件未产生任何片段: {filename}")
        return IngestionResult(file_id=file_id)

    logger.info(f"切分完成: {len(pieces)} 个片段")

    vectors = await get_embeddings([p.text for p in pieces])
    timer.mark("embedding")

    points: list[VectorPoint] = []
    for idx, (piece, vector) in enumerate(zip(pieces, vectors)):
        vector_id = str(uuid.uuid4())
        session.add(
            Chunk(
                module_slug=module_slug,
                file_id=file_id,
                filename=filename,
                text=piece.text,
                chunk_index=idx,
                tokens=piece.tokens,
                vector_id=vector_id,
            )
        )
        points.append(
            VectorPoint(
                id=vector_id,
                vector=vector,
                payload={
                    "text": piece.text,
                    "moduleSlug": module_slug,
                    "fileId": file_id,
                    "filename": filename,
                    "chunkIndex": idx,
                },
            )
        )
    await session.flush()

    await vector_store.upsert_batch(points)
    timer.mark("store")

    total_tokens = sum(p.tokens for p in pieces)
    logger.info(
        f"摄取完成: {filename}, chunks={len(pieces)}, tokens={total_tokens}",
        extra={"stages_ms": timer.stages},
    )

    return IngestionResult(
        file_id=file_id,
        chunks_created=len(pieces),
        total_tokens=total_tokens,
        embedding_tokens=math.ceil(total_tokens * 1.3),
        vectors_stored=len(points),
    )


async def delete_file_chunks(*, session: AsyncSession, file_id: str) -> int:
    """删除文件的片段记录，再按 vector_id 删除向量，返回删除数量"""
    result = await session.execute(select(Chunk.vector_id).where(Chunk.file_id == file_id))
    vector_ids = [vid for vid in result.scalars().all() if vid]

    deleted = await session.execute(delete(Chunk).where(Chunk.file_id == file_id))
    await session.flush()
    logger.info(f"已删除文件片段: file={file_id}, rows={deleted.rowcount}")

    if vector_ids:
        await vector_store.delete(vector_ids)
    return len(vector_ids)


async def delete_module_chunks(*, session: AsyncSession, module_slug: str) -> None:
    deleted = await session.execute(delete(Chunk).where(Chunk.module_slug == module_slug))
    await session.flush()
    logger.info(f"已删除模块片段: module={module_slug}, rows={deleted.rowcount}")

    await vector_store.delete_by_filter(SearchFilter(module_slug=module_slug))


async def reindex_module(
    *,
    session: AsyncSession,
    module_slug: str,
    files: list[KnowledgeFile],
) -> ReindexResult:
    """清空模块索引后逐个文件重新摄取"""
    logger.info(f"重建模块索引: {module_slug} ({len(files)} files)")

    await delete_module_chunks(session=session, module_slug=module_slug)

    total_chunks = 0
    total_tokens = 0
    for f in files:
        result = await ingest_document(
            session=session,
            module_slug=module_slug,
            file_id=f.id,
            filename=f.filename,
            text=f.text,
        )
        total_chunks += result.chunks_created
        total_tokens += result.total_tokens

    return ReindexResult(files_processed=len(files), total_chunks=total_chunks, total_tokens=total_tokens)


async def get_ingestion_stats(*, session: AsyncSession, module_slug: str) -> IngestionStats:
    result = await session.execute(
        select(
            func.count(Chunk.id),
            func.count(func.distinct(Chunk.file_id)),
            func.coalesce(func.sum(Chunk.tokens), 0),
        ).where(Chunk.module_slug == module_slug)
    )
    total_chunks, total_files, total_tokens = result.one()
    vector_count = await vector_store.count(SearchFilter(module_slug=module_slug))

    return IngestionStats(
        total_chunks=total_chunks,
        total_files=total_files,
        total_tokens=int(total_tokens),
        vector_count=vector_count,
    )
