"""
知识库文件服务

文件原文保存在 knowledge_files 表，上传后立即摄取到检索索引。
摄取失败不影响文件本身的保存。
"""

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError
from app.models import Chunk, KnowledgeFile
from app.services import ingestion

logger = logging.getLogger(__name__)

PREVIEW_MAX_CHARS = 50000
NO_KNOWLEDGE_TEXT = "No knowledge files found"


def count_words(text: str) -> int:
    return len(text.split())


async def ingest_text(
    session: AsyncSession,
    *,
    module_slug: str,
    filename: str,
    content: bytes,
    mime_type: str | None,
) -> dict:
    """
    保存上传的文本文件并摄取

    Returns:
        {file_id, word_count[, chunks_created, embedding_tokens]}
    """
    text = content.decode("utf-8", errors="replace")
    word_count = count_words(text)

    record = KnowledgeFile(
        module_slug=module_slug,
        filename=filename,
        text=text,
        size=len(content),
        mime_type=mime_type,
    )
    session.add(record)
    await session.flush()
    logger.info(f"保存知识文件: {filename} ({word_count} words), module={module_slug}")

    try:
        result = await ingestion.ingest_document(
            session=session,
            module_slug=module_slug,
            file_id=record.id,
            filename=filename,
            text=text,
        )
    except Exception as e:
        logger.error(f"知识文件摄取失败: {filename}: {e}")
        await session.execute(delete(Chunk).where(Chunk.file_id == record.id))
        await session.flush()
        return {"file_id": record.id, "word_count": word_count}

    logger.info(f"索引完成: chunks={result.chunks_created}, embedding_tokens={result.embedding_tokens}")
    return {
        "file_id": record.id,
        "word_count": word_count,
        "chunks_created": result.chunks_created,
        "embedding_tokens": result.embedding_tokens,
    }


async def list_files(session: AsyncSession, module_slug: str) -> list[KnowledgeFile]:
    result = await session.execute(
        select(KnowledgeFile)
        .where(KnowledgeFile.module_slug == module_slug)
        .order_by(KnowledgeFile.created_at.desc())
    )
    return list(result.scalars().all())


async def get_file(session: AsyncSession, file_id: str) -> KnowledgeFile:
    record = await session.get(KnowledgeFile, file_id)
    if record is None:
        raise NotFoundError("File not found")
    return record


async def delete_file(session: AsyncSession, file_id: str) -> None:
    """删除文件及其片段/向量，片段清理失败只记日志"""
    record = await get_file(session, file_id)

    try:
        await ingestion.delete_file_chunks(session=session, file_id=file_id)
    except Exception as e:
        logger.error(f"删除文件片段失败: {record.filename}: {e}")

    await session.delete(record)
    await session.flush()
    logger.info(f"删除知识文件: {record.filename}, module={record.module_slug}")


async def get_stats(session: AsyncSession, module_slug: str) -> dict:
    """文件数、总词数、总字节数，以及索引片段数和向量数"""
    result = await session.execute(
        select(KnowledgeFile.text, KnowledgeFile.size).where(KnowledgeFile.module_slug == module_slug)
    )
    rows = result.all()

    stats = await ingestion.get_ingestion_stats(session=session, module_slug=module_slug)
    return {
        "file_count": len(rows),
        "total_words": sum(count_words(text or "") for text, _ in rows),
        "total_size": sum(size or 0 for _, size in rows),
        "total_chunks": stats.total_chunks,
        "vector_count": stats.vector_count,
    }


async def compile_knowledge(session: AsyncSession, module_slug: str) -> str:
    """
    拼接模块全部文件原文（按上传时间升序），总长不超过 PREVIEW_MAX_CHARS

    放不下的文件截断到剩余空间减 10 个字符并加 "..."，剩余不足 100 字符则直接丢弃。
    """
    result = await session.execute(
        select(KnowledgeFile.text)
        .where(KnowledgeFile.module_slug == module_slug)
        .order_by(KnowledgeFile.created_at.asc())
    )
    texts = list(result.scalars().all())
    if not texts:
        return ""

    parts: list[str] = []
    total = 0
    for text in texts:
        content = f"{text}\n\n"
        if total + len(content) > PREVIEW_MAX_CHARS:
            remaining = PREVIEW_MAX_CHARS - total - 10
            if remaining > 100:
                parts.append(f"{text[:remaining]}...\n\n")
            break
        parts.append(content)
        total += len(content)

    return "".join(parts)


async def preview(session: AsyncSession, module_slug: str) -> dict:
    knowledge = await compile_knowledge(session, module_slug)
    return {
        "module_slug": module_slug,
        "stats": await get_stats(session, module_slug),
        "knowledge_length": len(knowledge),
        "knowledge": knowledge or NO_KNOWLEDGE_TEXT,
    }


async def reindex(session: AsyncSession, module_slug: str) -> ingestion.ReindexResult:
    result = await session.execute(
        select(KnowledgeFile)
        .where(KnowledgeFile.module_slug == module_slug)
        .order_by(KnowledgeFile.created_at.asc())
    )
    files = list(result.scalars().all())
    return await ingestion.reindex_module(session=session, module_slug=module_slug, files=files)
