"""
知识库接口（仅管理员）

- 上传文本文件并自动摄取到检索索引
- 文件列表、统计、删除、下载
- 模块知识预览与重建索引
"""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db_session, require_admin
from app.exceptions import NotFoundError
from app.models import User
from app.schemas import (
    KnowledgeFileResponse,
    KnowledgePreview,
    KnowledgeStats,
    MessageResponse,
    ReindexResponse,
    UploadResponse,
)
from app.services import knowledge as knowledge_service

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])

DEFAULT_DOWNLOAD_TYPE = "text/plain; charset=utf-8"


def _is_text_upload(content_type: str | None) -> bool:
    if not content_type:
        return True
    return content_type.startswith("text/") or content_type == "application/octet-stream"


def _file_not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": "FILE_NOT_FOUND", "detail": str(e)},
    )


@router.post("/knowledge/upload", response_model=UploadResponse, response_model_exclude_none=True)
async def upload_file(
    file: UploadFile | None = File(None),
    module_slug: str | None = Form(None, alias="moduleSlug"),
    db: AsyncSession = Depends(get_db_session),
):
    """
    上传文本文件

    摄取失败时文件仍会保存，响应中只有 fileId 和 wordCount。
    """
    if file is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "NO_FILE", "detail": "No file uploaded"},
        )
    if not module_slug:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "MODULE_SLUG_REQUIRED", "detail": "Module slug is required"},
        )
    if not _is_text_upload(file.content_type):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "UNSUPPORTED_FILE_TYPE", "detail": "Only text files are supported"},
        )

    content = await file.read()
    result = await knowledge_service.ingest_text(
        db,
        module_slug=module_slug,
        filename=file.filename or "untitled.txt",
        content=content,
        mime_type=file.content_type,
    )
    await db.commit()
    return result


@router.get("/knowledge/files/{module_slug}", response_model=list[KnowledgeFileResponse])
async def list_files(module_slug: str, db: AsyncSession = Depends(get_db_session)):
    return await knowledge_service.list_files(db, module_slug)


@router.get("/knowledge/stats/{module_slug}", response_model=KnowledgeStats)
async def get_stats(module_slug: str, db: AsyncSession = Depends(get_db_session)):
    return await knowledge_service.get_stats(db, module_slug)


@router.delete("/knowledge/files/{file_id}", response_model=MessageResponse)
async def delete_file(file_id: str, db: AsyncSession = Depends(get_db_session)):
    try:
        await knowledge_service.delete_file(db, file_id)
    except NotFoundError as e:
        raise _file_not_found(e)
    await db.commit()
    return MessageResponse(message="File deleted successfully")


@router.get("/knowledge/download/{file_id}")
async def download_file(file_id: str, db: AsyncSession = Depends(get_db_session)):
    try:
        record = await knowledge_service.get_file(db, file_id)
    except NotFoundError as e:
        raise _file_not_found(e)

    filename = record.filename.replace('"', "")
    disposition = f'attachment; filename="{filename}"'
    if not filename.isascii():
        disposition += f"; filename*=UTF-8''{quote(record.filename)}"

    return Response(
        content=record.text,
        media_type=record.mime_type or DEFAULT_DOWNLOAD_TYPE,
        headers={"Content-Disposition": disposition},
    )


@router.get("/knowledge/preview/{module_slug}", response_model=KnowledgePreview)
async def preview(module_slug: str, db: AsyncSession = Depends(get_db_session)):
    return await knowledge_service.preview(db, module_slug)


@router.post("/knowledge/reindex/{module_slug}", response_model=ReindexResponse)
async def reindex(module_slug: str, db: AsyncSession = Depends(get_db_session)):
    """清空并重建模块的检索索引"""
    result = await knowledge_service.reindex(db, module_slug)
    await db.commit()
    logger.info(f"重建索引完成: module={module_slug}, files={result.files_processed}, chunks={result.total_chunks}")
    return result
