"""
LLM 提供商配置接口（仅管理员）

API Key 只写不读，响应中不返回。
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db_session, require_admin
from app.schemas import ProviderResponse, ProviderUpsert
from app.services import providers as provider_service

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/providers", response_model=ProviderResponse)
async def upsert_provider(payload: ProviderUpsert, db: AsyncSession = Depends(get_db_session)):
    """新增或更新提供商 API Key"""
    try:
        provider = await provider_service.upsert_provider(db, payload.type, payload.api_key)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "UNSUPPORTED_PROVIDER", "detail": str(e)},
        )
    await db.commit()
    return provider


@router.get("/providers", response_model=list[ProviderResponse])
async def list_providers(db: AsyncSession = Depends(get_db_session)):
    return await provider_service.list_providers(db)
