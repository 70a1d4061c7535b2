"""
客户档案接口

所有接口需要登录，只能访问自己创建的客户。
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.exceptions import LLMError, NotFoundError
from app.models import User
from app.schemas import ClientCreate, ClientResponse, ClientUpdate, MessageResponse, VoiceAnalysisRequest
from app.services import clients as client_service

router = APIRouter()


def _client_not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": "CLIENT_NOT_FOUND", "detail": str(e)},
    )


def _client_data(payload: ClientCreate | ClientUpdate) -> dict:
    """请求体转为模型字段，preferences 保持 camelCase 键"""
    data = payload.model_dump(exclude_unset=True)
    if payload.preferences is not None:
        data["preferences"] = payload.preferences.model_dump(by_alias=True, exclude_none=True)
    return data


@router.post("/clients", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    payload: ClientCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    client = await client_service.create_client(db, user.id, _client_data(payload))
    await db.commit()
    return client


@router.get("/clients", response_model=list[ClientResponse])
async def list_clients(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await client_service.list_clients(db, user.id)


@router.get("/clients/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        return await client_service.get_client(db, user.id, client_id)
    except NotFoundError as e:
        raise _client_not_found(e)


@router.patch("/clients/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    payload: ClientUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        client = await client_service.update_client(db, user.id, client_id, _client_data(payload))
    except NotFoundError as e:
        raise _client_not_found(e)
    await db.commit()
    return client


@router.delete("/clients/{client_id}", response_model=MessageResponse)
async def delete_client(
    client_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        await client_service.delete_client(db, user.id, client_id)
    except NotFoundError as e:
        raise _client_not_found(e)
    await db.commit()
    return MessageResponse(message="Client deleted successfully")


@router.patch("/clients/{client_id}/niche-tags", response_model=ClientResponse)
async def refresh_niche_tags(
    client_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """重新提取细分标签"""
    try:
        client = await client_service.update_niche_tags(db, user.id, client_id)
    except NotFoundError as e:
        raise _client_not_found(e)
    await db.commit()
    return client


@router.post("/clients/{client_id}/generate-voice-analysis", response_model=ClientResponse)
async def generate_voice_analysis(
    client_id: str,
    payload: VoiceAnalysisRequest | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """可选地更新语气样本，然后生成语气分析"""
    try:
        client = await client_service.get_client(db, user.id, client_id)
    except NotFoundError as e:
        raise _client_not_found(e)

    try:
        client = await client_service.generate_voice_analysis(db, client, payload.voice if payload else None)
    except NotFoundError as e:
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "VOICE_NOT_FOUND", "detail": str(e)},
        )
    except LLMError as e:
        await db.commit()
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"code": "LLM_ERROR", "detail": str(e)},
        )
    await db.commit()
    return client
