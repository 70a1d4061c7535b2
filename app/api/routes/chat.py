"""
聊天接口

会话按模块 slug 划分，只有会话所有者可以读写。
发送消息接口受限流保护。
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.auth.rate_limit import throttle
from app.exceptions import ForbiddenError, NotFoundError
from app.models import User
from app.schemas import ChatMessageResponse, ChatSessionResponse, MessageResponse, SendMessageRequest
from app.services import chat as chat_service

router = APIRouter()


def _session_error(e: Exception) -> HTTPException:
    if isinstance(e, ForbiddenError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "FORBIDDEN", "detail": "Forbidden"},
        )
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": "SESSION_NOT_FOUND", "detail": "Session not found"},
    )


@router.get("/chat/{module_slug}/sessions", response_model=list[ChatSessionResponse])
async def list_sessions(
    module_slug: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await chat_service.list_sessions(db, user.id, module_slug)


@router.post("/chat/{module_slug}/sessions", response_model=ChatSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    module_slug: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    chat = await chat_service.create_session(db, user.id, module_slug)
    await db.commit()
    return chat


@router.get("/chat/sessions/{session_id}/messages", response_model=list[ChatMessageResponse])
async def list_messages(
    session_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        await chat_service.get_owned_session(db, user.id, session_id)
    except (NotFoundError, ForbiddenError) as e:
        raise _session_error(e)
    return await chat_service.list_messages(db, session_id)


@router.post(
    "/chat/sessions/{session_id}/messages",
    response_model=list[ChatMessageResponse],
    dependencies=[Depends(throttle)],
)
async def send_message(
    session_id: str,
    payload: SendMessageRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """发送消息并返回会话中的全部消息（含助手回复）"""
    try:
        messages = await chat_service.send_message(db, user.id, session_id, payload.message)
    except (NotFoundError, ForbiddenError) as e:
        raise _session_error(e)
    await db.commit()
    return messages


@router.delete("/chat/sessions/{session_id}", response_model=MessageResponse)
async def delete_session(
    session_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        await chat_service.delete_session(db, user.id, session_id)
    except (NotFoundError, ForbiddenError) as e:
        raise _session_error(e)
    await db.commit()
    return MessageResponse(message="Session deleted successfully")
