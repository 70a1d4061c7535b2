"""
聊天服务

按模块划分的多轮对话。发送消息时：
1. 保存用户消息，默认标题改为消息摘要
2. 检索模块知识库，组装 REFERENCE CONTEXT
3. 带最近 8 轮历史调用 Claude
4. 任何失败都有兜底回复，保证接口总能返回
"""

import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.exceptions import EmbeddingError, ForbiddenError, NotFoundError, VectorStoreError
from app.infra.llm import anthropic_messages
from app.models import ChatMessage, ChatSession
from app.services import context_composer, retrieval
from app.services.modules import find_by_slug
from app.services.providers import get_key
from app.services.workflow import build_system_prompt

logger = logging.getLogger(__name__)

MOCK_RESPONSE = "Sorry, I can't help with that request."
TOO_LONG_RESPONSE = (
    "I apologize, but your request is too long for me to process. "
    "Please try with a shorter message or break it into smaller parts."
)

TITLE_MAX_CHARS = 50
HISTORY_MAX_PAIRS = 8
DEFAULT_TEMPERATURE = 0.7


def default_title(module_slug: str) -> str:
    return f"New {module_slug} Chat"


def make_title(message: str) -> str:
    if len(message) > TITLE_MAX_CHARS:
        return message[:TITLE_MAX_CHARS] + "..."
    return message


def is_retrieval_error(error: Exception) -> bool:
    if isinstance(error, (EmbeddingError, VectorStoreError)):
        return True
    # 消息匹配区分大小写，只认小写关键词
    message = str(error)
    return "vector" in message or "embedding" in message


def is_length_error(error: Exception) -> bool:
    message = str(error)
    return "token" in message or "length" in message


async def create_session(session: AsyncSession, user_id: str, module_slug: str) -> ChatSession:
    chat = ChatSession(user_id=user_id, module_slug=module_slug, title=default_title(module_slug))
    session.add(chat)
    await session.flush()
    return chat


async def list_sessions(session: AsyncSession, user_id: str, module_slug: str) -> list[ChatSession]:
    result = await session.execute(
        select(ChatSession)
        .where(ChatSession.user_id == user_id, ChatSession.module_slug == module_slug)
        .order_by(ChatSession.created_at.desc())
    )
    return list(result.scalars().all())


async def get_owned_session(session: AsyncSession, user_id: str, session_id: str) -> ChatSession:
    """
    Raises:
        NotFoundError: 会话不存在
        ForbiddenError: 会话不属于当前用户
    """
    chat = await session.get(ChatSession, session_id)
    if chat is None:
        raise NotFoundError("Session not found")
    if chat.user_id != user_id:
        raise ForbiddenError("Forbidden")
    return chat


async def list_messages(session: AsyncSession, session_id: str) -> list[ChatMessage]:
    result = await session.execute(
        select(ChatMessage)
        .where(ChatMessage.session_id == session_id)
        .order_by(ChatMessage.created_at.asc())
    )
    return list(result.scalars().all())


async def delete_session(session: AsyncSession, user_id: str, session_id: str) -> None:
    chat = await get_owned_session(session, user_id, session_id)
    await session.execute(delete(ChatMessage).where(ChatMessage.session_id == session_id))
    await session.delete(chat)
    await session.flush()


async def _generate_reply(
    *,
    module_slug: str,
    history: list[dict[str, str]],
    user_message: str,
    system_prompt: str,
    temperature: float,
    api_key: str,
) -> str:
    """检索增强回复，检索失败时退化为无检索对话"""
    settings = get_settings()
    trimmed = context_composer.trim_messages_to_limit(history, HISTORY_MAX_PAIRS)
    conversation = trimmed[:-1] + [{"role": "user", "content": user_message}]

    async def call_claude(messages: list[dict[str, str]]) -> str:
        response = await anthropic_messages(
            messages,
            system=system_prompt,
            model=settings.anthropic_model,
            temperature=temperature,
            max_tokens=4000,
            api_key=api_key,
        )
        return response.text

    try:
        retrieved = await retrieval.retrieve(
            module_slug,
            user_message,
            top_k=5,
            score_threshold=0.45,
            rerank=True,
            rerank_top_k=3,
        )
        composed = context_composer.compose(
            retrieved,
            max_tokens=8000,
            include_source=True,
            deduplication=True,
            template="default",
        )

        messages: list[dict[str, str]] = []
        if composed.chunks_used > 0:
            messages.append(
                {"role": "assistant", "content": context_composer.build_assistant_context_message(composed.context)}
            )
            logger.info(f"使用 {composed.chunks_used} 个检索片段 ({composed.total_tokens} tokens), sources={composed.sources}")
        else:
            logger.info("未检索到相关上下文，使用通用知识回答")

        logger.info(
            f"module={module_slug} chunks_used={composed.chunks_used} "
            f"ctx_tokens={composed.total_tokens} msg_pairs={len(trimmed) // 2}"
        )
        return await call_claude(messages + conversation)

    except Exception as e:
        logger.error(f"聊天回复失败: {e}")

        if is_retrieval_error(e):
            logger.warning("检索出错，退化为无检索对话")
            try:
                return await call_claude(conversation)
            except Exception as fallback_error:
                logger.error(f"无检索对话也失败: {fallback_error}")
                return MOCK_RESPONSE

        if is_length_error(e):
            return TOO_LONG_RESPONSE

        return MOCK_RESPONSE


async def send_message(
    session: AsyncSession,
    user_id: str,
    session_id: str,
    user_message: str,
) -> list[ChatMessage]:
    """
    发送消息并生成助手回复

    Returns:
        会话中按时间升序的全部消息
    """
    chat = await get_owned_session(session, user_id, session_id)

    session.add(ChatMessage(session_id=session_id, role="user", content=user_message))
    if chat.title == default_title(chat.module_slug):
        chat.title = make_title(user_message)
    await session.flush()

    history = [{"role": m.role, "content": m.content} for m in await list_messages(session, session_id)]

    module = await find_by_slug(session, chat.module_slug)
    module_prompt = module.system_prompt if module else None
    temperature = module.temperature if module and module.temperature is not None else DEFAULT_TEMPERATURE
    system_prompt = build_system_prompt(module_prompt)

    api_key = await get_key(session, "anthropic")
    if not api_key:
        reply = MOCK_RESPONSE
    else:
        reply = await _generate_reply(
            module_slug=chat.module_slug,
            history=history,
            user_message=user_message,
            system_prompt=system_prompt,
            temperature=temperature,
            api_key=api_key,
        )

    session.add(ChatMessage(session_id=session_id, role="assistant", content=reply))
    await session.flush()

    return await list_messages(session, session_id)
