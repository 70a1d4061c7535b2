"""
客户档案服务

每个客户归属于创建它的用户，其他用户访问时视为不存在。
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import LLMNotConfiguredError, NotFoundError
from app.infra.llm import anthropic_messages
from app.models import Client
from app.models.mixins import utcnow
from app.services.providers import get_key
from app.services.tag_extractor import extract_niche_tags

logger = logging.getLogger(__name__)

VOICE_ANALYSIS_PLACEHOLDER = "Voice analysis would be generated here using an AI service"

VOICE_ANALYSIS_PROMPT = """Analyze the writing voice of the following sample for a content marketing client.

Describe, in concise bullet points:
- Tone and personality
- Sentence structure and rhythm
- Vocabulary and recurring phrases
- Formatting habits (emojis, line breaks, lists)
- Guidance for writing new content in this voice

Client: {name}

Voice sample:
{voice}"""


async def get_client(session: AsyncSession, user_id: str, client_id: str) -> Client:
    client = await session.get(Client, client_id)
    if client is None or client.user_id != user_id:
        raise NotFoundError(f"Client with ID {client_id} not found")
    return client


async def list_clients(session: AsyncSession, user_id: str) -> list[Client]:
    result = await session.execute(
        select(Client).where(Client.user_id == user_id).order_by(Client.updated_at.desc())
    )
    return list(result.scalars().all())


async def _refresh_tags(session: AsyncSession, client: Client) -> list[str]:
    return await extract_niche_tags(
        client.name,
        client.business_info,
        client.goals,
        voice=client.voice,
        feedback=client.feedback,
        api_key=await get_key(session, "anthropic"),
    )


async def create_client(session: AsyncSession, user_id: str, data: dict) -> Client:
    """创建客户并提取细分标签"""
    client = Client(user_id=user_id, last_active=utcnow(), **data)
    client.niche_tags = await _refresh_tags(session, client)
    session.add(client)
    await session.flush()
    logger.info(f"创建客户: {client.id}, tags={client.niche_tags}")
    return client


async def update_client(session: AsyncSession, user_id: str, client_id: str, changes: dict) -> Client:
    client = await get_client(session, user_id, client_id)
    for field, value in changes.items():
        setattr(client, field, value)
    client.last_active = utcnow()
    await session.flush()
    return client


async def delete_client(session: AsyncSession, user_id: str, client_id: str) -> None:
    client = await get_client(session, user_id, client_id)
    await session.delete(client)
    await session.flush()


async def update_niche_tags(session: AsyncSession, user_id: str, client_id: str) -> Client:
    client = await get_client(session, user_id, client_id)
    client.niche_tags = await _refresh_tags(session, client)
    await session.flush()
    return client


async def generate_voice_analysis(session: AsyncSession, client: Client, voice: str | None = None) -> Client:
    """
    生成并保存语气分析

    Raises:
        NotFoundError: 客户没有语气样本
        LLMError: LLM 调用失败
    """
    if voice:
        client.voice = voice
        await session.flush()

    if not client.voice:
        raise NotFoundError("No voice sample found for this client")

    try:
        response = await anthropic_messages(
            [{"role": "user", "content": VOICE_ANALYSIS_PROMPT.format(name=client.name, voice=client.voice)}],
            max_tokens=1500,
            api_key=await get_key(session, "anthropic"),
        )
        client.voice_analysis = response.text
    except LLMNotConfiguredError:
        logger.info("未配置 LLM，写入语气分析占位文本")
        client.voice_analysis = VOICE_ANALYSIS_PLACEHOLDER

    await session.flush()
    return client
