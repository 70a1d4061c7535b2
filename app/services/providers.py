"""
LLM 提供商服务

管理员可在数据库中配置各提供商的 API Key，
读取时优先使用数据库中启用的配置，其次使用环境变量。
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import SUPPORTED_PROVIDERS, get_settings
from app.models import Provider

logger = logging.getLogger(__name__)


async def upsert_provider(session: AsyncSession, provider_type: str, api_key: str) -> Provider:
    """
    新增或更新提供商 API Key

    Raises:
        ValueError: 不支持的提供商类型
    """
    if provider_type not in SUPPORTED_PROVIDERS:
        raise ValueError(f"Unsupported provider type: {provider_type}")

    result = await session.execute(select(Provider).where(Provider.type == provider_type))
    provider = result.scalar_one_or_none()
    if provider is None:
        provider = Provider(type=provider_type, api_key=api_key, is_active=True)
        session.add(provider)
    else:
        provider.api_key = api_key
        provider.is_active = True

    await session.flush()
    logger.info(f"已保存提供商配置: {provider_type}")
    return provider


async def list_providers(session: AsyncSession) -> list[Provider]:
    result = await session.execute(
        select(Provider).where(Provider.is_active.is_(True)).order_by(Provider.type.asc())
    )
    return list(result.scalars().all())


async def get_key(session: AsyncSession, provider_type: str) -> str | None:
    """数据库中的 Key 优先，没有则回落到环境变量"""
    result = await session.execute(
        select(Provider.api_key).where(Provider.type == provider_type, Provider.is_active.is_(True))
    )
    key = result.scalar_one_or_none()
    if key:
        return key
    return get_settings().get_provider_config(provider_type).get("api_key")
