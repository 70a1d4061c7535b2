"""模块收藏服务"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import UserFavorite


async def add_favorite(session: AsyncSession, user_id: str, module_id: str) -> UserFavorite:
    """收藏模块，重复收藏返回已有记录"""
    result = await session.execute(
        select(UserFavorite).where(UserFavorite.user_id == user_id, UserFavorite.module_id == module_id)
    )
    favorite = result.scalar_one_or_none()
    if favorite is not None:
        return favorite

    favorite = UserFavorite(user_id=user_id, module_id=module_id)
    session.add(favorite)
    await session.flush()
    return favorite


async def remove_favorite(session: AsyncSession, user_id: str, module_id: str) -> None:
    await session.execute(
        delete(UserFavorite).where(UserFavorite.user_id == user_id, UserFavorite.module_id == module_id)
    )
    await session.flush()


async def get_user_favorites(session: AsyncSession, user_id: str) -> list[str]:
    result = await session.execute(
        select(UserFavorite.module_id)
        .where(UserFavorite.user_id == user_id)
        .order_by(UserFavorite.created_at.asc())
    )
    return [str(mid) for mid in result.scalars().all()]


async def get_favorite_statuses(session: AsyncSession, user_id: str, module_ids: list[str]) -> dict[str, bool]:
    """返回 {module_id: 是否已收藏}"""
    if not module_ids:
        return {}
    result = await session.execute(
        select(UserFavorite.module_id).where(
            UserFavorite.user_id == user_id,
            UserFavorite.module_id.in_(module_ids),
        )
    )
    favorite_set = set(result.scalars().all())
    return {mid: mid in favorite_set for mid in module_ids}
