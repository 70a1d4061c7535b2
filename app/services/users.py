"""
用户服务

用户 CRUD、登录校验和启动时的管理员初始化。
密码一律 bcrypt 哈希后保存。
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.security import hash_password, verify_password
from app.config import get_settings
from app.exceptions import ConflictError, InvalidCredentialsError, NotFoundError
from app.models import User

logger = logging.getLogger(__name__)


async def find_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user(session: AsyncSession, user_id: str) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def list_users(session: AsyncSession) -> list[User]:
    result = await session.execute(select(User).order_by(User.created_at.asc()))
    return list(result.scalars().all())


async def create_user(
    session: AsyncSession,
    *,
    email: str,
    password: str,
    is_admin: bool = False,
    tier: str = "basic",
) -> User:
    """
    创建用户

    Raises:
        ConflictError: 邮箱已存在
    """
    if await find_by_email(session, email) is not None:
        raise ConflictError("User with this email already exists")

    user = User(email=email, password=hash_password(password), is_admin=is_admin, tier=tier)
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as e:
        await session.rollback()
        raise ConflictError("User with this email already exists") from e

    logger.info(f"创建用户: {user.id} ({email})")
    return user


async def update_user(session: AsyncSession, user_id: str, changes: dict) -> User:
    """部分更新，password 字段会重新哈希"""
    user = await get_user(session, user_id)

    new_email = changes.get("email")
    if new_email and new_email != user.email and await find_by_email(session, new_email) is not None:
        raise ConflictError("User with this email already exists")

    for field, value in changes.items():
        if value is None:
            continue
        if field == "password":
            value = hash_password(value)
        setattr(user, field, value)

    await session.flush()
    return user


async def delete_user(session: AsyncSession, user_id: str) -> None:
    user = await get_user(session, user_id)
    await session.delete(user)
    await session.flush()
    logger.info(f"删除用户: {user_id}")


async def change_password(session: AsyncSession, user: User, old_password: str, new_password: str) -> None:
    if not verify_password(old_password, user.password):
        raise InvalidCredentialsError("Invalid old password")
    user.password = hash_password(new_password)
    await session.flush()


async def authenticate(session: AsyncSession, email: str, password: str) -> User:
    """
    邮箱 + 密码登录

    Raises:
        InvalidCredentialsError: 邮箱不存在或密码错误（不区分两种情况）
    """
    user = await find_by_email(session, email)
    if user is None or not verify_password(password, user.password):
        raise InvalidCredentialsError("Invalid credentials")
    return user


async def ensure_bootstrap_admin(session: AsyncSession) -> User | None:
    """按配置创建初始管理员，已存在则跳过"""
    settings = get_settings()
    email = settings.bootstrap_admin_email
    password = settings.bootstrap_admin_password
    if not email or not password:
        return None

    if await find_by_email(session, email) is not None:
        return None

    user = await create_user(session, email=email, password=password, is_admin=True, tier="Pro+")
    await session.commit()
    logger.info(f"已创建初始管理员: {email}")
    return user
