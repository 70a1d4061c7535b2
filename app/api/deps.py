"""
API 依赖注入函数

这个模块定义了所有 API 路由共用的依赖项。
FastAPI 的依赖注入系统会自动调用这些函数，并将结果注入到路由处理函数中。

使用示例：
    @router.get("/example")
    async def example_endpoint(
        user: User = Depends(get_current_user),   # 需要登录
        db: AsyncSession = Depends(get_db_session),
    ):
        pass
"""

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.security import decode_access_token
from app.db.session import get_db
from app.infra.logging import set_user_id
from app.models import User


def _unauthorized(code: str, detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": code, "detail": detail},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _parse_bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    校验 Bearer 令牌并加载当前用户

    - 缺少令牌: 401 MISSING_TOKEN
    - 令牌无效、过期或用户已删除: 401 INVALID_TOKEN
    """
    token = _parse_bearer(authorization)
    if token is None:
        raise _unauthorized("MISSING_TOKEN", "No token provided")

    payload = decode_access_token(token)
    if payload is None:
        raise _unauthorized("INVALID_TOKEN", "Invalid token")

    user = await db.get(User, payload["sub"])
    if user is None:
        raise _unauthorized("INVALID_TOKEN", "Invalid token")

    set_user_id(user.id)
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """仅管理员可访问"""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "ADMIN_REQUIRED", "detail": "Admin access required"},
        )
    return user


# 重新导出数据库会话获取函数，方便路由模块导入
get_db_session = get_db
