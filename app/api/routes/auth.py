"""
认证接口

- POST /auth/login   : 邮箱 + 密码登录，返回 JWT
- POST /auth/profile : 当前登录用户
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.auth.security import create_access_token
from app.exceptions import InvalidCredentialsError
from app.models import User
from app.schemas import LoginRequest, LoginResponse, LoginUser, UserResponse
from app.services import users as user_service

router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db_session)):
    """登录成功返回 access_token 和用户信息，失败统一 401"""
    try:
        user = await user_service.authenticate(db, payload.email, payload.password)
    except InvalidCredentialsError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "INVALID_CREDENTIALS", "detail": "Invalid credentials"},
        )

    return LoginResponse(
        access_token=create_access_token(user.id, user.email),
        user=LoginUser.model_validate(user),
    )


@router.post("/auth/profile", response_model=UserResponse)
async def profile(user: User = Depends(get_current_user)):
    return user
