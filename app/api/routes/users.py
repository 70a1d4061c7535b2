"""
用户管理接口

管理员：创建、列表、查看、更新、删除用户
登录用户：查看/更新自己的资料、修改密码
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db_session, require_admin
from app.exceptions import ConflictError, InvalidCredentialsError, NotFoundError
from app.models import User
from app.schemas import (
    ChangePasswordRequest,
    MessageResponse,
    ProfileUpdate,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from app.services import users as user_service

router = APIRouter()


def _email_exists(e: ConflictError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"code": "EMAIL_EXISTS", "detail": str(e)},
    )


def _user_not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": "USER_NOT_FOUND", "detail": str(e)},
    )


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        user = await user_service.create_user(
            db,
            email=payload.email,
            password=payload.password,
            is_admin=payload.is_admin,
            tier=payload.tier,
        )
    except ConflictError as e:
        raise _email_exists(e)
    await db.commit()
    return user


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    return await user_service.list_users(db)


@router.get("/users/profile", response_model=UserResponse)
async def get_profile(user: User = Depends(get_current_user)):
    return user


@router.patch("/users/profile", response_model=UserResponse)
async def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        updated = await user_service.update_user(db, user.id, payload.model_dump(exclude_unset=True))
    except ConflictError as e:
        raise _email_exists(e)
    await db.commit()
    return updated


@router.post("/users/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        await user_service.change_password(db, user, payload.old_password, payload.new_password)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "INVALID_OLD_PASSWORD", "detail": str(e)},
        )
    await db.commit()
    return MessageResponse(message="Password changed successfully")


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        return await user_service.get_user(db, user_id)
    except NotFoundError as e:
        raise _user_not_found(e)


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        user = await user_service.update_user(db, user_id, payload.model_dump(exclude_unset=True))
    except NotFoundError as e:
        raise _user_not_found(e)
    except ConflictError as e:
        raise _email_exists(e)
    await db.commit()
    return user


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        await user_service.delete_user(db, user_id)
    except NotFoundError as e:
        raise _user_not_found(e)
    await db.commit()
    return MessageResponse(message="User deleted successfully")
