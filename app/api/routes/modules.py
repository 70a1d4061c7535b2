"""
模块接口

- 管理员：创建、全部列表、更新、删除、排序、初始化内置目录
- 登录用户：按 tier 过滤的列表、收藏
- 公开：按 ID / slug 查看
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db_session, require_admin
from app.exceptions import ConflictError, NotFoundError
from app.models import User
from app.schemas import (
    FavoriteResponse,
    MessageResponse,
    ModuleCreate,
    ModulePosition,
    ModuleResponse,
    ModuleUpdate,
    ModuleWithFavorite,
)
from app.services import favorites as favorite_service
from app.services import modules as module_service

router = APIRouter()


def _module_not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": "MODULE_NOT_FOUND", "detail": str(e)},
    )


def _module_exists(e: ConflictError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"code": "MODULE_EXISTS", "detail": str(e)},
    )


@router.post("/modules", response_model=ModuleResponse, status_code=status.HTTP_201_CREATED)
async def create_module(
    payload: ModuleCreate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        module = await module_service.create_module(db, payload.model_dump())
    except ConflictError as e:
        raise _module_exists(e)
    await db.commit()
    return module


@router.get("/modules/all", response_model=list[ModuleResponse])
async def list_all_modules(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    """全部模块（含未启用），按 position、创建时间升序"""
    return await module_service.list_modules(db)


@router.get("/modules", response_model=list[ModuleWithFavorite])
async def list_modules_for_user(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """
    当前用户可用的模块

    Pro+ 可见全部启用模块，MVP 只见 MVP 模块，其他 tier 为空列表。
    """
    items = await module_service.find_by_tier(db, user.tier, user.id)
    return [
        ModuleWithFavorite.model_validate(item["module"]).model_copy(update={"is_favorite": item["is_favorite"]})
        for item in items
    ]


@router.post("/modules/positions", response_model=MessageResponse)
async def update_positions(
    payload: list[ModulePosition],
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    await module_service.update_positions(db, [(p.id, p.position) for p in payload])
    await db.commit()
    return MessageResponse(message="Positions updated successfully")


@router.post("/modules/seed", response_model=list[ModuleResponse])
async def seed_modules(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    """用内置目录替换全部模块"""
    modules = await module_service.seed_modules(db)
    await db.commit()
    return modules


@router.get("/modules/favorites/list", response_model=list[str])
async def list_favorites(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return await favorite_service.get_user_favorites(db, user.id)


@router.get("/modules/slug/{slug}", response_model=ModuleResponse)
async def get_module_by_slug(slug: str, db: AsyncSession = Depends(get_db_session)):
    try:
        return await module_service.get_module_by_slug(db, slug)
    except NotFoundError as e:
        raise _module_not_found(e)


@router.get("/modules/{module_id}", response_model=ModuleResponse)
async def get_module(module_id: str, db: AsyncSession = Depends(get_db_session)):
    try:
        return await module_service.get_module(db, module_id)
    except NotFoundError as e:
        raise _module_not_found(e)


@router.patch("/modules/{module_id}", response_model=ModuleResponse)
async def update_module(
    module_id: str,
    payload: ModuleUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        module = await module_service.update_module(db, module_id, payload.model_dump(exclude_unset=True))
    except NotFoundError as e:
        raise _module_not_found(e)
    except ConflictError as e:
        raise _module_exists(e)
    await db.commit()
    return module


@router.delete("/modules/{module_id}", response_model=MessageResponse)
async def delete_module(
    module_id: str,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    try:
        await module_service.delete_module(db, module_id)
    except NotFoundError as e:
        raise _module_not_found(e)
    await db.commit()
    return MessageResponse(message="Module deleted successfully")


@router.post("/modules/{module_id}/favorite", response_model=FavoriteResponse)
async def add_favorite(
    module_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """收藏模块（幂等）"""
    try:
        await module_service.get_module(db, module_id)
    except NotFoundError as e:
        raise _module_not_found(e)
    favorite = await favorite_service.add_favorite(db, user.id, module_id)
    await db.commit()
    return favorite


@router.delete("/modules/{module_id}/favorite", response_model=MessageResponse)
async def remove_favorite(
    module_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await favorite_service.remove_favorite(db, user.id, module_id)
    await db.commit()
    return MessageResponse(message="Favorite removed successfully")
