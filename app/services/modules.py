"""
模块服务

模块 CRUD、按用户 tier 过滤、排序和内置目录初始化。
"""

import logging

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ConflictError, NotFoundError
from app.models import Module, UserFavorite
from app.services.favorites import get_favorite_statuses

logger = logging.getLogger(__name__)

_COVER_BASE = "https://storage.googleapis.com/glide-prod.appspot.com/uploads-v2"

# 内置模块目录（slug, 名称, tier, 封面）
SEED_MODULES = [
    ("vyrasearch-cia", "VyraSearch CIA", "MVP",
     f"{_COVER_BASE}/6qILVMgKS7gjeLKibn2D/pub/6CdaAfnhjRiR5pR3eQjd.png"),
    ("vyrahook-polisher", "VyraHook Polisher", "MVP",
     f"{_COVER_BASE}/6qILVMgKS7gjeLKibn2D/pub/hfM1mGemGcuO0PwTsIhg.png"),
    ("vyratrust-thread-creator", "VyraTrust Thread Creator", "MVP",
     f"{_COVER_BASE}/6qILVMgKS7gjeLKibn2D/pub/UCfnR5HDCJ4fxEeRzlsp.png"),
    ("vyratag-copy-engine", "VyraTAG Copy Engine", "MVP",
     f"{_COVER_BASE}/6qILVMgKS7gjeLKibn2D/pub/0fyxUtsmUSZTaRFLBGZA.png"),
    ("vyrastack-ioc", "VyraStack IOC", "MVP",
     f"{_COVER_BASE}/6qILVMgKS7gjeLKibn2D/pub/6K9JNjrHbQcNM8kuvhCI.png"),
    ("vyraleadeec-generator", "VyraLead EEC Generator", "MVP",
     f"{_COVER_BASE}/6qILVMgKS7gjeLKibn2D/pub/nvX1up80cEhwwnPHQfwX.png"),
    ("vyralinked-authority-engine", "VyraLinked Authority Engine", "MVP",
     f"{_COVER_BASE}/6qILVMgKS7gjeLKibn2D/pub/BNG1Fg9wC3uQZshKVPeV.png"),
    ("vyrabrand-legacy-creator", "VyraBrand Legacy Creator", "Pro+",
     f"{_COVER_BASE}/6qILVMgKS7gjeLKibn2D/pub/rAEbU9E2YXgmKirT5MmK.png"),
    ("vyramode-content-amplifier", "VyraMode Content Amplifier", "Pro+",
     f"{_COVER_BASE}/6qILVMgKS7gjeLKibn2D/pub/QGRbawDpG9hMFrkiH4v5.png"),
    ("vyralead-advanced-magnet-generator", "VyraLead+ Advanced Magnet Generator", "Pro+",
     f"{_COVER_BASE}/6qILVMgKS7gjeLKibn2D/pub/CaE9gXBwQARx2jZndQAv.png"),
    ("vyratube-video-script-generator", "VyraTube Video script Generator", "Pro+",
     f"{_COVER_BASE}/QRInahvhzmJVnF0B95cn/pub/7pj7zqDbwZMUfjKSRa9H.png"),
]

_ORDERING = (Module.position.asc(), Module.created_at.asc())


async def _ensure_unique(session: AsyncSession, name: str | None, slug: str | None, exclude_id: str | None = None) -> None:
    conditions = []
    if name:
        conditions.append(Module.name == name)
    if slug:
        conditions.append(Module.slug == slug)
    if not conditions:
        return
    stmt = select(Module.id).where(or_(*conditions))
    if exclude_id:
        stmt = stmt.where(Module.id != exclude_id)
    if (await session.execute(stmt)).first() is not None:
        raise ConflictError("Module with this name or slug already exists")


async def create_module(session: AsyncSession, data: dict) -> Module:
    await _ensure_unique(session, data.get("name"), data.get("slug"))
    module = Module(**data)
    session.add(module)
    await session.flush()
    logger.info(f"创建模块: {module.slug}")
    return module


async def list_modules(session: AsyncSession) -> list[Module]:
    result = await session.execute(select(Module).order_by(*_ORDERING))
    return list(result.scalars().all())


async def get_module(session: AsyncSession, module_id: str) -> Module:
    module = await session.get(Module, module_id)
    if module is None:
        raise NotFoundError(f"Module with ID {module_id} not found")
    return module


async def find_by_slug(session: AsyncSession, slug: str) -> Module | None:
    result = await session.execute(select(Module).where(Module.slug == slug))
    return result.scalar_one_or_none()


async def get_module_by_slug(session: AsyncSession, slug: str) -> Module:
    module = await find_by_slug(session, slug)
    if module is None:
        raise NotFoundError(f"Module with slug {slug} not found")
    return module


async def update_module(session: AsyncSession, module_id: str, changes: dict) -> Module:
    module = await get_module(session, module_id)
    await _ensure_unique(session, changes.get("name"), changes.get("slug"), exclude_id=module_id)
    for field, value in changes.items():
        setattr(module, field, value)
    await session.flush()
    return module


async def delete_module(session: AsyncSession, module_id: str) -> None:
    module = await get_module(session, module_id)
    await session.execute(delete(UserFavorite).where(UserFavorite.module_id == module_id))
    await session.delete(module)
    await session.flush()
    logger.info(f"删除模块: {module.slug}")


async def find_by_tier(session: AsyncSession, tier: str, user_id: str | None = None) -> list[dict]:
    """
    按用户 tier 返回可用模块，附带 is_favorite

    - Pro+: 全部启用的模块
    - MVP: 启用且 tier 为 MVP 的模块
    - 其他: 空列表
    """
    if tier == "Pro+":
        stmt = select(Module).where(Module.is_active.is_(True))
    elif tier == "MVP":
        stmt = select(Module).where(Module.is_active.is_(True), Module.tier == "MVP")
    else:
        return []

    modules = list((await session.execute(stmt.order_by(*_ORDERING))).scalars().all())

    statuses: dict[str, bool] = {}
    if user_id:
        statuses = await get_favorite_statuses(session, user_id, [m.id for m in modules])

    return [{"module": m, "is_favorite": statuses.get(m.id, False)} for m in modules]


async def update_positions(session: AsyncSession, positions: list[tuple[str, int]]) -> None:
    for module_id, position in positions:
        await session.execute(update(Module).where(Module.id == module_id).values(position=position))
    await session.flush()


async def seed_modules(session: AsyncSession) -> list[Module]:
    """清空模块表并写入内置目录"""
    await session.execute(delete(UserFavorite))
    await session.execute(delete(Module))
    for idx, (slug, name, tier, cover) in enumerate(SEED_MODULES):
        session.add(Module(slug=slug, name=name, tier=tier, cover_image=cover, position=idx))
    await session.flush()
    logger.info(f"已写入 {len(SEED_MODULES)} 个内置模块")
    return await list_modules(session)
