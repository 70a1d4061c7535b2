"""
测试公共夹具

- 测试环境变量在导入 app 之前设置（SQLite 内存库，不连接外部服务）
- 每个测试使用独立的内存数据库
- 通过 dependency_overrides 注入测试会话
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret"
for _var in ("REDIS_URL", "ANTHROPIC_API_KEY", "OPENAI_API_KEY", "PERPLEXITY_API_KEY"):
    os.environ[_var] = ""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.auth.rate_limit import get_rate_limiter
from app.auth.security import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.services import users as user_service


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """直接操作数据库的会话（服务层测试用）"""
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    get_rate_limiter().reset()
    yield
    get_rate_limiter().reset()


@pytest_asyncio.fixture
async def client(session_factory):
    """挂载测试数据库的 HTTP 客户端"""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _create_user(session_factory, email: str, password: str, **kwargs):
    async with session_factory() as session:
        user = await user_service.create_user(session, email=email, password=password, **kwargs)
        await session.commit()
        return user


def auth_headers(user) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.email)}"}


@pytest_asyncio.fixture
async def admin_user(session_factory):
    return await _create_user(session_factory, "admin@example.com", "admin-pass", is_admin=True, tier="Pro+")


@pytest_asyncio.fixture
async def basic_user(session_factory):
    return await _create_user(session_factory, "user@example.com", "user-pass", tier="MVP")


@pytest_asyncio.fixture
async def other_user(session_factory):
    return await _create_user(session_factory, "other@example.com", "other-pass", tier="Pro+")


@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture
def user_headers(basic_user):
    return auth_headers(basic_user)


@pytest.fixture
def other_headers(other_user):
    return auth_headers(other_user)
