# tests/conftest.py
from __future__ import annotations

import os
from typing import AsyncGenerator

# ============================================================
# ★★ 关键：在 import variant_hide.* 之前设置环境 ★★
#   - session.py 在 import 时就建 engine，必须先指向 sqlite
#   - worker.py 在 import 时决定是否 eager
# ============================================================
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CELERY_ALWAYS_EAGER"] = "1"
os.environ["ORDER_API_BASE_URL"] = "http://order-api.test"
os.environ["ORDER_API_TOKEN"] = "test-token"

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from variant_hide.db.base import Base, init_models  # noqa: E402
from variant_hide.domain.context import RequestContext  # noqa: E402

TEST_DSN = "sqlite+aiosqlite://"


# =========================================
# 每用例独立的内存库（StaticPool：同一连接，表在用例内可见）
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    init_models()
    engine = create_async_engine(
        TEST_DSN,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def async_session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(async_session_maker) -> AsyncGenerator[AsyncSession, None]:
    """
    标准 Session（用例结束自动 commit / 异常 rollback）
    """
    async with async_session_maker() as sess:
        try:
            yield sess
            if sess.in_transaction():
                await sess.commit()
        except Exception:
            if sess.in_transaction():
                await sess.rollback()
            raise


# =========================================
# 上下文
# =========================================
@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(channel_id=1, channel_token="tok-default", language_code="en", user_id=1)


# =========================================
# 测试态 Celery：处理器注册表每用例清空
# =========================================
@pytest.fixture(autouse=True)
def _clean_processors():
    from variant_hide import tasks

    tasks._PROCESSORS.clear()
    yield
    tasks._PROCESSORS.clear()


# =========================================
# FastAPI / httpx AsyncClient（不跑 lifespan，app.state 由用例装配）
# =========================================
@pytest_asyncio.fixture(scope="function")
async def client() -> AsyncGenerator[httpx.AsyncClient, None]:
    from variant_hide.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport,
        base_url="http://testserver",
        timeout=httpx.Timeout(10.0, connect=5.0, read=10.0, write=5.0, pool=5.0),
    ) as c:
        yield c
