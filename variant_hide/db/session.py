# variant_hide/db/session.py
# 统一的异步会话工厂（API 连接池 + 队列 NullPool）
from __future__ import annotations

import logging
import re

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from variant_hide.core.config import get_settings

log = logging.getLogger("variant_hide.db")


# ---- DSN 归一：把 DSN 统一到 psycopg3 与 aiosqlite ----
def normalize_async_dsn(url: str) -> str:
    url = (url or "").strip()
    # 有些环境会把值写成 '"postgresql+psycopg://..."'，这里统一剥掉两侧引号
    if len(url) >= 2 and url[0] == url[-1] and url[0] in ("'", '"'):
        url = url[1:-1].strip()
    # sqlite:/// → sqlite+aiosqlite:///
    if url.startswith("sqlite:///"):
        return "sqlite+aiosqlite://" + url[len("sqlite:///") - 1 :]
    # postgres/postgresql(+*) → postgresql+psycopg
    if url.startswith("postgresql+asyncpg://") or url.startswith("postgres+asyncpg://"):
        return re.sub(r"^postgres(?:ql)?\+asyncpg://", "postgresql+psycopg://", url)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


_settings = get_settings()
ASYNC_URL = normalize_async_dsn(_settings.DATABASE_URL)

log.info("[DB] Using DSN (async): %s", re.sub(r"//[^@/]*@", "//***@", ASYNC_URL))

# ---- API 进程：连接池 Engine ----
async_engine: AsyncEngine = create_async_engine(
    ASYNC_URL,
    future=True,
    echo=_settings.SQL_ECHO,
    pool_pre_ping=True,
)

AsyncSessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# ---- 队列任务：每个 job 都在新的 event loop 里跑（asyncio.run），用 NullPool 避免连接跨 loop ----
job_engine: AsyncEngine = create_async_engine(
    ASYNC_URL,
    future=True,
    echo=_settings.SQL_ECHO,
    poolclass=NullPool,
)

JobSessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=job_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ---- 关闭引擎（测试/生命周期） ----
async def close_engines() -> None:
    await async_engine.dispose()
    await job_engine.dispose()
