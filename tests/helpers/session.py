# tests/helpers/session.py
from contextlib import asynccontextmanager


@asynccontextmanager
async def _borrow(session):
    """
    借用用例里的 Session：
    - 不关闭、不回滚，交还给 fixture 统一收尾；
    - 让 plugin / 队列处理器与用例共享同一事务视图。
    """
    yield session


def shared_session_maker(session):
    """模拟 async_sessionmaker：每次调用都返回借用同一 Session 的上下文。"""
    return lambda: _borrow(session)
