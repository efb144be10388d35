"""
PostgreSQL 비동기 세션 관리
"""
import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from codeduel.core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """ORM 모델 베이스"""
    pass


engine: AsyncEngine = create_async_engine(
    settings.POSTGRES_URL,
    echo=False,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI 의존성 주입용 DB 세션"""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db():
    """DB 연결 확인 및 테이블 생성"""
    # 모델 등록
    from codeduel.infrastructure.persistence import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(text("SELECT 1"))


async def ping_db(session_factory: async_sessionmaker = AsyncSessionLocal) -> bool:
    """DB 연결 상태 확인"""
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"DB 연결 확인 실패: {str(e)}")
        return False


async def close_db():
    """DB 엔진 종료"""
    await engine.dispose()
