"""Database connection and session management"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from gri.config import get_settings

settings = get_settings()


def build_engine(database_url: str, pool_size: int = 10, echo: bool = False) -> AsyncEngine:
    """Create an async engine; SQLite URLs get the driver's default pool"""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo)
    return create_async_engine(database_url, pool_size=pool_size, echo=echo)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = build_engine(
    settings.database_url,
    pool_size=settings.database_pool_size,
    echo=settings.debug,
)

async_session_factory = build_session_factory(engine)


class Base(DeclarativeBase):
    """Base class for all models"""
    pass


async def init_db(bind: AsyncEngine = engine):
    """Initialize database tables"""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(bind: AsyncEngine = engine):
    """Close database connections"""
    await bind.dispose()
