from typing import AsyncGenerator
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from loguru import logger

from app.config.settings import settings
from app.models.base import Base

async_engine = create_async_engine(
    settings.get_database_uri,
    echo=False,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

def get_session_factory() -> async_sessionmaker:
    """Dependency for code that needs more than one session per request"""
    return AsyncSessionLocal

async def init_db():
    """Create tables and check the database connection"""
    try:
        # Import models so they register on Base.metadata
        import app.models.career  # noqa: F401
        import app.models.conversation  # noqa: F401

        async with async_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            await conn.execute(text("SELECT 1"))
        logger.info("Successfully connected to database")
    except Exception as e:
        logger.error(f"Error initializing database: {str(e)}")
        raise

async def close_db():
    """Close database connections"""
    try:
        await async_engine.dispose()
        logger.info("Successfully closed database connections")
    except Exception as e:
        logger.error(f"Error closing database connections: {str(e)}")
        raise
