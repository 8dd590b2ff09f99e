"""Async database engine and session factory"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from screener.app.core.config import settings


Base = declarative_base()


def create_engine(database_url: str = None):
    """Create an async engine for the configured database"""
    url = database_url or settings.DATABASE_URL
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.DEBUG)
    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def create_session_factory(engine) -> async_sessionmaker:
    """Create a session factory bound to ``engine``"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = create_engine()
AsyncSessionLocal = create_session_factory(engine)
