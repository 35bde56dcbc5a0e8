"""
Database Configuration for EchoWrite

Async SQLAlchemy engine and session management.
A DatabaseManager is constructed explicitly (by the app lifespan or a
script) and handed to whoever needs sessions; there is no module-level
connection.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from app.config.settings import Settings
from app.infrastructure.exceptions import ConfigurationError


def normalize_database_url(database_url: str) -> str:
    """Force the asyncpg driver on plain postgres URLs."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return database_url


class DatabaseManager:
    """
    Owns the async engine and session factory for one database.

    Args:
        database_url: SQLAlchemy URL (postgres URLs are upgraded to asyncpg)
        echo: Log emitted SQL
        pool_size / max_overflow / pool_timeout: QueuePool tuning
    """

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
    ):
        self._url = normalize_database_url(database_url)
        self._engine: AsyncEngine = create_async_engine(
            self._url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,  # Verify connections before use
        )
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseManager":
        if not settings.database_url:
            raise ConfigurationError("DATABASE_URL is required", missing_keys=["DATABASE_URL"])
        return cls(
            settings.database_url,
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    async def ping(self) -> None:
        """Verify the connection works."""
        async with self._session_factory() as session:
            await session.execute(text("SELECT 1"))

    async def create_tables(self) -> None:
        """Create all tables from SQLModel metadata."""
        async with self._engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def close(self) -> None:
        """Close engine and dispose of connection pool."""
        await self._engine.dispose()


@asynccontextmanager
async def session_scope(db: DatabaseManager) -> AsyncGenerator[AsyncSession, None]:
    """
    Transactional session for code running outside FastAPI requests.

    Usage:
        async with session_scope(db) as session:
            result = await session.execute(query)
    """
    async with db.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_db_manager(request: Request) -> DatabaseManager:
    """The manager the app lifespan stored on ``app.state``."""
    db: Optional[DatabaseManager] = getattr(request.app.state, "db", None)
    if db is None:
        raise ConfigurationError("Database is not configured", missing_keys=["DATABASE_URL"])
    return db


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection for async database sessions.

    Commits when the request handler returns, rolls back if it raises.
    """
    db = get_db_manager(request)
    async with session_scope(db) as session:
        yield session
