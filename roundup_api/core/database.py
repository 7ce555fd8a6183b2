"""
Database configuration for the Round-Up Donation API
"""

from pathlib import Path

from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

# Base class for models
Base = declarative_base()


def async_database_url(url: str) -> str:
    """Map a plain database URL onto its async driver"""
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create the async engine for the configured database"""
    return create_async_engine(
        async_database_url(url),
        echo=echo,
        future=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def ensure_sqlite_directory(url: URL) -> None:
    """SQLite creates the database file but not its parent directory"""
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database tables"""
    ensure_sqlite_directory(engine.url)

    # Models must be registered on Base.metadata before create_all
    import roundup_api.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
