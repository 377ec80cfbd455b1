from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.config import get_settings

settings = get_settings()

# Every connection is read-only and time-boxed: the search layer never writes
engine = create_async_engine(
    settings.async_database_url,
    echo=settings.DATABASE_ECHO,
    pool_size=settings.DATABASE_POOL_SIZE,
    pool_pre_ping=True,
    connect_args={
        "server_settings": {
            "application_name": "content-search",
            "default_transaction_read_only": "on",
            "statement_timeout": str(settings.DATABASE_STATEMENT_TIMEOUT_MS),
        }
    },
)

async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Declarative base for the read-only content table mappings."""


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a short-lived read-only session.

    Nothing is committed; the session is closed when the request ends.
    """
    async with async_session_factory() as session:
        yield session
