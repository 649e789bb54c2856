from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from academics.core.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """
    Pool settings per backend. PostgreSQL (asyncpg) gets pre-ping and recycling so idle
    connections dropped by the server are replaced; SQLite (aiosqlite, local runs) has no
    server-side timeouts and only needs cross-thread access.
    """
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_recycle": 300}


engine = create_async_engine(settings.database_url, echo=False, future=True, **engine_options(settings.database_url))

# Promotions commit once per student; keep loaded rows readable after each commit.
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
