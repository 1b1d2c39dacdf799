"""
Database engine and session management.

One async engine per process backs collections, saved decks and the
Scryfall card cache. PostgreSQL (asyncpg) in production; tests swap in
in-memory SQLite through aiosqlite.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from deckmender.config import settings
from deckmender.models.db import Base

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

# Records stay readable after commit; routers serialize them afterwards
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session; commits when the handler returns.

    CRUD functions in deckmender.db.operations only flush, so a handler
    that raises leaves no partial import behind.

    Usage in a router:
        @router.get("/{user_id}")
        async def get_collection(
            user_id: str,
            session: Annotated[AsyncSession, Depends(get_session)],
        ) -> CollectionResponse:
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create the collection, deck and card cache tables if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
