from typing import Tuple
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlmodel import SQLModel
from vybe_auth.db.utils import _normalize_db_url


def build_engine(database_url: str, **engine_kwargs) -> Tuple[AsyncEngine, async_sessionmaker]:
    """Create the engine and session factory owned by the process entry point."""
    async_engine = create_async_engine(_normalize_db_url(database_url), echo=False, **engine_kwargs)
    async_session = async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)
    return async_engine, async_session


async def create_tables(async_engine: AsyncEngine) -> None:
    # importing the schema registers the tables on SQLModel.metadata
    import vybe_auth.schema  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
