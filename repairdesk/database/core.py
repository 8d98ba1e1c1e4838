from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def create_session_factory(database_url: str, echo: bool = False):
    """Create engine + session factory for the given URL"""
    engine = create_async_engine(database_url, echo=echo)
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    return engine, session_factory


async def init_db(engine: AsyncEngine):
    # Import models so they are registered on Base.metadata
    from repairdesk.database import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
