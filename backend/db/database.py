from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from core.config import settings


class Base(DeclarativeBase):
    pass


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    kwargs = {"echo": echo}
    if url.startswith("postgresql"):
        kwargs["pool_pre_ping"] = True
    return create_async_engine(url, **kwargs)


engine = create_engine_for(settings.database_url, echo=settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


def import_models() -> None:
    # Registers every table on Base.metadata
    from db import company, item, location  # noqa: F401
    from db.inventory import putaway_batch, stock, transaction  # noqa: F401


async def create_db_and_tables(bind: AsyncEngine = engine):
    import_models()
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return async_session_maker
