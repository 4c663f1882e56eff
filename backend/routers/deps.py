from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import settings
from db.database import get_session_maker
from ledger.batches import BatchEditor
from ledger.engine import MovementEngine
from ledger.retry import ConnectRetryPolicy
from ledger.sql import SqlUnitOfWorkFactory


def get_uow_factory(
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
) -> SqlUnitOfWorkFactory:
    return SqlUnitOfWorkFactory(session_maker, ConnectRetryPolicy.from_settings(settings))


def get_movement_engine(uow_factory=Depends(get_uow_factory)) -> MovementEngine:
    return MovementEngine(uow_factory)


def get_batch_editor(uow_factory=Depends(get_uow_factory)) -> BatchEditor:
    return BatchEditor(uow_factory)


async def get_async_session(
    session_maker: async_sessionmaker[AsyncSession] = Depends(get_session_maker),
) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session
