# tests/conftest.py
from __future__ import annotations

from typing import AsyncGenerator, Dict
from uuid import UUID

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from db.company import Company
from db.database import create_db_and_tables, get_session_maker
from db.inventory.stock import StockRecord
from db.item import Item
from db.location import Location
from ledger.batches import BatchEditor
from ledger.engine import MovementEngine
from ledger.memory import MemoryStore
from ledger.retry import ConnectRetryPolicy
from ledger.sql import SqlUnitOfWorkFactory
from main import app


async def _no_sleep(_seconds: float) -> None:
    return None


# ==========================
# In-memory ledger
# ==========================


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def ledger(store: MemoryStore) -> MovementEngine:
    return MovementEngine(store)


@pytest.fixture
def editor(store: MemoryStore) -> BatchEditor:
    return BatchEditor(store)


@pytest.fixture
def items(store: MemoryStore) -> Dict[str, UUID]:
    """Items X and Y, keyed by sku."""
    return {sku: store.add_item(sku, name=f"Item {sku}", barcode=f"BC-{sku}").id for sku in ("X", "Y")}


# ==========================
# SQLite-backed ledger (one database file per test)
# ==========================


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", poolclass=NullPool)
    await create_db_and_tables(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def session_maker(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
def uow_factory(session_maker) -> SqlUnitOfWorkFactory:
    return SqlUnitOfWorkFactory(session_maker, ConnectRetryPolicy(attempts=2, sleep=_no_sleep))


@pytest.fixture
def sql_ledger(uow_factory) -> MovementEngine:
    return MovementEngine(uow_factory)


@pytest.fixture
def sql_editor(uow_factory) -> BatchEditor:
    return BatchEditor(uow_factory)


@pytest_asyncio.fixture(scope="function")
async def sql_items(session_maker) -> Dict[str, UUID]:
    """Company ACME owning items X and Y, keyed by sku."""
    async with session_maker() as db:
        company = Company(name="ACME")
        db.add(company)
        await db.flush()
        rows = {
            sku: Item(sku=sku, name=f"Item {sku}", barcode=f"BC-{sku}", company_id=company.id)
            for sku in ("X", "Y")
        }
        db.add_all(rows.values())
        await db.commit()
        ids = {sku: row.id for sku, row in rows.items()}
        ids["company"] = company.id
        return ids


@pytest.fixture
def stock_quantity(session_maker):
    """Quantity of one cell straight from the table, None when the row does not exist."""

    async def read(item_id: UUID, label: str):
        async with session_maker() as db:
            return await db.scalar(
                select(StockRecord.quantity)
                .join(Location, StockRecord.location_id == Location.id)
                .where(StockRecord.item_id == item_id, Location.label == label)
            )

    return read


# ==========================
# HTTP client over the ASGI app
# ==========================


@pytest_asyncio.fixture(scope="function")
async def client(session_maker) -> AsyncGenerator[httpx.AsyncClient, None]:
    app.dependency_overrides[get_session_maker] = lambda: session_maker
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
    finally:
        app.dependency_overrides.clear()
