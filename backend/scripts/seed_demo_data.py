"""
Seed a demo company, two items, two locations and their opening stock.

Run locally:
  python backend/scripts/seed_demo_data.py

It uses the same DATABASE_* env vars as the backend (dotenv supported by core.config).
Opening stock goes through the movement engine, so every unit on a shelf has
an ADD transaction behind it. Re-running only tops up cells below their target.
"""

from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select  # noqa: E402

from core.config import settings  # noqa: E402
from core.logging import setup_logging  # noqa: E402
from db.company import Company  # noqa: E402
from db.database import async_session_maker, create_db_and_tables  # noqa: E402
from db.inventory.stock import StockRecord  # noqa: E402
from db.item import Item  # noqa: E402
from ledger.engine import MovementEngine  # noqa: E402
from ledger.retry import ConnectRetryPolicy  # noqa: E402
from ledger.sql import SqlUnitOfWorkFactory  # noqa: E402


@dataclass(frozen=True)
class SeedItem:
    sku: str
    name: str
    barcode: str


@dataclass(frozen=True)
class SeedStock:
    sku: str
    location_label: str
    quantity: int


SEED_COMPANY = "TEST"

SEED_ITEMS: list[SeedItem] = [
    SeedItem(sku="TEST001", name="Test Item 1", barcode="1234567890"),
    SeedItem(sku="TEST002", name="Test Item 2", barcode="0987654321"),
]

SEED_STOCK: list[SeedStock] = [
    SeedStock(sku="TEST001", location_label="A-01-01", quantity=10),
    SeedStock(sku="TEST002", location_label="A-01-02", quantity=5),
]


async def main() -> None:
    setup_logging(settings.log_level)
    await create_db_and_tables()

    async with async_session_maker() as db:
        # 1) Company + items (idempotent)
        res = await db.execute(select(Company).where(func.lower(Company.name) == SEED_COMPANY.lower()))
        company = res.scalar_one_or_none()
        if not company:
            company = Company(name=SEED_COMPANY)
            db.add(company)
            await db.flush()

        created = 0
        items_by_sku = {}
        for s in SEED_ITEMS:
            res = await db.execute(select(Item).where(Item.sku == s.sku))
            item = res.scalar_one_or_none()
            if not item:
                item = Item(sku=s.sku, name=s.name, barcode=s.barcode, company_id=company.id)
                db.add(item)
                created += 1
            items_by_sku[s.sku] = item
        await db.commit()

    # 2) Opening stock through the ledger
    engine = MovementEngine(SqlUnitOfWorkFactory(async_session_maker, ConnectRetryPolicy.from_settings(settings)))
    added = 0
    for s in SEED_STOCK:
        item = items_by_sku[s.sku]
        async with async_session_maker() as db:
            current = await db.scalar(
                select(func.coalesce(func.sum(StockRecord.quantity), 0))
                .where(StockRecord.item_id == item.id)
            )
        missing = s.quantity - int(current or 0)
        if missing > 0:
            await engine.putaway(item.id, s.location_label, missing, actor="seed")
            added += missing

    print(f"Done. Items created: {created}. Units put away: {added}.")


if __name__ == "__main__":
    asyncio.run(main())
