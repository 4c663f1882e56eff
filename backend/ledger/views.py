"""Read-side queries: stock lookups, stock summary, transaction history, batch detail."""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from core.errors import NotFound, ValidationError
from db.inventory.putaway_batch import PutawayBatch as PutawayBatchModel
from db.inventory.stock import StockRecord as StockRecordModel
from db.inventory.transaction import Transaction as TransactionModel
from db.item import Item as ItemModel
from db.location import Location as LocationModel
from ledger.types import TransactionStatus, TransactionType


def _stock_row(st: StockRecordModel, it: ItemModel, loc: LocationModel) -> Dict:
    return {
        "id": st.id,
        "item_id": it.id,
        "sku": it.sku,
        "item_name": it.name,
        "barcode": it.barcode,
        "company_id": it.company_id,
        "location_id": loc.id,
        "location_label": loc.label,
        "quantity": int(st.quantity or 0),
    }


async def stock_at_location(db: AsyncSession, label: str) -> List[Dict]:
    """Non-empty cells at one location, ordered by sku."""
    wanted = (label or "").strip().upper()
    res = await db.execute(select(LocationModel).where(func.upper(LocationModel.label) == wanted))
    loc = res.scalar_one_or_none()
    if not loc:
        raise NotFound("location", wanted)

    res = await db.execute(
        select(StockRecordModel, ItemModel)
        .join(ItemModel, StockRecordModel.item_id == ItemModel.id)
        .where(StockRecordModel.location_id == loc.id)
        .where(StockRecordModel.quantity > 0)
        .order_by(ItemModel.sku.asc())
    )
    return [_stock_row(st, it, loc) for (st, it) in res.all()]


async def lookup_stock(db: AsyncSession, sku: Optional[str] = None, company_id: Optional[UUID] = None) -> List[Dict]:
    """Non-empty cells matching a sku fragment and/or company, ordered by sku then label."""
    sku = (sku or "").strip()
    if not sku and company_id is None:
        raise ValidationError("either sku or company_id is required")

    stmt = (
        select(StockRecordModel, ItemModel, LocationModel)
        .join(ItemModel, StockRecordModel.item_id == ItemModel.id)
        .join(LocationModel, StockRecordModel.location_id == LocationModel.id)
        .where(StockRecordModel.quantity > 0)
    )
    if sku:
        stmt = stmt.where(func.lower(ItemModel.sku).like(f"%{sku.lower()}%"))
    if company_id is not None:
        stmt = stmt.where(ItemModel.company_id == company_id)

    res = await db.execute(stmt.order_by(ItemModel.sku.asc(), LocationModel.label.asc()))
    return [_stock_row(st, it, loc) for (st, it, loc) in res.all()]


async def stock_summary(db: AsyncSession, company_id: Optional[UUID] = None) -> List[Dict]:
    """
    Totals per sku. Locations are listed as "A-01-02 (5)" and only for
    non-empty cells; empty cells still count toward the (zero) total.
    """
    stmt = (
        select(StockRecordModel, ItemModel, LocationModel)
        .join(ItemModel, StockRecordModel.item_id == ItemModel.id)
        .join(LocationModel, StockRecordModel.location_id == LocationModel.id)
    )
    if company_id is not None:
        stmt = stmt.where(ItemModel.company_id == company_id)
    res = await db.execute(stmt.order_by(ItemModel.sku.asc(), LocationModel.label.asc()))

    by_sku: Dict[str, Dict] = {}
    for (st, it, loc) in res.all():
        row = by_sku.setdefault(
            it.sku,
            {"sku": it.sku, "name": it.name, "total_quantity": 0, "locations": []},
        )
        qty = int(st.quantity or 0)
        row["total_quantity"] += qty
        if qty > 0:
            row["locations"].append(f"{loc.label} ({qty})")
    return list(by_sku.values())


def _naive_utc(value: datetime) -> datetime:
    # created_at is stored as naive UTC
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _transaction_row(tx: TransactionModel, it: ItemModel, from_label: Optional[str], to_label: Optional[str]) -> Dict:
    return {
        "id": tx.id,
        "created_at": tx.created_at.isoformat() if tx.created_at else None,
        "type": tx.type,
        "status": tx.status,
        "quantity": int(tx.quantity),
        "item_id": tx.item_id,
        "sku": it.sku,
        "item_name": it.name,
        "from_location": from_label,
        "to_location": to_label,
        "putaway_batch_id": tx.putaway_batch_id,
        "created_by": tx.created_by,
        "edited_by": tx.edited_by,
        "undone_by": tx.undone_by,
    }


async def transaction_history(
    db: AsyncSession,
    type: Optional[TransactionType] = None,
    status: Optional[TransactionStatus] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    batch_id: Optional[UUID] = None,
    limit: int = 200,
) -> List[Dict]:
    FromLocation = aliased(LocationModel)
    ToLocation = aliased(LocationModel)

    stmt = (
        select(TransactionModel, ItemModel, FromLocation.label, ToLocation.label)
        .join(ItemModel, TransactionModel.item_id == ItemModel.id)
        .outerjoin(FromLocation, TransactionModel.from_location_id == FromLocation.id)
        .outerjoin(ToLocation, TransactionModel.to_location_id == ToLocation.id)
    )
    if type is not None:
        stmt = stmt.where(TransactionModel.type == TransactionType(type).value)
    if status is not None:
        stmt = stmt.where(TransactionModel.status == TransactionStatus(status).value)
    if start is not None:
        stmt = stmt.where(TransactionModel.created_at >= _naive_utc(start))
    if end is not None:
        stmt = stmt.where(TransactionModel.created_at <= _naive_utc(end))
    if batch_id is not None:
        stmt = stmt.where(TransactionModel.putaway_batch_id == batch_id)

    stmt = stmt.order_by(TransactionModel.created_at.desc(), TransactionModel.batch_line.desc()).limit(limit)
    res = await db.execute(stmt)
    return [_transaction_row(tx, it, from_label, to_label) for (tx, it, from_label, to_label) in res.all()]


async def batch_detail(db: AsyncSession, batch_id: UUID) -> Dict:
    res = await db.execute(
        select(PutawayBatchModel, LocationModel)
        .join(LocationModel, PutawayBatchModel.location_id == LocationModel.id)
        .where(PutawayBatchModel.id == batch_id)
    )
    row = res.first()
    if not row:
        raise NotFound("putaway batch", batch_id)
    batch, loc = row

    res = await db.execute(
        select(TransactionModel, ItemModel)
        .join(ItemModel, TransactionModel.item_id == ItemModel.id)
        .where(TransactionModel.putaway_batch_id == batch_id)
        .order_by(TransactionModel.batch_line.asc())
    )
    return {
        "id": batch.id,
        "status": batch.status,
        "location_id": loc.id,
        "location_label": loc.label,
        "created_by": batch.created_by,
        "edited_by": batch.edited_by,
        "undone_by": batch.undone_by,
        "created_at": batch.created_at.isoformat() if batch.created_at else None,
        "transactions": [_transaction_row(tx, it, None, loc.label) for (tx, it) in res.all()],
    }
