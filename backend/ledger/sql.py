"""
SQLAlchemy implementation of the ledger ports.

Stock cells are only ever changed by single conditional statements (upsert for
increments, guarded UPDATE for decrements), so two units of work drawing on the
same cell cannot both pass the sufficiency check. Rows that drive a decision
(stock by id, the transaction being undone, the batch being edited) are read
FOR UPDATE.
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.errors import InsufficientStock, NotFound, PersistenceFailure, QuantityOverflow
from core.labels import normalize_label, parse_label
from db.inventory.putaway_batch import PutawayBatch as PutawayBatchModel
from db.inventory.stock import StockRecord as StockRecordModel
from db.inventory.transaction import Transaction as TransactionModel
from db.item import Item as ItemModel
from db.location import Location as LocationModel
from ledger.retry import ConnectRetryPolicy
from ledger.types import (
    MAX_QUANTITY,
    BatchStatus,
    Item,
    Location,
    Movement,
    PutawayBatchRecord,
    StockCell,
    TransactionRecord,
    TransactionStatus,
    movement_columns,
    movement_from_columns,
)

logger = logging.getLogger(__name__)


def _insert_for(dialect_name: str):
    if dialect_name == "postgresql":
        return pg_insert
    if dialect_name == "sqlite":
        return sqlite_insert
    raise PersistenceFailure(f"unsupported database dialect {dialect_name!r}", dialect=dialect_name)


def to_cell(row) -> StockCell:
    return StockCell(id=row.id, item_id=row.item_id, location_id=row.location_id, quantity=int(row.quantity))


def to_transaction(m: TransactionModel) -> TransactionRecord:
    return TransactionRecord(
        id=m.id,
        item_id=m.item_id,
        quantity=int(m.quantity),
        movement=movement_from_columns(m.type, m.from_location_id, m.to_location_id),
        status=TransactionStatus(m.status),
        putaway_batch_id=m.putaway_batch_id,
        batch_line=m.batch_line,
        created_by=m.created_by,
        edited_by=m.edited_by,
        undone_by=m.undone_by,
        created_at=m.created_at,
    )


def to_batch(m: PutawayBatchModel) -> PutawayBatchRecord:
    return PutawayBatchRecord(
        id=m.id,
        location_id=m.location_id,
        status=BatchStatus(m.status),
        created_by=m.created_by,
        edited_by=m.edited_by,
        undone_by=m.undone_by,
        created_at=m.created_at,
    )


def to_location(m: LocationModel) -> Location:
    return Location(id=m.id, label=m.label, aisle=m.aisle, bay=m.bay, height=m.height, type=m.type)


def to_item(m: ItemModel) -> Item:
    return Item(id=m.id, sku=m.sku, name=m.name, barcode=m.barcode, company_id=m.company_id)


class SqlStockRepository:
    def __init__(self, session: AsyncSession, dialect_name: str):
        self.session = session
        self.dialect_name = dialect_name
        self.table = StockRecordModel.__table__

    def _columns(self):
        t = self.table
        return (t.c.id, t.c.item_id, t.c.location_id, t.c.quantity)

    async def get(self, item_id: UUID, location_id: UUID) -> Optional[StockCell]:
        t = self.table
        row = (
            await self.session.execute(
                select(*self._columns()).where(t.c.item_id == item_id, t.c.location_id == location_id)
            )
        ).first()
        return to_cell(row) if row else None

    async def get_by_id(self, stock_id: UUID) -> Optional[StockCell]:
        t = self.table
        row = (
            await self.session.execute(select(*self._columns()).where(t.c.id == stock_id).with_for_update())
        ).first()
        return to_cell(row) if row else None

    async def adjust(self, item_id: UUID, location_id: UUID, delta: int) -> StockCell:
        t = self.table
        if delta >= 0:
            insert = _insert_for(self.dialect_name)
            stmt = (
                insert(t)
                .values(id=uuid.uuid4(), item_id=item_id, location_id=location_id, quantity=delta)
                .on_conflict_do_update(
                    index_elements=[t.c.item_id, t.c.location_id],
                    set_={"quantity": t.c.quantity + delta},
                    where=t.c.quantity <= MAX_QUANTITY - delta,
                )
                .returning(*self._columns())
            )
            row = (await self.session.execute(stmt)).first()
            if row is None:
                current = await self.get(item_id, location_id)
                raise QuantityOverflow(item_id, location_id, current.quantity, delta, MAX_QUANTITY)
            return to_cell(row)

        stmt = (
            update(t)
            .where(t.c.item_id == item_id, t.c.location_id == location_id, t.c.quantity >= -delta)
            .values(quantity=t.c.quantity + delta)
            .returning(*self._columns())
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            current = await self.get(item_id, location_id)
            raise InsufficientStock(item_id, location_id, current.quantity if current else 0, -delta)
        return to_cell(row)


class SqlTransactionLog:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _load(self, transaction_id: UUID, lock: bool = False) -> Optional[TransactionModel]:
        stmt = select(TransactionModel).where(TransactionModel.id == transaction_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def _require(self, transaction_id: UUID) -> TransactionModel:
        m = await self._load(transaction_id)
        if m is None:
            raise NotFound("transaction", transaction_id)
        return m

    async def record(
        self,
        movement: Movement,
        quantity: int,
        item_id: UUID,
        *,
        batch_id: Optional[UUID] = None,
        batch_line: Optional[int] = None,
        actor: Optional[str] = None,
    ) -> TransactionRecord:
        from_location_id, to_location_id = movement_columns(movement)
        m = TransactionModel(
            id=uuid.uuid4(),
            type=movement.type.value,
            status=TransactionStatus.ACTIVE.value,
            quantity=quantity,
            item_id=item_id,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            putaway_batch_id=batch_id,
            batch_line=batch_line,
            created_by=actor,
        )
        self.session.add(m)
        await self.session.flush()
        await self.session.refresh(m)
        return to_transaction(m)

    async def find(self, transaction_id: UUID, *, lock: bool = False) -> Optional[TransactionRecord]:
        m = await self._load(transaction_id, lock=lock)
        return to_transaction(m) if m else None

    async def mark_status(
        self, transaction_id: UUID, status: TransactionStatus, actor: Optional[str] = None
    ) -> TransactionRecord:
        m = await self._require(transaction_id)
        m.status = status.value
        if status is TransactionStatus.EDITED:
            m.edited_by = actor
        elif status is TransactionStatus.UNDONE:
            m.undone_by = actor
        await self.session.flush()
        return to_transaction(m)

    async def set_quantity(self, transaction_id: UUID, quantity: int) -> TransactionRecord:
        m = await self._require(transaction_id)
        m.quantity = quantity
        await self.session.flush()
        return to_transaction(m)

    async def list_by_batch(self, batch_id: UUID, *, lock: bool = False) -> List[TransactionRecord]:
        stmt = (
            select(TransactionModel)
            .where(TransactionModel.putaway_batch_id == batch_id)
            .order_by(TransactionModel.batch_line.asc(), TransactionModel.created_at.asc())
        )
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        res = await self.session.execute(stmt)
        return [to_transaction(m) for m in res.scalars().all()]


class SqlBatchStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _load(self, batch_id: UUID, lock: bool = False) -> Optional[PutawayBatchModel]:
        stmt = select(PutawayBatchModel).where(PutawayBatchModel.id == batch_id)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def create(self, location_id: UUID, actor: Optional[str] = None) -> PutawayBatchRecord:
        m = PutawayBatchModel(
            id=uuid.uuid4(),
            location_id=location_id,
            status=BatchStatus.COMPLETED.value,
            created_by=actor,
        )
        self.session.add(m)
        await self.session.flush()
        await self.session.refresh(m)
        return to_batch(m)

    async def find(self, batch_id: UUID, *, lock: bool = False) -> Optional[PutawayBatchRecord]:
        m = await self._load(batch_id, lock=lock)
        return to_batch(m) if m else None

    async def set_status(
        self, batch_id: UUID, status: BatchStatus, actor: Optional[str] = None
    ) -> PutawayBatchRecord:
        m = await self._load(batch_id)
        if m is None:
            raise NotFound("putaway batch", batch_id)
        m.status = status.value
        if status is BatchStatus.EDITED:
            m.edited_by = actor
        elif status is BatchStatus.UNDONE:
            m.undone_by = actor
        await self.session.flush()
        return to_batch(m)


class SqlLocationDirectory:
    def __init__(self, session: AsyncSession, dialect_name: str):
        self.session = session
        self.dialect_name = dialect_name

    async def get(self, location_id: UUID) -> Optional[Location]:
        m = await self.session.get(LocationModel, location_id)
        return to_location(m) if m else None

    async def resolve(self, label: str) -> Optional[Location]:
        res = await self.session.execute(
            select(LocationModel).where(func.upper(LocationModel.label) == (label or "").strip().upper())
        )
        m = res.scalar_one_or_none()
        return to_location(m) if m else None

    async def resolve_or_create(self, label: str) -> Location:
        parts = parse_label(label)
        normalized = normalize_label(label)
        existing = await self.resolve(normalized)
        if existing is not None:
            return existing

        insert = _insert_for(self.dialect_name)
        await self.session.execute(
            insert(LocationModel.__table__)
            .values(
                id=uuid.uuid4(),
                label=normalized,
                aisle=parts.aisle,
                bay=parts.bay,
                height=parts.height,
                type="BAY",
            )
            .on_conflict_do_nothing(index_elements=["label"])
        )
        created = await self.resolve(normalized)
        if created is None:
            raise PersistenceFailure(f"location {normalized} could not be created", location=normalized)
        logger.info("created location %s", normalized)
        return created


class SqlItemDirectory:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, item_id: UUID) -> Optional[Item]:
        m = await self.session.get(ItemModel, item_id)
        return to_item(m) if m else None

    async def by_barcode(self, barcode: str) -> Optional[Item]:
        res = await self.session.execute(select(ItemModel).where(ItemModel.barcode == (barcode or "").strip()))
        m = res.scalar_one_or_none()
        return to_item(m) if m else None


class SqlUnitOfWork:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession], retry: Optional[ConnectRetryPolicy] = None):
        self._session_maker = session_maker
        self._retry = retry or ConnectRetryPolicy()
        self.session: Optional[AsyncSession] = None

    async def _open(self) -> AsyncSession:
        session = self._session_maker()
        try:
            # Begins the transaction on a live connection
            await session.connection()
        except Exception:
            await session.close()
            raise
        return session

    async def __aenter__(self) -> "SqlUnitOfWork":
        self.session = await self._retry.run(self._open)
        dialect_name = (await self.session.connection()).dialect.name
        self.stock = SqlStockRepository(self.session, dialect_name)
        self.transactions = SqlTransactionLog(self.session)
        self.batches = SqlBatchStore(self.session)
        self.locations = SqlLocationDirectory(self.session, dialect_name)
        self.items = SqlItemDirectory(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        session = self.session
        try:
            if exc_type is None:
                try:
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    raise PersistenceFailure("ledger unit of work could not commit") from e
            else:
                await session.rollback()
                if isinstance(exc, SQLAlchemyError):
                    logger.error("ledger unit of work failed: %r", exc)
                    raise PersistenceFailure("ledger unit of work failed") from exc
        finally:
            await session.close()
            self.session = None


class SqlUnitOfWorkFactory:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession], retry: Optional[ConnectRetryPolicy] = None):
        self.session_maker = session_maker
        self.retry = retry or ConnectRetryPolicy()

    def __call__(self) -> SqlUnitOfWork:
        return SqlUnitOfWork(self.session_maker, self.retry)
