"""
In-memory implementation of the ledger ports.

Units of work are serialised by one asyncio.Lock and run against a snapshot of
the store; the snapshot replaces the store only when the unit exits cleanly.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from core.errors import InsufficientStock, NotFound, QuantityOverflow
from core.labels import normalize_label, parse_label
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
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _State:
    items: Dict[UUID, Item] = field(default_factory=dict)
    locations: Dict[UUID, Location] = field(default_factory=dict)
    stock: Dict[UUID, StockCell] = field(default_factory=dict)
    transactions: Dict[UUID, TransactionRecord] = field(default_factory=dict)
    batches: Dict[UUID, PutawayBatchRecord] = field(default_factory=dict)

    def copy(self) -> "_State":
        # Records are frozen, copying the mappings is enough
        return _State(
            items=dict(self.items),
            locations=dict(self.locations),
            stock=dict(self.stock),
            transactions=dict(self.transactions),
            batches=dict(self.batches),
        )


class MemoryStockRepository:
    def __init__(self, state: _State):
        self.state = state

    async def get(self, item_id: UUID, location_id: UUID) -> Optional[StockCell]:
        for cell in self.state.stock.values():
            if cell.item_id == item_id and cell.location_id == location_id:
                return cell
        return None

    async def get_by_id(self, stock_id: UUID) -> Optional[StockCell]:
        return self.state.stock.get(stock_id)

    async def adjust(self, item_id: UUID, location_id: UUID, delta: int) -> StockCell:
        cell = await self.get(item_id, location_id)
        current = cell.quantity if cell else 0
        if current + delta < 0:
            raise InsufficientStock(item_id, location_id, current, -delta)
        if current + delta > MAX_QUANTITY:
            raise QuantityOverflow(item_id, location_id, current, delta, MAX_QUANTITY)
        if cell is None:
            cell = StockCell(id=uuid.uuid4(), item_id=item_id, location_id=location_id, quantity=delta)
        else:
            cell = replace(cell, quantity=current + delta)
        self.state.stock[cell.id] = cell
        return cell


class MemoryTransactionLog:
    def __init__(self, state: _State):
        self.state = state

    def _require(self, transaction_id: UUID) -> TransactionRecord:
        tx = self.state.transactions.get(transaction_id)
        if tx is None:
            raise NotFound("transaction", transaction_id)
        return tx

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
        tx = TransactionRecord(
            id=uuid.uuid4(),
            item_id=item_id,
            quantity=quantity,
            movement=movement,
            putaway_batch_id=batch_id,
            batch_line=batch_line,
            created_by=actor,
            created_at=_now(),
        )
        self.state.transactions[tx.id] = tx
        return tx

    async def find(self, transaction_id: UUID, *, lock: bool = False) -> Optional[TransactionRecord]:
        return self.state.transactions.get(transaction_id)

    async def mark_status(
        self, transaction_id: UUID, status: TransactionStatus, actor: Optional[str] = None
    ) -> TransactionRecord:
        tx = self._require(transaction_id)
        if status is TransactionStatus.EDITED:
            tx = replace(tx, status=status, edited_by=actor)
        elif status is TransactionStatus.UNDONE:
            tx = replace(tx, status=status, undone_by=actor)
        else:
            tx = replace(tx, status=status)
        self.state.transactions[tx.id] = tx
        return tx

    async def set_quantity(self, transaction_id: UUID, quantity: int) -> TransactionRecord:
        tx = replace(self._require(transaction_id), quantity=quantity)
        self.state.transactions[tx.id] = tx
        return tx

    async def list_by_batch(self, batch_id: UUID, *, lock: bool = False) -> List[TransactionRecord]:
        txs = [t for t in self.state.transactions.values() if t.putaway_batch_id == batch_id]
        return sorted(txs, key=lambda t: t.batch_line or 0)


class MemoryBatchStore:
    def __init__(self, state: _State):
        self.state = state

    async def create(self, location_id: UUID, actor: Optional[str] = None) -> PutawayBatchRecord:
        batch = PutawayBatchRecord(id=uuid.uuid4(), location_id=location_id, created_by=actor, created_at=_now())
        self.state.batches[batch.id] = batch
        return batch

    async def find(self, batch_id: UUID, *, lock: bool = False) -> Optional[PutawayBatchRecord]:
        return self.state.batches.get(batch_id)

    async def set_status(
        self, batch_id: UUID, status: BatchStatus, actor: Optional[str] = None
    ) -> PutawayBatchRecord:
        batch = self.state.batches.get(batch_id)
        if batch is None:
            raise NotFound("putaway batch", batch_id)
        if status is BatchStatus.EDITED:
            batch = replace(batch, status=status, edited_by=actor)
        elif status is BatchStatus.UNDONE:
            batch = replace(batch, status=status, undone_by=actor)
        else:
            batch = replace(batch, status=status)
        self.state.batches[batch.id] = batch
        return batch


class MemoryLocationDirectory:
    def __init__(self, state: _State):
        self.state = state

    async def get(self, location_id: UUID) -> Optional[Location]:
        return self.state.locations.get(location_id)

    async def resolve(self, label: str) -> Optional[Location]:
        wanted = (label or "").strip().upper()
        for location in self.state.locations.values():
            if location.label == wanted:
                return location
        return None

    async def resolve_or_create(self, label: str) -> Location:
        existing = await self.resolve(label)
        if existing is not None:
            return existing
        parts = parse_label(label)
        location = Location(
            id=uuid.uuid4(),
            label=normalize_label(label),
            aisle=parts.aisle,
            bay=parts.bay,
            height=parts.height,
        )
        self.state.locations[location.id] = location
        return location


class MemoryItemDirectory:
    def __init__(self, state: _State):
        self.state = state

    async def get(self, item_id: UUID) -> Optional[Item]:
        return self.state.items.get(item_id)

    async def by_barcode(self, barcode: str) -> Optional[Item]:
        for item in self.state.items.values():
            if item.barcode == barcode:
                return item
        return None


class MemoryUnitOfWork:
    def __init__(self, store: "MemoryStore"):
        self._store = store
        self._state: Optional[_State] = None

    async def __aenter__(self) -> "MemoryUnitOfWork":
        await self._store.lock.acquire()
        self._state = self._store.state.copy()
        self.stock = MemoryStockRepository(self._state)
        self.transactions = MemoryTransactionLog(self._state)
        self.batches = MemoryBatchStore(self._state)
        self.locations = MemoryLocationDirectory(self._state)
        self.items = MemoryItemDirectory(self._state)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                self._store.state = self._state
        finally:
            self._state = None
            self._store.lock.release()


class MemoryStore:
    """Shared state plus a unit-of-work factory (`store()` opens a unit)."""

    def __init__(self):
        self.state = _State()
        self.lock = asyncio.Lock()

    def __call__(self) -> MemoryUnitOfWork:
        return MemoryUnitOfWork(self)

    # Master data setup, outside any unit of work

    def add_item(self, sku: str, name: Optional[str] = None, barcode: Optional[str] = None,
                 company_id: Optional[UUID] = None) -> Item:
        item = Item(id=uuid.uuid4(), sku=sku, name=name or sku, barcode=barcode or sku, company_id=company_id)
        self.state.items[item.id] = item
        return item

    def add_location(self, label: str) -> Location:
        parts = parse_label(label)
        location = Location(
            id=uuid.uuid4(),
            label=normalize_label(label),
            aisle=parts.aisle,
            bay=parts.bay,
            height=parts.height,
        )
        self.state.locations[location.id] = location
        return location

    # Inspection helpers

    def location(self, label: str) -> Optional[Location]:
        wanted = label.strip().upper()
        return next((loc for loc in self.state.locations.values() if loc.label == wanted), None)

    def cell(self, item_id: UUID, label: str) -> Optional[StockCell]:
        location = self.location(label)
        if location is None:
            return None
        return next(
            (c for c in self.state.stock.values() if c.item_id == item_id and c.location_id == location.id),
            None,
        )

    def quantity(self, item_id: UUID, label: str) -> Optional[int]:
        cell = self.cell(item_id, label)
        return cell.quantity if cell else None

    def transactions(self) -> List[TransactionRecord]:
        return sorted(self.state.transactions.values(), key=lambda t: t.created_at)

    def batch(self, batch_id: UUID) -> Optional[PutawayBatchRecord]:
        return self.state.batches.get(batch_id)
