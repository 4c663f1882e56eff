"""
Storage contracts for the movement engine.

Everything a single engine operation touches goes through one UnitOfWork:
reads that decide whether a change is legal and the change itself share the
same transaction. Implementations: `ledger.sql` and `ledger.memory`.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Protocol
from uuid import UUID

from ledger.types import (
    BatchStatus,
    Item,
    Location,
    Movement,
    PutawayBatchRecord,
    StockCell,
    TransactionRecord,
    TransactionStatus,
)


class StockRepository(Protocol):
    async def get(self, item_id: UUID, location_id: UUID) -> Optional[StockCell]:
        ...

    async def get_by_id(self, stock_id: UUID) -> Optional[StockCell]:
        """Load a cell by id, locking it for the rest of the unit of work."""
        ...

    async def adjust(self, item_id: UUID, location_id: UUID, delta: int) -> StockCell:
        """
        Apply `quantity += delta` as one atomic check-and-write.

        Creates the cell when absent and delta >= 0. Raises InsufficientStock
        (with raw ids as item/location) when the result would be negative,
        including a negative delta against an absent cell, and QuantityOverflow
        when it would exceed MAX_QUANTITY.
        """
        ...


class TransactionLog(Protocol):
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
        ...

    async def find(self, transaction_id: UUID, *, lock: bool = False) -> Optional[TransactionRecord]:
        ...

    async def mark_status(
        self, transaction_id: UUID, status: TransactionStatus, actor: Optional[str] = None
    ) -> TransactionRecord:
        """Set the status; `actor` is stored as edited_by or undone_by to match."""
        ...

    async def set_quantity(self, transaction_id: UUID, quantity: int) -> TransactionRecord:
        ...

    async def list_by_batch(self, batch_id: UUID, *, lock: bool = False) -> List[TransactionRecord]:
        """Batch transactions in line order."""
        ...


class BatchStore(Protocol):
    async def create(self, location_id: UUID, actor: Optional[str] = None) -> PutawayBatchRecord:
        ...

    async def find(self, batch_id: UUID, *, lock: bool = False) -> Optional[PutawayBatchRecord]:
        ...

    async def set_status(
        self, batch_id: UUID, status: BatchStatus, actor: Optional[str] = None
    ) -> PutawayBatchRecord:
        ...


class LocationDirectory(Protocol):
    async def get(self, location_id: UUID) -> Optional[Location]:
        ...

    async def resolve(self, label: str) -> Optional[Location]:
        ...

    async def resolve_or_create(self, label: str) -> Location:
        ...


class ItemDirectory(Protocol):
    async def get(self, item_id: UUID) -> Optional[Item]:
        ...

    async def by_barcode(self, barcode: str) -> Optional[Item]:
        ...


class UnitOfWork(Protocol):
    stock: StockRepository
    transactions: TransactionLog
    batches: BatchStore
    locations: LocationDirectory
    items: ItemDirectory

    async def __aenter__(self) -> "UnitOfWork":
        ...

    async def __aexit__(self, exc_type, exc, tb) -> None:
        ...


UnitOfWorkFactory = Callable[[], UnitOfWork]
