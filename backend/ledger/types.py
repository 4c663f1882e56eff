from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID


class TransactionType(str, enum.Enum):
    ADD = "ADD"
    REMOVE = "REMOVE"
    MOVE = "MOVE"


class TransactionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    EDITED = "EDITED"
    UNDONE = "UNDONE"


class BatchStatus(str, enum.Enum):
    COMPLETED = "COMPLETED"
    EDITED = "EDITED"
    UNDONE = "UNDONE"


# Upper bound of a cell or transaction quantity (32-bit integer columns)
MAX_QUANTITY = 2**31 - 1


# Movement variants. Which locations a transaction touched is carried by the
# variant itself; nullable from/to columns exist only at the persistence edge.


@dataclass(frozen=True)
class Added:
    to_location_id: UUID

    type = TransactionType.ADD


@dataclass(frozen=True)
class Removed:
    from_location_id: UUID

    type = TransactionType.REMOVE


@dataclass(frozen=True)
class Moved:
    from_location_id: UUID
    to_location_id: UUID

    type = TransactionType.MOVE


Movement = Union[Added, Removed, Moved]


def movement_from_columns(
    type_: str, from_location_id: Optional[UUID], to_location_id: Optional[UUID]
) -> Movement:
    kind = TransactionType(type_)
    if kind is TransactionType.ADD and to_location_id is not None and from_location_id is None:
        return Added(to_location_id)
    if kind is TransactionType.REMOVE and from_location_id is not None and to_location_id is None:
        return Removed(from_location_id)
    if kind is TransactionType.MOVE and from_location_id is not None and to_location_id is not None:
        return Moved(from_location_id, to_location_id)
    raise ValueError(f"inconsistent {kind.value} transaction: from={from_location_id} to={to_location_id}")


def movement_columns(movement: Movement) -> tuple[Optional[UUID], Optional[UUID]]:
    """(from_location_id, to_location_id) for storage."""
    if isinstance(movement, Added):
        return None, movement.to_location_id
    if isinstance(movement, Removed):
        return movement.from_location_id, None
    return movement.from_location_id, movement.to_location_id


@dataclass(frozen=True)
class Item:
    id: UUID
    sku: str
    name: str
    barcode: str
    company_id: Optional[UUID] = None


@dataclass(frozen=True)
class Location:
    id: UUID
    label: str
    aisle: str
    bay: int
    height: int
    type: str = "BAY"


@dataclass(frozen=True)
class StockCell:
    id: UUID
    item_id: UUID
    location_id: UUID
    quantity: int


@dataclass(frozen=True)
class TransactionRecord:
    id: UUID
    item_id: UUID
    quantity: int
    movement: Movement
    status: TransactionStatus = TransactionStatus.ACTIVE
    putaway_batch_id: Optional[UUID] = None
    batch_line: Optional[int] = None
    created_by: Optional[str] = None
    edited_by: Optional[str] = None
    undone_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def type(self) -> TransactionType:
        return self.movement.type


@dataclass(frozen=True)
class PutawayBatchRecord:
    id: UUID
    location_id: UUID
    status: BatchStatus = BatchStatus.COMPLETED
    created_by: Optional[str] = None
    edited_by: Optional[str] = None
    undone_by: Optional[str] = None
    created_at: Optional[datetime] = None


# Validated line inputs


@dataclass(frozen=True)
class PutawayLine:
    item_id: UUID
    quantity: int


@dataclass(frozen=True)
class StockLine:
    stock_id: UUID
    quantity: int


@dataclass(frozen=True)
class BatchLineEdit:
    transaction_id: UUID
    quantity: int


# Operation results


@dataclass(frozen=True)
class PutawayResult:
    stock: StockCell
    transaction: TransactionRecord


@dataclass(frozen=True)
class BatchPutawayResult:
    batch: PutawayBatchRecord
    location: Location
    stock: List[StockCell] = field(default_factory=list)
    transactions: List[TransactionRecord] = field(default_factory=list)


@dataclass(frozen=True)
class RemoveResult:
    stock: List[StockCell] = field(default_factory=list)
    transactions: List[TransactionRecord] = field(default_factory=list)


@dataclass(frozen=True)
class MoveResult:
    source_stock: List[StockCell] = field(default_factory=list)
    destination_stock: List[StockCell] = field(default_factory=list)
    transactions: List[TransactionRecord] = field(default_factory=list)


@dataclass(frozen=True)
class UndoResult:
    transaction: TransactionRecord
    stock: List[StockCell] = field(default_factory=list)


@dataclass(frozen=True)
class BatchChangeResult:
    batch: PutawayBatchRecord
    transactions: List[TransactionRecord] = field(default_factory=list)
    stock: List[StockCell] = field(default_factory=list)
