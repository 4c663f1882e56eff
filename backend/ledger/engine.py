"""
Movement engine: putaway, batch putaway, remove, move and undo.

Each public operation is one unit of work. Input validation happens before the
unit opens; any failure inside it rolls back every stock and log change made by
that call.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence
from uuid import UUID

from core.errors import AlreadyUndone, InsufficientStock, InvalidState, NotFound, QuantityOverflow, ValidationError
from core.labels import normalize_label
from ledger.ports import UnitOfWork, UnitOfWorkFactory
from ledger.types import (
    MAX_QUANTITY,
    Added,
    BatchPutawayResult,
    Item,
    Location,
    MoveResult,
    Moved,
    PutawayLine,
    PutawayResult,
    RemoveResult,
    Removed,
    StockCell,
    StockLine,
    TransactionRecord,
    TransactionStatus,
    UndoResult,
)

logger = logging.getLogger(__name__)


def require_quantity(quantity, what: str = "quantity") -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError(f"{what} must be a positive integer, got {quantity!r}", requested=quantity)
    if quantity > MAX_QUANTITY:
        raise ValidationError(f"{what} must not exceed {MAX_QUANTITY}, got {quantity}", requested=quantity)
    return quantity


def require_lines(lines: Sequence, what: str = "lines") -> List:
    lines = list(lines or [])
    if not lines:
        raise ValidationError(f"at least one line is required in {what}")
    for line in lines:
        require_quantity(line.quantity)
    return lines


async def require_item(uow: UnitOfWork, item_id: UUID) -> Item:
    item = await uow.items.get(item_id)
    if item is None:
        raise NotFound("item", item_id)
    return item


async def require_location(uow: UnitOfWork, label: str) -> Location:
    location = await uow.locations.resolve(label)
    if location is None:
        raise NotFound("location", label)
    return location


async def location_by_id(uow: UnitOfWork, location_id: UUID) -> Location:
    location = await uow.locations.get(location_id)
    if location is None:
        raise NotFound("location", location_id)
    return location


async def require_stock(uow: UnitOfWork, stock_id: UUID, at: Optional[Location] = None) -> StockCell:
    cell = await uow.stock.get_by_id(stock_id)
    if cell is None:
        raise NotFound("stock record", stock_id)
    if at is not None and cell.location_id != at.id:
        raise NotFound("stock record", stock_id, message=f"stock record {stock_id} not found at {at.label}")
    return cell


async def draw(uow: UnitOfWork, item: Item, location: Location, quantity: int) -> StockCell:
    """Take `quantity` out of a cell; shortfalls are reported with sku and label."""
    try:
        return await uow.stock.adjust(item.id, location.id, -quantity)
    except InsufficientStock as e:
        raise InsufficientStock(item.sku, location.label, e.available, e.requested) from e


async def put(uow: UnitOfWork, item: Item, location: Location, quantity: int) -> StockCell:
    """Add `quantity` to a cell; overflows are reported with sku and label."""
    try:
        return await uow.stock.adjust(item.id, location.id, quantity)
    except QuantityOverflow as e:
        raise QuantityOverflow(item.sku, location.label, e.available, e.requested, e.limit) from e


async def take_back(uow: UnitOfWork, item: Item, location: Location, quantity: int, what: str) -> StockCell:
    """Compensating decrement: a shortfall here means later movements already consumed the stock."""
    try:
        return await uow.stock.adjust(item.id, location.id, -quantity)
    except InsufficientStock as e:
        raise InvalidState(
            f"{what} would result in negative stock for {item.sku} at {location.label}: "
            f"available {e.available}, required {e.requested}",
            item=item.sku,
            location=location.label,
            available=e.available,
            requested=e.requested,
        ) from e


async def compensate(uow: UnitOfWork, tx: TransactionRecord, item: Item) -> List[StockCell]:
    """
    Reverse the stock effect of one transaction: give back to its source cell,
    take back from its destination cell. Every touched cell must exist.
    """
    movement = tx.movement
    give_to = getattr(movement, "from_location_id", None)
    take_from = getattr(movement, "to_location_id", None)

    touched = [loc_id for loc_id in (take_from, give_to) if loc_id is not None]
    locations = {}
    for loc_id in touched:
        location = await location_by_id(uow, loc_id)
        if await uow.stock.get(item.id, loc_id) is None:
            raise InvalidState(
                f"undoing transaction {tx.id} would result in negative stock: "
                f"no stock record for {item.sku} at {location.label}",
                item=item.sku,
                location=location.label,
            )
        locations[loc_id] = location

    cells = []
    if take_from is not None:
        cells.append(await take_back(uow, item, locations[take_from], tx.quantity, f"undoing transaction {tx.id}"))
    if give_to is not None:
        cells.append(await put(uow, item, locations[give_to], tx.quantity))
    return cells


class MovementEngine:
    def __init__(self, uow_factory: UnitOfWorkFactory):
        self._uow = uow_factory

    async def putaway(
        self, item_id: UUID, location_label: str, quantity: int, *, actor: Optional[str] = None
    ) -> PutawayResult:
        require_quantity(quantity)
        label = normalize_label(location_label)

        async with self._uow() as uow:
            item = await require_item(uow, item_id)
            location = await uow.locations.resolve_or_create(label)
            cell = await put(uow, item, location, quantity)
            tx = await uow.transactions.record(Added(location.id), quantity, item.id, actor=actor)

        logger.info("putaway sku=%s location=%s qty=%s tx=%s", item.sku, label, quantity, tx.id)
        return PutawayResult(stock=cell, transaction=tx)

    async def putaway_batch(
        self, location_label: str, lines: Sequence[PutawayLine], *, actor: Optional[str] = None
    ) -> BatchPutawayResult:
        lines = require_lines(lines, "putaway batch")
        label = normalize_label(location_label)

        async with self._uow() as uow:
            location = await uow.locations.resolve_or_create(label)
            batch = await uow.batches.create(location.id, actor=actor)
            cells, txs = [], []
            for n, line in enumerate(lines, start=1):
                item = await require_item(uow, line.item_id)
                cells.append(await put(uow, item, location, line.quantity))
                txs.append(
                    await uow.transactions.record(
                        Added(location.id),
                        line.quantity,
                        item.id,
                        batch_id=batch.id,
                        batch_line=n,
                        actor=actor,
                    )
                )

        logger.info("putaway batch=%s location=%s lines=%s", batch.id, label, len(txs))
        return BatchPutawayResult(batch=batch, location=location, stock=cells, transactions=txs)

    async def remove(
        self,
        lines: Sequence[StockLine],
        *,
        location_label: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> RemoveResult:
        lines = require_lines(lines, "remove")
        label = normalize_label(location_label) if location_label is not None else None

        async with self._uow() as uow:
            at = await require_location(uow, label) if label is not None else None
            cells, txs = [], []
            for line in lines:
                source = await require_stock(uow, line.stock_id, at)
                item = await require_item(uow, source.item_id)
                location = at or await location_by_id(uow, source.location_id)
                cells.append(await draw(uow, item, location, line.quantity))
                txs.append(await uow.transactions.record(Removed(location.id), line.quantity, item.id, actor=actor))

        logger.info("remove lines=%s tx=%s", len(txs), ",".join(str(t.id) for t in txs))
        return RemoveResult(stock=cells, transactions=txs)

    async def move(
        self,
        from_label: str,
        to_label: str,
        lines: Sequence[StockLine],
        *,
        actor: Optional[str] = None,
    ) -> MoveResult:
        lines = require_lines(lines, "move")
        source_label = normalize_label(from_label)
        destination_label = normalize_label(to_label)
        if source_label == destination_label:
            raise ValidationError(
                f"source and destination are the same location ({source_label})",
                location=source_label,
            )

        async with self._uow() as uow:
            source = await require_location(uow, source_label)
            destination = await require_location(uow, destination_label)
            source_cells, destination_cells, txs = [], [], []
            for line in lines:
                cell = await require_stock(uow, line.stock_id, source)
                item = await require_item(uow, cell.item_id)
                source_cells.append(await draw(uow, item, source, line.quantity))
                destination_cells.append(await put(uow, item, destination, line.quantity))
                txs.append(
                    await uow.transactions.record(
                        Moved(source.id, destination.id), line.quantity, item.id, actor=actor
                    )
                )

        logger.info(
            "move from=%s to=%s lines=%s tx=%s",
            source_label,
            destination_label,
            len(txs),
            ",".join(str(t.id) for t in txs),
        )
        return MoveResult(source_stock=source_cells, destination_stock=destination_cells, transactions=txs)

    async def undo(self, transaction_id: UUID, actor: Optional[str] = None) -> UndoResult:
        async with self._uow() as uow:
            tx = await uow.transactions.find(transaction_id, lock=True)
            if tx is None:
                raise NotFound("transaction", transaction_id)
            if tx.status is TransactionStatus.UNDONE:
                raise AlreadyUndone(
                    f"transaction {transaction_id} has already been undone",
                    transaction=str(transaction_id),
                    undone_by=tx.undone_by,
                )
            item = await require_item(uow, tx.item_id)
            cells = await compensate(uow, tx, item)
            tx = await uow.transactions.mark_status(tx.id, TransactionStatus.UNDONE, actor)

        logger.info("undo tx=%s type=%s sku=%s qty=%s by=%s", tx.id, tx.type.value, item.sku, tx.quantity, actor)
        return UndoResult(transaction=tx, stock=cells)
