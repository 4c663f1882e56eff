"""
Edit and undo of completed putaway batches.

Edits apply the difference between the new and the recorded quantity to the
destination cell; they never reset the cell to the new quantity.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence
from uuid import UUID

from core.errors import AlreadyUndone, InvalidState, NotFound, ValidationError
from ledger.engine import compensate, location_by_id, put, require_item, require_lines, take_back
from ledger.ports import UnitOfWork, UnitOfWorkFactory
from ledger.types import (
    BatchChangeResult,
    BatchLineEdit,
    BatchStatus,
    PutawayBatchRecord,
    TransactionStatus,
)

logger = logging.getLogger(__name__)


async def _require_batch(uow: UnitOfWork, batch_id: UUID) -> PutawayBatchRecord:
    batch = await uow.batches.find(batch_id, lock=True)
    if batch is None:
        raise NotFound("putaway batch", batch_id)
    return batch


class BatchEditor:
    def __init__(self, uow_factory: UnitOfWorkFactory):
        self._uow = uow_factory

    async def edit(
        self, batch_id: UUID, edits: Sequence[BatchLineEdit], *, actor: Optional[str] = None
    ) -> BatchChangeResult:
        edits = require_lines(edits, "batch edit")
        seen = set()
        for edit in edits:
            if edit.transaction_id in seen:
                raise ValidationError(
                    f"transaction {edit.transaction_id} appears more than once in the edit",
                    transaction=str(edit.transaction_id),
                )
            seen.add(edit.transaction_id)

        async with self._uow() as uow:
            batch = await _require_batch(uow, batch_id)
            if batch.status is BatchStatus.UNDONE:
                raise InvalidState(f"putaway batch {batch_id} has been undone and cannot be edited", batch=str(batch_id))

            members = {t.id: t for t in await uow.transactions.list_by_batch(batch.id, lock=True)}
            location = await location_by_id(uow, batch.location_id)
            changed, cells = [], []
            for edit in edits:
                tx = members.get(edit.transaction_id)
                if tx is None:
                    raise NotFound(
                        "transaction",
                        edit.transaction_id,
                        message=f"transaction {edit.transaction_id} is not part of putaway batch {batch_id}",
                        batch=str(batch_id),
                    )
                if tx.status is TransactionStatus.UNDONE:
                    raise InvalidState(
                        f"transaction {tx.id} has been undone and cannot be edited",
                        transaction=str(tx.id),
                    )

                delta = edit.quantity - tx.quantity
                if delta == 0:
                    continue
                item = await require_item(uow, tx.item_id)
                if delta < 0:
                    cell = await take_back(uow, item, location, -delta, f"editing transaction {tx.id}")
                else:
                    cell = await put(uow, item, location, delta)
                cells.append(cell)
                await uow.transactions.set_quantity(tx.id, edit.quantity)
                changed.append(await uow.transactions.mark_status(tx.id, TransactionStatus.EDITED, actor))

            batch = await uow.batches.set_status(batch.id, BatchStatus.EDITED, actor)

        logger.info("edit batch=%s changed=%s by=%s", batch.id, len(changed), actor)
        return BatchChangeResult(batch=batch, transactions=changed, stock=cells)

    async def undo(self, batch_id: UUID, *, actor: Optional[str] = None) -> BatchChangeResult:
        async with self._uow() as uow:
            batch = await _require_batch(uow, batch_id)
            if batch.status is BatchStatus.UNDONE:
                raise AlreadyUndone(f"putaway batch {batch_id} has already been undone", batch=str(batch_id))

            undone, cells = [], []
            for tx in await uow.transactions.list_by_batch(batch.id, lock=True):
                if tx.status is TransactionStatus.UNDONE:
                    continue
                item = await require_item(uow, tx.item_id)
                cells.extend(await compensate(uow, tx, item))
                undone.append(await uow.transactions.mark_status(tx.id, TransactionStatus.UNDONE, actor))

            batch = await uow.batches.set_status(batch.id, BatchStatus.UNDONE, actor)

        logger.info("undo batch=%s transactions=%s by=%s", batch.id, len(undone), actor)
        return BatchChangeResult(batch=batch, transactions=undone, stock=cells)
