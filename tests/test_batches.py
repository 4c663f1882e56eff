from __future__ import annotations

import uuid

import pytest
import pytest_asyncio

from core.errors import AlreadyUndone, InvalidState, NotFound, ValidationError
from ledger.types import BatchLineEdit, BatchStatus, PutawayLine, StockLine, TransactionStatus


@pytest_asyncio.fixture
async def batch(ledger, items):
    """Scenario 5 batch: X:5 and Y:3 put away at B-02-01."""
    return await ledger.putaway_batch("B-02-01", [PutawayLine(items["X"], 5), PutawayLine(items["Y"], 3)])


def line(batch, n):
    return batch.transactions[n - 1]


async def test_edit_applies_delta_not_reset(editor, store, items, batch, ledger):
    # unrelated stock in the same cell must survive the edit
    await ledger.putaway(items["X"], "B-02-01", 10)

    result = await editor.edit(batch.batch.id, [BatchLineEdit(line(batch, 1).id, 2)], actor="op")

    assert store.quantity(items["X"], "B-02-01") == 12
    assert store.quantity(items["Y"], "B-02-01") == 3
    assert result.batch.status is BatchStatus.EDITED
    [tx] = result.transactions
    assert tx.quantity == 2
    assert tx.status is TransactionStatus.EDITED


async def test_scenario_five_edit_down(editor, store, items, batch):
    await editor.edit(batch.batch.id, [BatchLineEdit(line(batch, 1).id, 2)])

    assert store.quantity(items["X"], "B-02-01") == 2
    assert store.quantity(items["Y"], "B-02-01") == 3
    assert store.batch(batch.batch.id).status is BatchStatus.EDITED


async def test_edit_and_undo_record_who_did_them(editor, store, batch):
    edited = await editor.edit(batch.batch.id, [BatchLineEdit(line(batch, 1).id, 2)], actor="op-7")

    assert edited.batch.edited_by == "op-7"
    assert edited.transactions[0].edited_by == "op-7"
    assert store.state.transactions[line(batch, 2).id].edited_by is None

    undone = await editor.undo(batch.batch.id, actor="supervisor")

    assert (undone.batch.edited_by, undone.batch.undone_by) == ("op-7", "supervisor")
    assert store.state.transactions[line(batch, 1).id].edited_by == "op-7"


async def test_edit_up_adds_the_difference(editor, store, items, batch):
    await editor.edit(batch.batch.id, [BatchLineEdit(line(batch, 2).id, 8)])

    assert store.quantity(items["Y"], "B-02-01") == 8
    assert store.state.transactions[line(batch, 2).id].quantity == 8


async def test_edit_with_unchanged_quantity_only_marks_batch(editor, store, items, batch):
    result = await editor.edit(batch.batch.id, [BatchLineEdit(line(batch, 1).id, 5)])

    assert result.transactions == []
    assert store.quantity(items["X"], "B-02-01") == 5
    assert store.batch(batch.batch.id).status is BatchStatus.EDITED
    assert store.state.transactions[line(batch, 1).id].status is TransactionStatus.ACTIVE


async def test_edit_below_what_is_left_fails_whole_edit(editor, ledger, store, items, batch):
    cell = store.cell(items["X"], "B-02-01")
    store.add_location("C-01-01")
    await ledger.move("B-02-01", "C-01-01", [StockLine(cell.id, 4)])

    with pytest.raises(InvalidState):
        await editor.edit(
            batch.batch.id,
            [BatchLineEdit(line(batch, 2).id, 1), BatchLineEdit(line(batch, 1).id, 1)],
        )

    # Y's line was processed first and must be rolled back too
    assert store.quantity(items["Y"], "B-02-01") == 3
    assert store.quantity(items["X"], "B-02-01") == 1
    assert store.batch(batch.batch.id).status is BatchStatus.COMPLETED


async def test_edit_rejects_foreign_transaction(editor, ledger, items, batch):
    other = await ledger.putaway(items["X"], "A-01-01", 1)

    with pytest.raises(NotFound):
        await editor.edit(batch.batch.id, [BatchLineEdit(other.transaction.id, 3)])


async def test_edit_rejects_zero_and_duplicates(editor, batch):
    with pytest.raises(ValidationError):
        await editor.edit(batch.batch.id, [BatchLineEdit(line(batch, 1).id, 0)])
    with pytest.raises(ValidationError):
        await editor.edit(
            batch.batch.id,
            [BatchLineEdit(line(batch, 1).id, 2), BatchLineEdit(line(batch, 1).id, 3)],
        )
    with pytest.raises(ValidationError):
        await editor.edit(batch.batch.id, [])


async def test_edit_unknown_batch(editor):
    with pytest.raises(NotFound):
        await editor.edit(uuid.uuid4(), [BatchLineEdit(uuid.uuid4(), 1)])


async def test_edit_undone_line_or_batch_is_invalid_state(editor, ledger, batch):
    await ledger.undo(line(batch, 2).id)
    with pytest.raises(InvalidState):
        await editor.edit(batch.batch.id, [BatchLineEdit(line(batch, 2).id, 1)])

    await editor.undo(batch.batch.id)
    with pytest.raises(InvalidState):
        await editor.edit(batch.batch.id, [BatchLineEdit(line(batch, 1).id, 1)])


async def test_scenario_six_undo_after_edit(editor, store, items, batch):
    await editor.edit(batch.batch.id, [BatchLineEdit(line(batch, 1).id, 2)])

    result = await editor.undo(batch.batch.id, actor="supervisor")

    assert store.quantity(items["X"], "B-02-01") == 0
    assert store.quantity(items["Y"], "B-02-01") == 0
    assert result.batch.status is BatchStatus.UNDONE
    assert [t.status for t in result.transactions] == [TransactionStatus.UNDONE, TransactionStatus.UNDONE]
    assert all(t.undone_by == "supervisor" for t in result.transactions)


async def test_scenario_six_undo_fails_when_stock_moved_away(editor, ledger, store, items, batch):
    await editor.edit(batch.batch.id, [BatchLineEdit(line(batch, 1).id, 2)])
    cell = store.cell(items["X"], "B-02-01")
    store.add_location("C-01-01")
    await ledger.move("B-02-01", "C-01-01", [StockLine(cell.id, 1)])

    with pytest.raises(InvalidState) as exc:
        await editor.undo(batch.batch.id)

    assert "would result in negative stock" in exc.value.message
    assert store.quantity(items["X"], "B-02-01") == 1
    assert store.quantity(items["Y"], "B-02-01") == 3
    assert store.batch(batch.batch.id).status is BatchStatus.EDITED


async def test_undo_skips_lines_already_undone(editor, ledger, store, items, batch):
    await ledger.undo(line(batch, 1).id, actor="first")

    result = await editor.undo(batch.batch.id, actor="second")

    assert [t.id for t in result.transactions] == [line(batch, 2).id]
    assert store.quantity(items["X"], "B-02-01") == 0
    assert store.quantity(items["Y"], "B-02-01") == 0
    assert store.state.transactions[line(batch, 1).id].undone_by == "first"


async def test_undo_batch_twice(editor, batch):
    await editor.undo(batch.batch.id)

    with pytest.raises(AlreadyUndone):
        await editor.undo(batch.batch.id)


async def test_undo_unknown_batch(editor):
    with pytest.raises(NotFound):
        await editor.undo(uuid.uuid4())
