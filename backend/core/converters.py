from typing import Dict

from ledger.types import (
    BatchChangeResult,
    BatchPutawayResult,
    Location,
    MoveResult,
    PutawayBatchRecord,
    PutawayResult,
    RemoveResult,
    StockCell,
    TransactionRecord,
    UndoResult,
    movement_columns,
)


def stock_to_dict(cell: StockCell) -> Dict:
    return {
        "id": cell.id,
        "item_id": cell.item_id,
        "location_id": cell.location_id,
        "quantity": int(cell.quantity),
    }


def transaction_to_dict(tx: TransactionRecord) -> Dict:
    from_location_id, to_location_id = movement_columns(tx.movement)
    return {
        "id": tx.id,
        "type": tx.type.value,
        "status": tx.status.value,
        "quantity": int(tx.quantity),
        "item_id": tx.item_id,
        "from_location_id": from_location_id,
        "to_location_id": to_location_id,
        "putaway_batch_id": tx.putaway_batch_id,
        "created_by": tx.created_by,
        "edited_by": tx.edited_by,
        "undone_by": tx.undone_by,
        "created_at": tx.created_at.isoformat() if tx.created_at else None,
    }


def batch_to_dict(batch: PutawayBatchRecord) -> Dict:
    return {
        "id": batch.id,
        "location_id": batch.location_id,
        "status": batch.status.value,
        "created_by": batch.created_by,
        "edited_by": batch.edited_by,
        "undone_by": batch.undone_by,
        "created_at": batch.created_at.isoformat() if batch.created_at else None,
    }


def location_to_dict(location: Location) -> Dict:
    return {
        "id": location.id,
        "label": location.label,
        "aisle": location.aisle,
        "bay": location.bay,
        "height": location.height,
        "type": location.type,
    }


def putaway_to_dict(result: PutawayResult) -> Dict:
    return {"stock": stock_to_dict(result.stock), "transaction": transaction_to_dict(result.transaction)}


def batch_putaway_to_dict(result: BatchPutawayResult) -> Dict:
    return {
        "batch": batch_to_dict(result.batch),
        "location": location_to_dict(result.location),
        "stock": [stock_to_dict(c) for c in result.stock],
        "transactions": [transaction_to_dict(t) for t in result.transactions],
    }


def remove_to_dict(result: RemoveResult) -> Dict:
    return {
        "stock": [stock_to_dict(c) for c in result.stock],
        "transactions": [transaction_to_dict(t) for t in result.transactions],
    }


def move_to_dict(result: MoveResult) -> Dict:
    return {
        "source_stock": [stock_to_dict(c) for c in result.source_stock],
        "destination_stock": [stock_to_dict(c) for c in result.destination_stock],
        "transactions": [transaction_to_dict(t) for t in result.transactions],
    }


def undo_to_dict(result: UndoResult) -> Dict:
    return {
        "transaction": transaction_to_dict(result.transaction),
        "stock": [stock_to_dict(c) for c in result.stock],
    }


def batch_change_to_dict(result: BatchChangeResult) -> Dict:
    return {
        "batch": batch_to_dict(result.batch),
        "transactions": [transaction_to_dict(t) for t in result.transactions],
        "stock": [stock_to_dict(c) for c in result.stock],
    }
