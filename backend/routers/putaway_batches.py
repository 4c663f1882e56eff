from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.converters import batch_change_to_dict
from ledger import views
from ledger.batches import BatchEditor
from ledger.types import BatchLineEdit
from routers.deps import get_async_session, get_batch_editor
from schemas.inventory import EditPutawayBatchRequest

router = APIRouter()


@router.get("/{batch_id}", response_model=Dict)
async def get_putaway_batch(
    batch_id: UUID,
    db: AsyncSession = Depends(get_async_session),
):
    return await views.batch_detail(db, batch_id)


@router.patch("/{batch_id}", response_model=Dict)
async def edit_putaway_batch(
    batch_id: UUID,
    payload: EditPutawayBatchRequest,
    editor: BatchEditor = Depends(get_batch_editor),
):
    result = await editor.edit(
        batch_id,
        [BatchLineEdit(transaction_id=line.transaction_id, quantity=line.quantity) for line in payload.transactions],
        actor=payload.user_id,
    )
    return batch_change_to_dict(result)


@router.delete("/{batch_id}", response_model=Dict)
async def undo_putaway_batch(
    batch_id: UUID,
    user_id: Optional[str] = None,
    editor: BatchEditor = Depends(get_batch_editor),
):
    result = await editor.undo(batch_id, actor=user_id)
    return batch_change_to_dict(result)
