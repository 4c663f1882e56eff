from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.converters import undo_to_dict
from ledger import views
from ledger.engine import MovementEngine
from ledger.types import TransactionStatus, TransactionType
from routers.deps import get_async_session, get_movement_engine

router = APIRouter()


@router.get("/", response_model=Dict)
async def list_transactions(
    type: Optional[TransactionType] = None,
    status: Optional[TransactionStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    batch_id: Optional[UUID] = None,
    limit: int = Query(settings.recent_transactions_limit, ge=1, le=1000),
    db: AsyncSession = Depends(get_async_session),
):
    data = await views.transaction_history(
        db,
        type=type,
        status=status,
        start=start_date,
        end=end_date,
        batch_id=batch_id,
        limit=limit,
    )
    return {"data": data}


@router.post("/{transaction_id}/undo", response_model=Dict)
async def undo_transaction(
    transaction_id: UUID,
    user_id: Optional[str] = None,
    engine: MovementEngine = Depends(get_movement_engine),
):
    """Compensate one transaction; the original stays in the log with status UNDONE."""
    result = await engine.undo(transaction_id, actor=user_id)
    return undo_to_dict(result)
