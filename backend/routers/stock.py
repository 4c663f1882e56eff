from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.converters import batch_putaway_to_dict, move_to_dict, putaway_to_dict, remove_to_dict
from ledger import views
from ledger.engine import MovementEngine
from ledger.types import PutawayLine, StockLine
from routers.deps import get_async_session, get_movement_engine
from schemas.inventory import MoveRequest, PutawayBatchRequest, PutawayRequest, RemoveRequest

router = APIRouter()


@router.post("/putaway", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def putaway(
    payload: PutawayRequest,
    engine: MovementEngine = Depends(get_movement_engine),
):
    result = await engine.putaway(
        payload.item_id, payload.location_label, payload.quantity, actor=payload.user_id
    )
    return putaway_to_dict(result)


@router.post("/putaway-batch", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def putaway_batch(
    payload: PutawayBatchRequest,
    engine: MovementEngine = Depends(get_movement_engine),
):
    """All lines go to one location under a single putaway batch; any failing line rejects the whole batch."""
    result = await engine.putaway_batch(
        payload.location_label,
        [PutawayLine(item_id=line.item_id, quantity=line.quantity) for line in payload.items],
        actor=payload.user_id,
    )
    return batch_putaway_to_dict(result)


@router.post("/remove", response_model=Dict)
async def remove_stock(
    payload: RemoveRequest,
    engine: MovementEngine = Depends(get_movement_engine),
):
    result = await engine.remove(
        [StockLine(stock_id=line.stock_id, quantity=line.quantity) for line in payload.items],
        location_label=payload.location_label,
        actor=payload.user_id,
    )
    return remove_to_dict(result)


@router.post("/move", response_model=Dict)
async def move_stock(
    payload: MoveRequest,
    engine: MovementEngine = Depends(get_movement_engine),
):
    result = await engine.move(
        payload.from_location_label,
        payload.to_location_label,
        [StockLine(stock_id=line.stock_id, quantity=line.quantity) for line in payload.items],
        actor=payload.user_id,
    )
    return move_to_dict(result)


@router.get("/location/{label}", response_model=List[Dict])
async def stock_at_location(
    label: str,
    db: AsyncSession = Depends(get_async_session),
):
    return await views.stock_at_location(db, label)


@router.get("/lookup", response_model=List[Dict])
async def lookup_stock(
    sku: Optional[str] = None,
    company_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_async_session),
):
    return await views.lookup_stock(db, sku=sku, company_id=company_id)


@router.get("/summary", response_model=List[Dict])
async def stock_summary(
    company_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_async_session),
):
    return await views.stock_summary(db, company_id=company_id)
