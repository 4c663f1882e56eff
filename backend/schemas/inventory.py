from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import AfterValidator, BaseModel, field_validator, model_validator

from core.labels import LABEL_PATTERN
from ledger.types import MAX_QUANTITY


def _label(v: str) -> str:
    v = (v or "").strip()
    if not LABEL_PATTERN.match(v):
        raise ValueError("location label must look like A-01-02")
    return v.upper()


def _positive(v: int) -> int:
    if v < 1:
        raise ValueError("quantity must be >= 1")
    if v > MAX_QUANTITY:
        raise ValueError(f"quantity must be <= {MAX_QUANTITY}")
    return v


def _strip_nullable(v: str) -> Optional[str]:
    v = v.strip()
    return v or None


LocationLabel = Annotated[str, AfterValidator(_label)]
Quantity = Annotated[int, AfterValidator(_positive)]
UserRef = Annotated[str, AfterValidator(_strip_nullable)]


class PutawayRequest(BaseModel):
    item_id: UUID
    location_label: LocationLabel
    quantity: Quantity
    user_id: Optional[UserRef] = None


class PutawayBatchLine(BaseModel):
    item_id: UUID
    quantity: Quantity


class PutawayBatchRequest(BaseModel):
    location_label: LocationLabel
    items: List[PutawayBatchLine]
    user_id: Optional[UserRef] = None

    @field_validator("items")
    @classmethod
    def _items_required(cls, v: List[PutawayBatchLine]) -> List[PutawayBatchLine]:
        if not v:
            raise ValueError("at least one item is required")
        return v


class StockLineIn(BaseModel):
    stock_id: UUID
    quantity: Quantity


class RemoveRequest(BaseModel):
    items: List[StockLineIn]
    location_label: Optional[str] = None
    user_id: Optional[UserRef] = None

    @field_validator("location_label")
    @classmethod
    def _optional_label(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return _label(v)

    @field_validator("items")
    @classmethod
    def _items_required(cls, v: List[StockLineIn]) -> List[StockLineIn]:
        if not v:
            raise ValueError("at least one item is required")
        return v


class MoveRequest(BaseModel):
    from_location_label: LocationLabel
    to_location_label: LocationLabel
    items: List[StockLineIn]
    user_id: Optional[UserRef] = None

    @field_validator("items")
    @classmethod
    def _items_required(cls, v: List[StockLineIn]) -> List[StockLineIn]:
        if not v:
            raise ValueError("at least one item is required")
        return v

    @model_validator(mode="after")
    def _distinct_locations(self):
        if self.from_location_label == self.to_location_label:
            raise ValueError("source and destination must be different locations")
        return self


class BatchLineEditIn(BaseModel):
    transaction_id: UUID
    quantity: Quantity


class EditPutawayBatchRequest(BaseModel):
    transactions: List[BatchLineEditIn]
    user_id: Optional[UserRef] = None

    @field_validator("transactions")
    @classmethod
    def _lines_required(cls, v: List[BatchLineEditIn]) -> List[BatchLineEditIn]:
        if not v:
            raise ValueError("at least one transaction is required")
        return v
