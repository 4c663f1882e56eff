import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from ..database import Base


class StockRecord(Base):
    __tablename__ = "stock"
    __table_args__ = (
        UniqueConstraint("item_id", "location_id", name="ux_stock_item_location"),
        CheckConstraint("quantity >= 0", name="ck_stock_quantity_non_negative"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    item_id = Column(Uuid(as_uuid=True), ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    location_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("locations.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity = Column(Integer, nullable=False, default=0)

    item = relationship("Item")
    location = relationship("Location")
