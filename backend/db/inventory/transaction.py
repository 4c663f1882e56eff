import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transactions_quantity_positive"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    type = Column(String(16), nullable=False, index=True)  # 'ADD' | 'REMOVE' | 'MOVE'
    status = Column(String(16), nullable=False, default="ACTIVE", index=True)  # 'ACTIVE' | 'EDITED' | 'UNDONE'
    quantity = Column(Integer, nullable=False)

    item_id = Column(Uuid(as_uuid=True), ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    # null for ADD
    from_location_id = Column(Uuid(as_uuid=True), ForeignKey("locations.id", ondelete="RESTRICT"), nullable=True)
    # null for REMOVE
    to_location_id = Column(Uuid(as_uuid=True), ForeignKey("locations.id", ondelete="RESTRICT"), nullable=True)

    putaway_batch_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("putaway_batches.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    # position of the line within its putaway batch
    batch_line = Column(Integer, nullable=True)

    created_by = Column(Text, nullable=True)
    edited_by = Column(Text, nullable=True)
    undone_by = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)

    item = relationship("Item")
    from_location = relationship("Location", foreign_keys=[from_location_id])
    to_location = relationship("Location", foreign_keys=[to_location_id])
    putaway_batch = relationship("PutawayBatch", back_populates="transactions")
