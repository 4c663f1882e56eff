import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class PutawayBatch(Base):
    __tablename__ = "putaway_batches"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    location_id = Column(Uuid(as_uuid=True), ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="COMPLETED")  # 'COMPLETED' | 'EDITED' | 'UNDONE'
    created_by = Column(Text, nullable=True)
    edited_by = Column(Text, nullable=True)
    undone_by = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)

    location = relationship("Location")
    transactions = relationship(
        "Transaction",
        back_populates="putaway_batch",
        order_by="Transaction.batch_line",
    )
