import uuid
from sqlalchemy import Column, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship
from .database import Base


class Item(Base):
    """A SKU. Identity fields are fixed once stock or transactions reference it."""
    __tablename__ = "items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sku = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    barcode = Column(String, nullable=False, unique=True, index=True)
    company_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id", ondelete="RESTRICT"), nullable=True, index=True)

    company = relationship("Company", back_populates="items")
