import uuid
from sqlalchemy import Column, Integer, String, Uuid
from .database import Base


class Location(Base):
    """A storage bay, labelled `{aisle}-{bay}-{height}` (e.g. A-01-02)."""
    __tablename__ = "locations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    label = Column(String, nullable=False, unique=True, index=True)  # always upper case
    aisle = Column(String, nullable=False)
    bay = Column(Integer, nullable=False)
    height = Column(Integer, nullable=False)
    type = Column(String, nullable=False, default="BAY")
