import uuid

from sqlalchemy import Boolean, Column, DateTime, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name = Column(String, nullable=False, index=True)
    unit = Column(Text, nullable=False, default="pcs")
    category = Column(String, nullable=True, index=True)
    supplier = Column(String, nullable=True)
    cost_per_unit = Column(Numeric(10, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    stocks = relationship("LocationStock", back_populates="inventory_item")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "unit": self.unit,
            "category": self.category,
            "supplier": self.supplier,
            "cost_per_unit": float(self.cost_per_unit) if self.cost_per_unit is not None else None,
            "is_active": bool(self.is_active),
        }
