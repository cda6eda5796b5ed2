import uuid
from sqlalchemy import Boolean, Column, ForeignKey, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from .database import Base


class MenuItem(Base):
    """Sale-facing item, optionally deducting from one inventory item"""
    __tablename__ = "menu_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String, nullable=True, index=True)
    price = Column(Numeric(10, 2), nullable=False)

    track_inventory = Column(Boolean, nullable=False, default=False)
    inventory_item_id = Column(
        UUID(as_uuid=True),
        ForeignKey("inventory_items.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    is_active = Column(Boolean, nullable=False, default=True)
    is_available = Column(Boolean, nullable=False, default=True)

    inventory_item = relationship("InventoryItem")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price": float(self.price) if self.price is not None else 0.0,
            "track_inventory": bool(self.track_inventory),
            "inventory_item_id": self.inventory_item_id,
            "is_active": bool(self.is_active),
            "is_available": bool(self.is_available),
        }
