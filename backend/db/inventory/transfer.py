import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


TRANSFER_PENDING = "pending"
TRANSFER_COMPLETED = "completed"
TRANSFER_EXPIRED = "expired"
TRANSFER_CANCELLED = "cancelled"


class BarToBarTransfer(Base):
    __tablename__ = "bar_to_bar_transfers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    source_bar_id = Column(UUID(as_uuid=True), ForeignKey("bars.id", ondelete="CASCADE"), nullable=False, index=True)
    destination_bar_id = Column(UUID(as_uuid=True), ForeignKey("bars.id", ondelete="CASCADE"), nullable=False, index=True)

    inventory_item_id = Column(
        UUID(as_uuid=True),
        ForeignKey("inventory_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    quantity = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, default=TRANSFER_PENDING, index=True)
    notes = Column(Text, nullable=True)

    created_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    inventory_item = relationship("InventoryItem")
