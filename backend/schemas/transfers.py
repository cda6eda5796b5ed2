from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator


TransferStatus = Literal["pending", "completed", "expired", "cancelled"]


class TransferCreate(BaseModel):
    source_bar_id: UUID
    destination_bar_id: UUID
    inventory_item_id: UUID
    quantity: int
    notes: Optional[str] = None
    actor_id: Optional[UUID] = None

    @field_validator("quantity")
    @classmethod
    def _quantity_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("quantity must be > 0")
        return v

    @model_validator(mode="after")
    def _distinct_bars(self):
        if self.source_bar_id == self.destination_bar_id:
            raise ValueError("source and destination bars must differ")
        return self


class TransferAction(BaseModel):
    actor_id: Optional[UUID] = None
    reason: Optional[str] = None


class TransferOut(BaseModel):
    id: UUID
    source_bar_id: UUID
    destination_bar_id: UUID
    inventory_item_id: UUID
    quantity: int
    status: TransferStatus
    notes: Optional[str] = None
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReconciliationOut(BaseModel):
    success: bool = True
    message: str
    processed: int
    total: int
    errors: List[str] = []
