from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator


MovementType = Literal["in", "out", "adjustment"]


class InventoryItemCreate(BaseModel):
    name: str
    unit: str = "pcs"
    category: Optional[str] = None
    supplier: Optional[str] = None
    cost_per_unit: Optional[float] = None

    @field_validator("name", "unit")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("category", "supplier")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("cost_per_unit")
    @classmethod
    def _cost_non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("cost_per_unit must be >= 0")
        return v


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = None
    unit: Optional[str] = None
    category: Optional[str] = None
    supplier: Optional[str] = None
    cost_per_unit: Optional[float] = None
    is_active: Optional[bool] = None

    @field_validator("name", "unit")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = (v or "").strip()
        if not v:
            raise ValueError("cannot be empty")
        return v


class InventoryItemOut(BaseModel):
    id: UUID
    name: str
    unit: str
    category: Optional[str] = None
    supplier: Optional[str] = None
    cost_per_unit: Optional[float] = None
    is_active: bool


class StockAssignRequest(BaseModel):
    bar_id: UUID
    inventory_item_id: UUID
    min_stock_level: Optional[int] = None

    @field_validator("min_stock_level")
    @classmethod
    def _min_non_negative(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("min_stock_level must be >= 0")
        return v


class BarStockOut(BaseModel):
    bar_id: UUID
    inventory_item_id: UUID
    name: str
    unit: str
    category: Optional[str] = None
    current_stock: int
    min_stock_level: int
    is_low_stock: bool


class StockMovementCreate(BaseModel):
    bar_id: UUID
    inventory_item_id: UUID
    movement_type: MovementType
    quantity: int
    notes: Optional[str] = None
    actor_id: Optional[UUID] = None

    @field_validator("notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def _validate_quantity(self):
        if self.movement_type in ("in", "out") and self.quantity <= 0:
            raise ValueError(f"{self.movement_type} movements require quantity > 0")
        if self.movement_type == "adjustment" and self.quantity < 0:
            raise ValueError("adjustment quantity must be >= 0")
        return self


class StockMovementOut(BaseModel):
    id: UUID
    bar_id: UUID
    inventory_item_id: UUID
    movement_type: MovementType
    quantity: int
    previous_stock: int
    new_stock: int
    notes: Optional[str] = None
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
