from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator


class MenuItemCreate(BaseModel):
    name: str
    price: float
    category: Optional[str] = None
    description: Optional[str] = None
    track_inventory: bool = False
    inventory_item_id: Optional[UUID] = None

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("price")
    @classmethod
    def _price_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("price must be >= 0")
        return v

    @model_validator(mode="after")
    def _tracked_needs_inventory_item(self):
        if self.track_inventory and not self.inventory_item_id:
            raise ValueError("track_inventory requires inventory_item_id")
        return self


class MenuItemRead(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: float
    track_inventory: bool
    inventory_item_id: Optional[UUID] = None
    is_active: bool
    is_available: bool
