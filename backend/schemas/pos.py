from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


OrderType = Literal["dine_in", "takeaway", "delivery", "bar_only"]
PaymentMethod = Literal["cash", "card", "mobile"]


class CartLineIn(BaseModel):
    id: Optional[UUID] = None
    menu_item_id: UUID
    name: Optional[str] = None
    price: Optional[float] = None
    quantity: int = Field(ge=1)
    notes: Optional[str] = None


class CartRequest(BaseModel):
    """Cart as held by the client, evaluated against one bar's stock."""
    bar_id: Optional[UUID] = None
    items: List[CartLineIn] = []

    @model_validator(mode="after")
    def _one_line_per_menu_item(self):
        seen = set()
        for line in self.items:
            if line.menu_item_id in seen:
                raise ValueError("each menu item may appear on only one cart line")
            seen.add(line.menu_item_id)
        return self


class ItemStatusRequest(CartRequest):
    # Defaults to every active menu item
    menu_item_ids: Optional[List[UUID]] = None


class ItemStatusOut(BaseModel):
    menu_item_id: UUID
    inventory_item_id: Optional[UUID] = None
    available: Optional[int] = None
    has_stock: bool
    is_low_stock: bool
    is_out_of_stock: bool


class ShortfallOut(BaseModel):
    name: str
    available: int
    requested: int


class CartValidationOut(BaseModel):
    valid: bool
    shortfalls: List[ShortfallOut] = []


class AddToCartRequest(CartRequest):
    menu_item_id: UUID
    quantity: int = Field(default=1, ge=1)


class CartOut(BaseModel):
    items: List[CartLineIn]
    subtotal: float


class CheckoutRequest(CartRequest):
    bar_id: UUID
    order_type: OrderType = "dine_in"
    table_number: Optional[str] = None
    payment_method: PaymentMethod
    vat_amount: float = 0
    service_charge: float = 0
    discount_amount: float = 0
    notes: Optional[str] = None
    actor_id: Optional[UUID] = None

    @field_validator("table_number", "notes")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None
