from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class OrderItemRead(BaseModel):
    id: Optional[UUID] = None
    menu_item_id: Optional[UUID] = None
    item_name: str
    quantity: int
    unit_price: float
    total_price: float
    notes: Optional[str] = None


class PaymentRead(BaseModel):
    payment_method: str
    amount: float


class OrderRead(BaseModel):
    id: UUID
    order_number: str
    bar_id: Optional[UUID] = None
    order_type: str
    table_number: Optional[str] = None
    status: str
    subtotal: float
    vat_amount: float
    service_charge: float
    discount_amount: float
    total_amount: float
    notes: Optional[str] = None
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    items: List[OrderItemRead]
    payments: List[PaymentRead] = []
