import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from core.exceptions import NotFoundError, StockLimitError
from services.availability import StockSnapshot, check_add_to_cart, index_menu_items


@dataclass
class CartLine:
    menu_item_id: UUID
    name: str
    price: Decimal
    quantity: int = 1
    notes: Optional[str] = None
    id: UUID = field(default_factory=uuid.uuid4)

    @property
    def total(self) -> Decimal:
        return Decimal(str(self.price)) * self.quantity


@dataclass
class Cart:
    """
    Client-held cart: one line per menu item, nothing persisted until checkout.

    Increases go through the same stock gate the checkout uses, so the cart can
    never hold more than the bar has (as of the snapshot passed in).
    """
    lines: List[CartLine] = field(default_factory=list)

    def line_for(self, menu_item_id: UUID) -> Optional[CartLine]:
        for line in self.lines:
            if line.menu_item_id == menu_item_id:
                return line
        return None

    def add(self, menu_item, menu_items, snapshot: Optional[StockSnapshot], quantity: int = 1) -> CartLine:
        message = check_add_to_cart(self.lines, menu_item, menu_items, snapshot, quantity)
        if message:
            raise StockLimitError(message)

        line = self.line_for(menu_item.id)
        if line is not None:
            line.quantity += quantity
            return line
        line = CartLine(
            menu_item_id=menu_item.id,
            name=menu_item.name,
            price=Decimal(str(menu_item.price)),
            quantity=quantity,
        )
        self.lines.append(line)
        return line

    def update_quantity(self, line_id: UUID, delta: int, menu_items, snapshot: Optional[StockSnapshot]) -> None:
        line = next((item for item in self.lines if item.id == line_id), None)
        if line is None:
            raise NotFoundError("Cart line not found")

        if delta > 0:
            menu_item = index_menu_items(menu_items).get(line.menu_item_id)
            if menu_item is not None:
                message = check_add_to_cart(self.lines, menu_item, menu_items, snapshot, delta)
                if message:
                    raise StockLimitError(message)

        line.quantity = max(0, line.quantity + delta)
        if line.quantity == 0:
            self.remove(line_id)

    def remove(self, line_id: UUID) -> None:
        self.lines = [line for line in self.lines if line.id != line_id]

    def clear(self) -> None:
        self.lines = []

    @property
    def subtotal(self) -> Decimal:
        return sum((line.total for line in self.lines), Decimal("0"))
