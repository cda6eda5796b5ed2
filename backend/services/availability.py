"""
Stock availability for the POS.

Everything here is pure computation over snapshots fetched by the caller:

- aggregate_demand: collapse cart lines into demand per inventory item
  (two menu items can draw from the same inventory item, e.g. small/large beer
  from one keg, so stock is checked on the shared item).
- item_status: live per-menu-item badge, reduced by what the cart already holds.
- validate_cart: the checkout gate, whole-cart demand against raw stock.
- check_add_to_cart: the add-to-cart gate, built on the same numbers.

Cart lines and menu items are duck-typed: anything with `menu_item_id`/`quantity`
(lines) and `id`/`name`/`track_inventory`/`inventory_item_id` (menu items) works,
ORM rows and pydantic models alike.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, NewType, Optional
from uuid import UUID


InventoryItemId = NewType("InventoryItemId", UUID)


@dataclass(frozen=True)
class StockLevel:
    current_stock: int
    min_stock_level: int = 0


# inventory_item_id -> stock level at one bar; None means no bar is selected
StockSnapshot = Mapping[InventoryItemId, StockLevel]


@dataclass
class DemandAggregate:
    inventory_item_id: InventoryItemId
    label: str
    requested: int = 0
    menu_item_ids: List[UUID] = field(default_factory=list)


@dataclass(frozen=True)
class Shortfall:
    name: str
    available: int
    requested: int


@dataclass
class CartValidation:
    valid: bool
    shortfalls: List[Shortfall] = field(default_factory=list)


@dataclass(frozen=True)
class ItemStatus:
    menu_item_id: UUID
    inventory_item_id: Optional[UUID]
    # None means unlimited (item does not track inventory)
    available: Optional[int]
    has_stock: bool
    is_low_stock: bool
    is_out_of_stock: bool


def tracks_inventory(menu_item) -> bool:
    return bool(getattr(menu_item, "track_inventory", False)) and getattr(menu_item, "inventory_item_id", None) is not None


def index_menu_items(menu_items) -> Dict[UUID, object]:
    if isinstance(menu_items, Mapping):
        return dict(menu_items)
    return {m.id: m for m in menu_items}


def aggregate_demand(cart: Iterable, menu_items) -> Dict[InventoryItemId, DemandAggregate]:
    """
    Total requested quantity per inventory item, in order of first appearance.

    Lines for unknown, untracked or unlinked menu items are skipped: they are
    always satisfiable. The label of an aggregate is the name of the first menu
    item that contributed to it and is never replaced.
    """
    by_id = index_menu_items(menu_items)
    demand: Dict[InventoryItemId, DemandAggregate] = {}
    for line in cart:
        menu_item = by_id.get(line.menu_item_id)
        if menu_item is None or not tracks_inventory(menu_item):
            continue
        key = InventoryItemId(menu_item.inventory_item_id)
        agg = demand.get(key)
        if agg is None:
            agg = DemandAggregate(inventory_item_id=key, label=menu_item.name)
            demand[key] = agg
        agg.requested += int(line.quantity)
        if menu_item.id not in agg.menu_item_ids:
            agg.menu_item_ids.append(menu_item.id)
    return demand


def item_status(menu_item, snapshot: Optional[StockSnapshot], in_cart_quantity: int = 0) -> ItemStatus:
    if not tracks_inventory(menu_item):
        return ItemStatus(
            menu_item_id=menu_item.id,
            inventory_item_id=getattr(menu_item, "inventory_item_id", None),
            available=None,
            has_stock=True,
            is_low_stock=False,
            is_out_of_stock=False,
        )

    level = snapshot.get(menu_item.inventory_item_id) if snapshot is not None else None
    if level is None:
        # No bar selected, or the bar does not carry this item
        return ItemStatus(
            menu_item_id=menu_item.id,
            inventory_item_id=menu_item.inventory_item_id,
            available=0,
            has_stock=False,
            is_low_stock=False,
            is_out_of_stock=True,
        )

    available = int(level.current_stock) - int(in_cart_quantity)
    is_out_of_stock = available <= 0
    return ItemStatus(
        menu_item_id=menu_item.id,
        inventory_item_id=menu_item.inventory_item_id,
        available=available,
        has_stock=not is_out_of_stock,
        is_low_stock=not is_out_of_stock and available <= int(level.min_stock_level),
        is_out_of_stock=is_out_of_stock,
    )


def menu_status(menu_items, cart: Iterable, snapshot: Optional[StockSnapshot]) -> Dict[UUID, ItemStatus]:
    """Badge for every menu item, reserving what the cart already holds on its inventory item."""
    by_id = index_menu_items(menu_items)
    demand = aggregate_demand(cart, by_id)
    out: Dict[UUID, ItemStatus] = {}
    for menu_item_id, menu_item in by_id.items():
        reserved = 0
        if tracks_inventory(menu_item):
            agg = demand.get(InventoryItemId(menu_item.inventory_item_id))
            reserved = agg.requested if agg else 0
        out[menu_item_id] = item_status(menu_item, snapshot, reserved)
    return out


def validate_cart(cart: Iterable, menu_items, snapshot: Optional[StockSnapshot]) -> CartValidation:
    shortfalls: List[Shortfall] = []
    for inventory_item_id, agg in aggregate_demand(cart, menu_items).items():
        level = snapshot.get(inventory_item_id) if snapshot is not None else None
        available = int(level.current_stock) if level is not None else 0
        if available < agg.requested:
            shortfalls.append(Shortfall(name=agg.label, available=available, requested=agg.requested))
    return CartValidation(valid=not shortfalls, shortfalls=shortfalls)


def check_add_to_cart(
    cart: Iterable,
    menu_item,
    menu_items,
    snapshot: Optional[StockSnapshot],
    quantity: int = 1,
) -> Optional[str]:
    """Return the message to show when `quantity` more of `menu_item` cannot be added, else None."""
    if not tracks_inventory(menu_item):
        return None

    by_id = index_menu_items(menu_items)
    by_id.setdefault(menu_item.id, menu_item)
    agg = aggregate_demand(cart, by_id).get(InventoryItemId(menu_item.inventory_item_id))
    reserved = agg.requested if agg else 0

    status = item_status(menu_item, snapshot, reserved)
    if status.is_out_of_stock and reserved == 0:
        return f"{menu_item.name} is currently out of stock."
    if status.available is not None and status.available < quantity:
        level = snapshot.get(menu_item.inventory_item_id) if snapshot is not None else None
        current = int(level.current_stock) if level is not None else 0
        return f"Only {current} units available."
    return None
