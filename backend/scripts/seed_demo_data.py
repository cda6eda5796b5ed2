import asyncio
import sys
from pathlib import Path
from decimal import Decimal

"""
Seed demo data (bars, inventory items, bar stock, menu) into the database.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select  # noqa: E402

from db.database import async_session_maker, create_db_and_tables  # noqa: E402
from db.bar import Bar  # noqa: E402
from db.inventory.item import InventoryItem  # noqa: E402
from db.menu import MenuItem  # noqa: E402
from services.stock_ledger import apply_movement, ensure_stock_row  # noqa: E402


BARS = ["Main Bar", "Terrace Bar"]

# name, unit, category, cost
INVENTORY = [
    ("Lager", "pint", "Beer", Decimal("1.20")),
    ("Cola", "can", "Soft drinks", Decimal("0.40")),
    ("House Red", "glass", "Wine", Decimal("1.80")),
]

# name, price, category, inventory item name (None = not tracked)
MENU = [
    ("Pint of Lager", Decimal("5.50"), "Beer", "Lager"),
    ("Half of Lager", Decimal("3.00"), "Beer", "Lager"),
    ("Cola", Decimal("2.50"), "Soft drinks", "Cola"),
    ("Glass of House Red", Decimal("6.00"), "Wine", "House Red"),
    ("Bowl of Chips", Decimal("4.00"), "Food", None),
]

STARTING_STOCK = {"Lager": 48, "Cola": 24, "House Red": 12}


async def get_or_create_bar(session, name: str) -> Bar:
    result = await session.execute(select(Bar).where(func.lower(Bar.name) == name.lower()))
    bar = result.scalar_one_or_none()
    if bar:
        return bar
    bar = Bar(name=name, is_active=True)
    session.add(bar)
    await session.flush()
    return bar


async def get_or_create_item(session, name: str, unit: str, category: str, cost: Decimal) -> InventoryItem:
    result = await session.execute(
        select(InventoryItem).where(func.lower(InventoryItem.name) == name.lower())
    )
    item = result.scalar_one_or_none()
    if item:
        return item
    item = InventoryItem(name=name, unit=unit, category=category, cost_per_unit=cost, is_active=True)
    session.add(item)
    await session.flush()
    return item


async def get_or_create_menu_item(session, name: str, price: Decimal, category: str, item) -> MenuItem:
    result = await session.execute(select(MenuItem).where(func.lower(MenuItem.name) == name.lower()))
    menu_item = result.scalar_one_or_none()
    if menu_item:
        return menu_item
    menu_item = MenuItem(
        name=name,
        price=price,
        category=category,
        track_inventory=item is not None,
        inventory_item_id=item.id if item is not None else None,
        is_active=True,
        is_available=True,
    )
    session.add(menu_item)
    await session.flush()
    return menu_item


async def seed():
    await create_db_and_tables()
    async with async_session_maker() as session:
        bars = [await get_or_create_bar(session, name) for name in BARS]
        items = {}
        for name, unit, category, cost in INVENTORY:
            items[name] = await get_or_create_item(session, name, unit, category, cost)

        for name, price, category, item_name in MENU:
            await get_or_create_menu_item(session, name, price, category, items.get(item_name) if item_name else None)

        for bar in bars:
            for name, item in items.items():
                stock = await ensure_stock_row(session, bar.id, item.id)
                if stock.current_stock == 0:
                    await apply_movement(
                        session,
                        bar_id=bar.id,
                        inventory_item_id=item.id,
                        movement_type="in",
                        quantity=STARTING_STOCK[name],
                        notes="Opening stock",
                    )

        await session.commit()
        print(f"Seeded {len(bars)} bars, {len(items)} inventory items, {len(MENU)} menu items")


if __name__ == "__main__":
    asyncio.run(seed())
