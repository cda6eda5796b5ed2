"""
Stock ledger: the only code that changes `bar_inventory.current_stock`.

Every change is an atomic statement at the database (increment/decrement with an
optional `current_stock >= q` guard, or an upsert that merges by addition), paired
with an append-only StockMovement row in the same transaction. Nothing here commits;
callers own the transaction so the movement and the stock change land together.
"""
import logging
import uuid
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import InsufficientStockError, NotFoundError, StockValidationError
from db.inventory.item import InventoryItem as InventoryItemModel
from db.inventory.movement import MOVEMENT_TYPES, StockMovement as StockMovementModel
from db.inventory.stock import LocationStock as LocationStockModel
from services.availability import DemandAggregate, InventoryItemId, Shortfall, StockLevel

logger = logging.getLogger(__name__)


def _dialect_insert(db: AsyncSession):
    # ON CONFLICT support lives on the dialect-specific insert construct
    name = db.get_bind().dialect.name
    if name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise RuntimeError(f"Unsupported database dialect for stock upserts: {name}")
    return insert


async def get_stock_row(
    db: AsyncSession, bar_id: UUID, inventory_item_id: UUID, *, for_update: bool = False
) -> Optional[LocationStockModel]:
    stmt = select(LocationStockModel).where(
        LocationStockModel.bar_id == bar_id,
        LocationStockModel.inventory_item_id == inventory_item_id,
    ).execution_options(populate_existing=True)
    if for_update:
        stmt = stmt.with_for_update()
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def get_stock_snapshot(db: AsyncSession, bar_id: UUID) -> Dict[InventoryItemId, StockLevel]:
    res = await db.execute(
        select(LocationStockModel).where(
            LocationStockModel.bar_id == bar_id,
            LocationStockModel.is_active == True,  # noqa: E712
        )
    )
    return {
        InventoryItemId(s.inventory_item_id): StockLevel(
            current_stock=int(s.current_stock or 0),
            min_stock_level=int(s.min_stock_level or 0),
        )
        for s in res.scalars().all()
    }


async def list_bar_stock(db: AsyncSession, bar_id: UUID, include_inactive: bool = False):
    stmt = (
        select(LocationStockModel, InventoryItemModel)
        .join(InventoryItemModel, InventoryItemModel.id == LocationStockModel.inventory_item_id)
        .where(LocationStockModel.bar_id == bar_id)
    )
    if not include_inactive:
        stmt = stmt.where(LocationStockModel.is_active == True)  # noqa: E712
        stmt = stmt.where(InventoryItemModel.is_active == True)  # noqa: E712
    res = await db.execute(stmt.order_by(func.lower(InventoryItemModel.name).asc()))
    return res.all()


async def list_movements(
    db: AsyncSession,
    *,
    bar_id: Optional[UUID] = None,
    inventory_item_id: Optional[UUID] = None,
    limit: int = 100,
) -> List[StockMovementModel]:
    stmt = select(StockMovementModel)
    if bar_id:
        stmt = stmt.where(StockMovementModel.bar_id == bar_id)
    if inventory_item_id:
        stmt = stmt.where(StockMovementModel.inventory_item_id == inventory_item_id)
    stmt = stmt.order_by(StockMovementModel.created_at.desc()).limit(limit)
    res = await db.execute(stmt)
    return list(res.scalars().all())


async def ensure_stock_row(
    db: AsyncSession,
    bar_id: UUID,
    inventory_item_id: UUID,
    min_stock_level: Optional[int] = None,
) -> LocationStockModel:
    """Pair an inventory item with a bar at zero stock; an existing pairing is left as is."""
    insert = _dialect_insert(db)
    stock_tbl = LocationStockModel.__table__
    stmt = (
        insert(stock_tbl)
        .values(
            id=uuid.uuid4(),
            bar_id=bar_id,
            inventory_item_id=inventory_item_id,
            current_stock=0,
            min_stock_level=settings.default_min_stock_level if min_stock_level is None else min_stock_level,
            is_active=True,
        )
        .on_conflict_do_nothing(index_elements=[stock_tbl.c.bar_id, stock_tbl.c.inventory_item_id])
    )
    await db.execute(stmt)
    return await get_stock_row(db, bar_id, inventory_item_id)


async def _shift_stock(
    db: AsyncSession, bar_id: UUID, inventory_item_id: UUID, delta: int, *, guard: bool
) -> Optional[int]:
    """
    Atomically add `delta` to current_stock and return the new value.

    With `guard`, a decrement only applies while current_stock >= -delta; None is
    returned when the row is missing or the guard rejects.
    """
    stock_tbl = LocationStockModel.__table__
    stmt = (
        update(stock_tbl)
        .where(stock_tbl.c.bar_id == bar_id)
        .where(stock_tbl.c.inventory_item_id == inventory_item_id)
        .values(current_stock=stock_tbl.c.current_stock + delta)
        .returning(stock_tbl.c.current_stock)
    )
    if guard and delta < 0:
        stmt = stmt.where(stock_tbl.c.current_stock >= -delta)
    row = (await db.execute(stmt)).first()
    return int(row.current_stock) if row else None


def _record_movement(
    db: AsyncSession,
    *,
    bar_id: UUID,
    inventory_item_id: UUID,
    movement_type: str,
    quantity: int,
    previous_stock: int,
    new_stock: int,
    actor_id: Optional[UUID],
    notes: Optional[str],
) -> StockMovementModel:
    movement = StockMovementModel(
        id=uuid.uuid4(),
        bar_id=bar_id,
        inventory_item_id=inventory_item_id,
        movement_type=movement_type,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        notes=notes,
        created_by=actor_id,
    )
    db.add(movement)
    logger.debug(
        "movement %s bar=%s item=%s qty=%s %s->%s",
        movement_type, bar_id, inventory_item_id, quantity, previous_stock, new_stock,
    )
    return movement


async def apply_movement(
    db: AsyncSession,
    *,
    bar_id: UUID,
    inventory_item_id: UUID,
    movement_type: str,
    quantity: int,
    actor_id: Optional[UUID] = None,
    notes: Optional[str] = None,
    allow_negative: Optional[bool] = None,
) -> LocationStockModel:
    if allow_negative is None:
        allow_negative = settings.allow_negative_stock
    if movement_type not in MOVEMENT_TYPES:
        raise StockValidationError(f"Unknown movement type: {movement_type}")
    quantity = int(quantity)
    if movement_type in ("in", "out") and quantity <= 0:
        raise StockValidationError(f"{movement_type} movements require a quantity > 0")
    if movement_type == "adjustment" and quantity < 0:
        raise StockValidationError("adjustment quantity must be >= 0")

    if movement_type == "adjustment":
        stock = await get_stock_row(db, bar_id, inventory_item_id, for_update=True)
        if stock is None:
            raise NotFoundError("Item is not stocked at this bar")
        previous_stock = int(stock.current_stock or 0)
        new_stock = quantity
        stock.current_stock = new_stock
    else:
        delta = quantity if movement_type == "in" else -quantity
        guard = movement_type == "out" and not allow_negative
        new_stock = await _shift_stock(db, bar_id, inventory_item_id, delta, guard=guard)
        if new_stock is None:
            stock = await get_stock_row(db, bar_id, inventory_item_id)
            if stock is None:
                raise NotFoundError("Item is not stocked at this bar")
            available = int(stock.current_stock or 0)
            item = await db.get(InventoryItemModel, inventory_item_id)
            raise InsufficientStockError(
                [Shortfall(name=item.name if item else str(inventory_item_id), available=available, requested=quantity)],
                message=f"Not enough stock. Available={available} requested={quantity}",
            )
        previous_stock = new_stock - delta

    _record_movement(
        db,
        bar_id=bar_id,
        inventory_item_id=inventory_item_id,
        movement_type=movement_type,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        actor_id=actor_id,
        notes=notes,
    )
    await db.flush()
    return await get_stock_row(db, bar_id, inventory_item_id)


async def restore_stock(
    db: AsyncSession,
    bar_id: UUID,
    inventory_item_id: UUID,
    quantity: int,
    *,
    actor_id: Optional[UUID] = None,
    notes: Optional[str] = None,
) -> int:
    """
    Put `quantity` back at a bar: create the pairing with that stock, or add to it.

    One INSERT ... ON CONFLICT DO UPDATE SET current_stock = current_stock + excluded,
    so an existing non-zero row is incremented, never overwritten. Returns the new stock.
    """
    quantity = int(quantity)
    if quantity <= 0:
        raise StockValidationError("quantity must be > 0")

    insert = _dialect_insert(db)
    stock_tbl = LocationStockModel.__table__
    stmt = insert(stock_tbl).values(
        id=uuid.uuid4(),
        bar_id=bar_id,
        inventory_item_id=inventory_item_id,
        current_stock=quantity,
        min_stock_level=settings.restored_min_stock_level,
        is_active=True,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[stock_tbl.c.bar_id, stock_tbl.c.inventory_item_id],
        set_={
            "current_stock": stock_tbl.c.current_stock + stmt.excluded.current_stock,
            "updated_at": func.now(),
        },
    ).returning(stock_tbl.c.current_stock)
    row = (await db.execute(stmt)).first()
    new_stock = int(row.current_stock)

    _record_movement(
        db,
        bar_id=bar_id,
        inventory_item_id=inventory_item_id,
        movement_type="in",
        quantity=quantity,
        previous_stock=new_stock - quantity,
        new_stock=new_stock,
        actor_id=actor_id,
        notes=notes,
    )
    await db.flush()
    return new_stock


async def decrement_for_sale(
    db: AsyncSession,
    bar_id: UUID,
    demand: Dict[InventoryItemId, DemandAggregate],
    *,
    actor_id: Optional[UUID] = None,
    notes: Optional[str] = None,
) -> None:
    """
    Take a checkout's demand out of stock with guarded decrements.

    Oversell is never allowed here, whatever ALLOW_NEGATIVE_STOCK says. If any
    aggregate no longer fits, InsufficientStockError lists every shortfall and the
    caller must roll back.
    """
    shortfalls: List[Shortfall] = []
    for inventory_item_id, agg in demand.items():
        new_stock = await _shift_stock(db, bar_id, inventory_item_id, -agg.requested, guard=True)
        if new_stock is None:
            stock = await get_stock_row(db, bar_id, inventory_item_id)
            available = int(stock.current_stock or 0) if stock else 0
            shortfalls.append(Shortfall(name=agg.label, available=available, requested=agg.requested))
            continue
        _record_movement(
            db,
            bar_id=bar_id,
            inventory_item_id=inventory_item_id,
            movement_type="out",
            quantity=agg.requested,
            previous_stock=new_stock + agg.requested,
            new_stock=new_stock,
            actor_id=actor_id,
            notes=notes,
        )
    if shortfalls:
        raise InsufficientStockError(shortfalls)
    await db.flush()
