import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import StockError
from db.bar import Bar as BarModel
from db.database import get_async_session
from db.inventory.item import InventoryItem as InventoryItemModel
from schemas.inventory import (
    BarStockOut,
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    StockAssignRequest,
    StockMovementCreate,
    StockMovementOut,
)
from services.stock_ledger import apply_movement, ensure_stock_row, list_bar_stock, list_movements

logger = logging.getLogger(__name__)

router = APIRouter()


def _stock_out(stock, item) -> BarStockOut:
    current = int(stock.current_stock or 0)
    min_level = int(stock.min_stock_level or 0)
    return BarStockOut(
        bar_id=stock.bar_id,
        inventory_item_id=stock.inventory_item_id,
        name=item.name,
        unit=item.unit,
        category=item.category,
        current_stock=current,
        min_stock_level=min_level,
        is_low_stock=current <= min_level,
    )


async def _get_item_or_404(db: AsyncSession, item_id: UUID) -> InventoryItemModel:
    res = await db.execute(select(InventoryItemModel).where(InventoryItemModel.id == item_id))
    model = res.scalar_one_or_none()
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return model


@router.get("/items", response_model=List[InventoryItemOut])
async def list_inventory_items(
    category: Optional[str] = None,
    q: Optional[str] = None,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_async_session),
):
    stmt = select(InventoryItemModel)
    if not include_inactive:
        stmt = stmt.where(InventoryItemModel.is_active == True)  # noqa: E712
    if category:
        stmt = stmt.where(InventoryItemModel.category == category)
    if q:
        qq = f"%{q.strip().lower()}%"
        stmt = stmt.where(func.lower(InventoryItemModel.name).like(qq))
    res = await db.execute(stmt.order_by(func.lower(InventoryItemModel.name).asc()))
    return [InventoryItemOut(**it.to_schema) for it in res.scalars().all()]


@router.post("/items", response_model=InventoryItemOut, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryItemCreate,
    db: AsyncSession = Depends(get_async_session),
):
    model = InventoryItemModel(
        name=payload.name,
        unit=payload.unit,
        category=payload.category,
        supplier=payload.supplier,
        cost_per_unit=payload.cost_per_unit,
        is_active=True,
    )
    db.add(model)
    await db.commit()
    await db.refresh(model)
    return InventoryItemOut(**model.to_schema)


@router.patch("/items/{item_id}", response_model=InventoryItemOut)
async def update_inventory_item(
    item_id: UUID,
    payload: InventoryItemUpdate,
    db: AsyncSession = Depends(get_async_session),
):
    model = await _get_item_or_404(db, item_id)

    data = payload.model_dump(exclude_unset=True)
    for key in ("name", "unit", "category", "supplier", "cost_per_unit"):
        if key in data:
            setattr(model, key, data[key])
    if data.get("is_active") is not None:
        model.is_active = bool(data["is_active"])

    await db.commit()
    await db.refresh(model)
    return InventoryItemOut(**model.to_schema)


@router.delete("/items/{item_id}", response_model=dict)
async def soft_delete_inventory_item(
    item_id: UUID,
    db: AsyncSession = Depends(get_async_session),
):
    # Movements and menu items keep pointing at it; only hide it
    model = await _get_item_or_404(db, item_id)
    model.is_active = False
    await db.commit()
    return {"ok": True}


@router.get("/stock", response_model=List[BarStockOut])
async def get_bar_stock(
    bar_id: UUID = Query(...),
    low_only: bool = False,
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_async_session),
):
    rows = await list_bar_stock(db, bar_id, include_inactive=include_inactive)
    out = [_stock_out(stock, item) for (stock, item) in rows]
    if low_only:
        out = [row for row in out if row.is_low_stock]
    return out


@router.post("/stock", response_model=BarStockOut, status_code=status.HTTP_201_CREATED)
async def assign_item_to_bar(
    payload: StockAssignRequest,
    db: AsyncSession = Depends(get_async_session),
):
    """Start carrying an inventory item at a bar (zero stock; fill it with an `in` movement)."""
    if await db.get(BarModel, payload.bar_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bar not found")
    item = await _get_item_or_404(db, payload.inventory_item_id)

    stock = await ensure_stock_row(db, payload.bar_id, payload.inventory_item_id, payload.min_stock_level)
    await db.commit()
    return _stock_out(stock, item)


@router.post("/movements", response_model=BarStockOut, status_code=status.HTTP_201_CREATED)
async def create_movement(
    payload: StockMovementCreate,
    db: AsyncSession = Depends(get_async_session),
):
    item = await _get_item_or_404(db, payload.inventory_item_id)
    try:
        stock = await apply_movement(
            db,
            bar_id=payload.bar_id,
            inventory_item_id=payload.inventory_item_id,
            movement_type=payload.movement_type,
            quantity=payload.quantity,
            actor_id=payload.actor_id,
            notes=payload.notes,
        )
        await db.commit()
    except StockError:
        await db.rollback()
        raise
    except Exception as e:
        await db.rollback()
        logger.exception("[inventory] create_movement failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to create movement: {e}")
    return _stock_out(stock, item)


@router.get("/movements", response_model=List[StockMovementOut])
async def get_movements(
    bar_id: Optional[UUID] = None,
    inventory_item_id: Optional[UUID] = None,
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_async_session),
):
    movements = await list_movements(db, bar_id=bar_id, inventory_item_id=inventory_item_id, limit=limit)
    return [StockMovementOut.model_validate(m) for m in movements]
