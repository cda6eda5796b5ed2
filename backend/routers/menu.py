from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from db.database import get_async_session
from db.inventory.item import InventoryItem as InventoryItemModel
from db.menu import MenuItem as MenuItemModel
from schemas.menu import MenuItemCreate, MenuItemRead

router = APIRouter()


@router.get("/items", response_model=List[MenuItemRead])
async def list_menu_items(
    category: Optional[str] = None,
    db: AsyncSession = Depends(get_async_session),
):
    stmt = select(MenuItemModel).where(MenuItemModel.is_active == True)  # noqa: E712
    if category:
        stmt = stmt.where(MenuItemModel.category == category)
    res = await db.execute(stmt.order_by(func.lower(MenuItemModel.name).asc()))
    return [MenuItemRead(**m.to_schema) for m in res.scalars().all()]


@router.post("/items", response_model=MenuItemRead, status_code=status.HTTP_201_CREATED)
async def create_menu_item(
    payload: MenuItemCreate,
    db: AsyncSession = Depends(get_async_session),
):
    if payload.inventory_item_id is not None:
        if await db.get(InventoryItemModel, payload.inventory_item_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Inventory item not found")

    m = MenuItemModel(
        name=payload.name,
        price=payload.price,
        category=payload.category,
        description=payload.description,
        track_inventory=payload.track_inventory,
        inventory_item_id=payload.inventory_item_id,
        is_active=True,
        is_available=True,
    )
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return MenuItemRead(**m.to_schema)
