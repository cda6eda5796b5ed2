"""
POS endpoints. The cart lives on the client; every call sends it along with the bar,
and the answers (badges, shortfalls, the grown cart) come from services.availability,
so browsing, adding and checking out all use the same stock arithmetic.
"""
from dataclasses import asdict
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError
from db.database import get_async_session
from db.menu import MenuItem as MenuItemModel
from routers.orders import _serialize_order
from schemas.orders import OrderRead
from schemas.pos import (
    AddToCartRequest,
    CartLineIn,
    CartOut,
    CartRequest,
    CartValidationOut,
    CheckoutRequest,
    ItemStatusOut,
    ItemStatusRequest,
    ShortfallOut,
)
from services.availability import menu_status, validate_cart
from services.cart import Cart, CartLine
from services.checkout import checkout, load_menu_items
from services.stock_ledger import get_stock_snapshot

router = APIRouter()


async def _snapshot_for(db: AsyncSession, bar_id: Optional[UUID]):
    # No bar selected: tracked items fail closed
    if bar_id is None:
        return None
    return await get_stock_snapshot(db, bar_id)


def _cart_line(line: CartLineIn, menu_items: dict) -> CartLine:
    menu_item = menu_items.get(line.menu_item_id)
    cart_line = CartLine(
        menu_item_id=line.menu_item_id,
        name=line.name or getattr(menu_item, "name", ""),
        price=line.price if line.price is not None else getattr(menu_item, "price", 0),
        quantity=line.quantity,
        notes=line.notes,
    )
    if line.id is not None:
        cart_line.id = line.id
    return cart_line


@router.post("/item-status", response_model=List[ItemStatusOut])
async def get_item_status(
    payload: ItemStatusRequest,
    db: AsyncSession = Depends(get_async_session),
):
    if payload.menu_item_ids is not None:
        menu_items = await load_menu_items(db, payload.menu_item_ids)
    else:
        res = await db.execute(
            select(MenuItemModel)
            .where(MenuItemModel.is_active == True)  # noqa: E712
            .order_by(func.lower(MenuItemModel.name).asc())
        )
        menu_items = {m.id: m for m in res.scalars().all()}

    # Cart lines can reserve on items outside the requested page
    all_items = dict(menu_items)
    all_items.update(await load_menu_items(db, [line.menu_item_id for line in payload.items]))

    snapshot = await _snapshot_for(db, payload.bar_id)
    statuses = menu_status(all_items, payload.items, snapshot)
    return [ItemStatusOut(**asdict(statuses[mid])) for mid in menu_items]


@router.post("/validate-cart", response_model=CartValidationOut)
async def validate_cart_endpoint(
    payload: CartRequest,
    db: AsyncSession = Depends(get_async_session),
):
    menu_items = await load_menu_items(db, [line.menu_item_id for line in payload.items])
    snapshot = await _snapshot_for(db, payload.bar_id)
    result = validate_cart(payload.items, menu_items, snapshot)
    return CartValidationOut(
        valid=result.valid,
        shortfalls=[ShortfallOut(**asdict(s)) for s in result.shortfalls],
    )


@router.post("/cart/add", response_model=CartOut)
async def add_to_cart(
    payload: AddToCartRequest,
    db: AsyncSession = Depends(get_async_session),
):
    menu_items = await load_menu_items(
        db, [payload.menu_item_id] + [line.menu_item_id for line in payload.items]
    )
    menu_item = menu_items.get(payload.menu_item_id)
    if menu_item is None:
        raise NotFoundError("Menu item not found")

    cart = Cart(lines=[_cart_line(line, menu_items) for line in payload.items])
    snapshot = await _snapshot_for(db, payload.bar_id)
    cart.add(menu_item, menu_items, snapshot, payload.quantity)
    return CartOut(
        items=[
            CartLineIn(
                id=line.id,
                menu_item_id=line.menu_item_id,
                name=line.name,
                price=float(line.price),
                quantity=line.quantity,
                notes=line.notes,
            )
            for line in cart.lines
        ],
        subtotal=float(cart.subtotal),
    )


@router.post("/checkout", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def checkout_endpoint(
    payload: CheckoutRequest,
    db: AsyncSession = Depends(get_async_session),
):
    order = await checkout(db, payload)
    return _serialize_order(order)
