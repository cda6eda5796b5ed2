import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.exceptions import InsufficientStockError, NotFoundError, StockValidationError
from db.bar import Bar as BarModel
from db.menu import MenuItem as MenuItemModel
from db.order import Order as OrderModel, OrderItem as OrderItemModel, Payment as PaymentModel
from schemas.pos import CheckoutRequest
from services.availability import aggregate_demand, validate_cart
from services.stock_ledger import decrement_for_sale, get_stock_snapshot

logger = logging.getLogger(__name__)


def _money(x) -> Decimal:
    return Decimal(str(x or 0)).quantize(Decimal("0.01"))


def new_order_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


async def load_menu_items(db: AsyncSession, menu_item_ids) -> dict:
    ids = list({mid for mid in menu_item_ids})
    if not ids:
        return {}
    res = await db.execute(
        select(MenuItemModel).where(
            MenuItemModel.id.in_(ids),
            MenuItemModel.is_active == True,  # noqa: E712
        )
    )
    return {m.id: m for m in res.scalars().all()}


async def get_order(db: AsyncSession, order_id: UUID) -> OrderModel:
    res = await db.execute(
        select(OrderModel)
        .options(selectinload(OrderModel.items), selectinload(OrderModel.payments))
        .where(OrderModel.id == order_id)
        .execution_options(populate_existing=True)
    )
    order = res.scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order not found")
    return order


async def checkout(db: AsyncSession, payload: CheckoutRequest) -> OrderModel:
    """
    Turn a cart into an Order (+ items and payment) and take its stock.

    Stock is validated again here against a fresh snapshot whatever the client
    saw, then decremented with guarded atomic updates in the same transaction as
    the order rows, so a concurrent sale that got there first rolls this one back.
    """
    if not payload.items:
        raise StockValidationError("Cart is empty")
    if await db.get(BarModel, payload.bar_id) is None:
        raise NotFoundError("Bar not found")

    menu_items = await load_menu_items(db, [line.menu_item_id for line in payload.items])
    for line in payload.items:
        if line.menu_item_id not in menu_items:
            raise NotFoundError(f"Menu item {line.menu_item_id} not found")

    snapshot = await get_stock_snapshot(db, payload.bar_id)
    validation = validate_cart(payload.items, menu_items, snapshot)
    if not validation.valid:
        raise InsufficientStockError(validation.shortfalls)

    order_number = new_order_number()
    subtotal = Decimal("0")
    order = OrderModel(
        order_number=order_number,
        bar_id=payload.bar_id,
        order_type=payload.order_type,
        table_number=payload.table_number if payload.order_type == "dine_in" else None,
        notes=payload.notes,
        created_by=payload.actor_id,
    )
    for line in payload.items:
        menu_item = menu_items[line.menu_item_id]
        unit_price = _money(menu_item.price)
        line_total = unit_price * line.quantity
        subtotal += line_total
        order.items.append(
            OrderItemModel(
                menu_item_id=menu_item.id,
                item_name=menu_item.name,
                quantity=line.quantity,
                unit_price=unit_price,
                total_price=line_total,
                notes=line.notes,
            )
        )

    vat = _money(payload.vat_amount)
    service = _money(payload.service_charge)
    discount = _money(payload.discount_amount)
    total = subtotal + vat + service - discount
    order.subtotal = subtotal
    order.vat_amount = vat
    order.service_charge = service
    order.discount_amount = discount
    order.total_amount = total
    order.payments.append(PaymentModel(payment_method=payload.payment_method, amount=total))

    try:
        db.add(order)
        await db.flush()
        await decrement_for_sale(
            db,
            payload.bar_id,
            aggregate_demand(payload.items, menu_items),
            actor_id=payload.actor_id,
            notes=f"Sale: {order_number}",
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Order %s placed at bar %s total=%s", order_number, payload.bar_id, total)
    return await get_order(db, order.id)
