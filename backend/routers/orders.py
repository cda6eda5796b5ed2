from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from typing import List, Optional
from uuid import UUID
from datetime import date, datetime, time

from db.database import get_async_session
from db.order import Order as OrderModel
from schemas.orders import OrderItemRead, OrderRead, PaymentRead
from services.checkout import get_order

router = APIRouter()


def _serialize_order(o: OrderModel) -> OrderRead:
    return OrderRead(
        id=o.id,
        order_number=o.order_number,
        bar_id=o.bar_id,
        order_type=o.order_type,
        table_number=o.table_number,
        status=o.status,
        subtotal=float(o.subtotal or 0),
        vat_amount=float(o.vat_amount or 0),
        service_charge=float(o.service_charge or 0),
        discount_amount=float(o.discount_amount or 0),
        total_amount=float(o.total_amount or 0),
        notes=o.notes,
        created_by=o.created_by,
        created_at=o.created_at,
        items=[
            OrderItemRead(
                id=it.id,
                menu_item_id=it.menu_item_id,
                item_name=it.item_name,
                quantity=int(it.quantity),
                unit_price=float(it.unit_price),
                total_price=float(it.total_price),
                notes=it.notes,
            )
            for it in (o.items or [])
        ],
        payments=[
            PaymentRead(payment_method=p.payment_method, amount=float(p.amount))
            for p in (o.payments or [])
        ],
    )


@router.get("/", response_model=List[OrderRead])
async def list_orders(
    bar_id: Optional[UUID] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    db: AsyncSession = Depends(get_async_session),
):
    stmt = (
        select(OrderModel)
        .options(selectinload(OrderModel.items), selectinload(OrderModel.payments))
        .order_by(OrderModel.created_at.desc())
    )
    if bar_id:
        stmt = stmt.where(OrderModel.bar_id == bar_id)
    if status_filter:
        stmt = stmt.where(OrderModel.status == status_filter)
    if from_date:
        stmt = stmt.where(OrderModel.created_at >= datetime.combine(from_date, time.min))
    if to_date:
        stmt = stmt.where(OrderModel.created_at <= datetime.combine(to_date, time.max))

    res = await db.execute(stmt)
    return [_serialize_order(o) for o in res.scalars().all()]


@router.get("/{order_id}", response_model=OrderRead)
async def read_order(order_id: UUID, db: AsyncSession = Depends(get_async_session)):
    return _serialize_order(await get_order(db, order_id))
