from decimal import Decimal

import pytest
from sqlalchemy import func, select

from core.exceptions import InsufficientStockError, NotFoundError, StockValidationError
from db.order import Order
from schemas.pos import CheckoutRequest
from services import checkout as checkout_service
from services.availability import InventoryItemId, StockLevel
from services.checkout import checkout
from services.stock_ledger import get_stock_row, list_movements


def checkout_request(bar, *lines, **extra):
    payload = {
        "bar_id": bar.id,
        "payment_method": "card",
        "items": [{"menu_item_id": m.id, "quantity": q} for m, q in lines],
    }
    payload.update(extra)
    return CheckoutRequest(**payload)


async def order_count(db):
    return (await db.execute(select(func.count(Order.id)))).scalar_one()


class TestCheckout:
    async def test_lager_checkout_is_blocked(self, db, bars, lager, stock_item, add_menu_item):
        """4 pints in the keg, 5 in the cart: nothing is sold"""
        bar_a, _ = bars
        await stock_item(bar_a, lager, 4)
        pint = await add_menu_item("Pint of Lager", 5.5, lager)

        with pytest.raises(InsufficientStockError) as exc:
            await checkout(db, checkout_request(bar_a, (pint, 5)))

        assert exc.value.to_body() == {
            "detail": "Insufficient stock",
            "shortfalls": [{"name": "Pint of Lager", "available": 4, "requested": 5}],
        }
        assert await order_count(db) == 0
        assert (await get_stock_row(db, bar_a.id, lager.id)).current_stock == 4

    async def test_successful_checkout(self, db, bars, lager, stock_item, add_menu_item):
        bar_a, _ = bars
        await stock_item(bar_a, lager, 10)
        pint = await add_menu_item("Pint of Lager", 5.5, lager)
        half = await add_menu_item("Half of Lager", 3, lager)
        chips = await add_menu_item("Bowl of Chips", 4)

        order = await checkout(
            db,
            checkout_request(
                bar_a, (pint, 2), (half, 3), (chips, 1),
                vat_amount=2.5, service_charge=1, discount_amount=0.5, table_number=" 7 ",
            ),
        )

        assert order.order_number.startswith("ORD-")
        assert order.subtotal == Decimal("24.00")
        assert order.total_amount == Decimal("27.00")
        assert order.table_number == "7"
        assert {i.item_name: i.quantity for i in order.items} == {
            "Pint of Lager": 2, "Half of Lager": 3, "Bowl of Chips": 1,
        }
        assert [p.amount for p in order.payments] == [Decimal("27.00")]

        assert (await get_stock_row(db, bar_a.id, lager.id)).current_stock == 5
        [movement] = await list_movements(db, bar_id=bar_a.id)
        assert movement.quantity == 5
        assert movement.notes == f"Sale: {order.order_number}"

    async def test_stock_taken_after_validation_rolls_back(
        self, db, bars, lager, stock_item, add_menu_item, monkeypatch
    ):
        """A sale that loses the race at the decrement leaves no order behind"""
        bar_a, _ = bars
        await stock_item(bar_a, lager, 2)
        pint = await add_menu_item("Pint of Lager", 5.5, lager)

        async def stale_snapshot(db, bar_id):
            return {InventoryItemId(lager.id): StockLevel(10)}

        monkeypatch.setattr(checkout_service, "get_stock_snapshot", stale_snapshot)

        with pytest.raises(InsufficientStockError):
            await checkout(db, checkout_request(bar_a, (pint, 3)))

        assert await order_count(db) == 0
        assert (await get_stock_row(db, bar_a.id, lager.id)).current_stock == 2
        assert await list_movements(db, bar_id=bar_a.id) == []

    async def test_empty_cart(self, db, bars):
        with pytest.raises(StockValidationError):
            await checkout(db, checkout_request(bars[0]))

    async def test_unknown_menu_item(self, db, bars, lager):
        with pytest.raises(NotFoundError):
            await checkout(db, checkout_request(bars[0], (lager, 1)))
