import pytest
from sqlalchemy import select

from core.exceptions import InsufficientStockError, NotFoundError, StockValidationError
from db.inventory.movement import StockMovement
from services.availability import DemandAggregate, InventoryItemId
from services.stock_ledger import (
    apply_movement,
    decrement_for_sale,
    ensure_stock_row,
    get_stock_row,
    get_stock_snapshot,
    list_movements,
    restore_stock,
)


async def movements_for(db, bar, item):
    res = await db.execute(
        select(StockMovement)
        .where(StockMovement.bar_id == bar.id, StockMovement.inventory_item_id == item.id)
        .order_by(StockMovement.created_at.asc())
    )
    return list(res.scalars().all())


class TestApplyMovement:
    async def test_in_movement_updates_stock_and_ledger(self, db, bars, lager, stock_item):
        bar_a, _ = bars
        await stock_item(bar_a, lager, 5)

        stock = await apply_movement(
            db, bar_id=bar_a.id, inventory_item_id=lager.id, movement_type="in", quantity=10
        )
        await db.commit()

        assert stock.current_stock == 15
        [movement] = await movements_for(db, bar_a, lager)
        assert (movement.previous_stock, movement.new_stock, movement.quantity) == (5, 15, 10)
        assert movement.movement_type == "in"

    async def test_out_movement_is_guarded_by_default(self, db, bars, lager, stock_item):
        bar_a, _ = bars
        await stock_item(bar_a, lager, 3)

        with pytest.raises(InsufficientStockError) as exc:
            await apply_movement(
                db, bar_id=bar_a.id, inventory_item_id=lager.id, movement_type="out", quantity=4
            )
        await db.rollback()

        assert exc.value.shortfalls[0].name == "Lager"
        assert (await get_stock_row(db, bar_a.id, lager.id)).current_stock == 3

    async def test_out_movement_can_go_negative_when_allowed(self, db, bars, lager, stock_item):
        bar_a, _ = bars
        await stock_item(bar_a, lager, 3)

        stock = await apply_movement(
            db,
            bar_id=bar_a.id,
            inventory_item_id=lager.id,
            movement_type="out",
            quantity=4,
            allow_negative=True,
        )
        await db.commit()
        assert stock.current_stock == -1

    async def test_adjustment_sets_absolute_count(self, db, bars, lager, stock_item):
        bar_a, _ = bars
        await stock_item(bar_a, lager, 9)

        stock = await apply_movement(
            db, bar_id=bar_a.id, inventory_item_id=lager.id, movement_type="adjustment", quantity=4,
            notes="Stock take",
        )
        await db.commit()

        assert stock.current_stock == 4
        [movement] = await movements_for(db, bar_a, lager)
        assert (movement.previous_stock, movement.new_stock) == (9, 4)

    async def test_unstocked_item(self, db, bars, lager, stock_item):
        bar_a, _ = bars
        with pytest.raises(NotFoundError):
            await apply_movement(
                db, bar_id=bar_a.id, inventory_item_id=lager.id, movement_type="in", quantity=1
            )

    @pytest.mark.parametrize("movement_type,quantity", [("in", 0), ("out", -2), ("adjustment", -1), ("waste", 3)])
    async def test_rejects_bad_input(self, db, bars, lager, stock_item, movement_type, quantity):
        bar_a, _ = bars
        await stock_item(bar_a, lager, 5)
        with pytest.raises(StockValidationError):
            await apply_movement(
                db, bar_id=bar_a.id, inventory_item_id=lager.id, movement_type=movement_type, quantity=quantity
            )


class TestRestoreStock:
    async def test_creates_missing_row(self, db, bars, lager, stock_item):
        _, bar_b = bars

        assert await restore_stock(db, bar_b.id, lager.id, 6) == 6
        await db.commit()

        row = await get_stock_row(db, bar_b.id, lager.id)
        assert row.current_stock == 6
        assert row.min_stock_level == 5

    async def test_adds_to_existing_row(self, db, bars, lager, stock_item):
        bar_a, _ = bars
        await stock_item(bar_a, lager, 7)

        assert await restore_stock(db, bar_a.id, lager.id, 3, notes="returned") == 10
        await db.commit()

        [movement] = await movements_for(db, bar_a, lager)
        assert (movement.movement_type, movement.previous_stock, movement.new_stock) == ("in", 7, 10)


class TestDecrementForSale:
    async def test_all_or_nothing(self, db, bars, lager, stock_item):
        bar_a, _ = bars
        await stock_item(bar_a, lager, 4)
        key = InventoryItemId(lager.id)

        with pytest.raises(InsufficientStockError) as exc:
            await decrement_for_sale(
                db, bar_a.id, {key: DemandAggregate(inventory_item_id=key, label="Pint of Lager", requested=5)}
            )
        await db.rollback()

        assert [(s.name, s.available, s.requested) for s in exc.value.shortfalls] == [("Pint of Lager", 4, 5)]
        assert (await get_stock_snapshot(db, bar_a.id))[key].current_stock == 4

    async def test_records_out_movement(self, db, bars, lager, stock_item):
        bar_a, _ = bars
        await stock_item(bar_a, lager, 4)
        key = InventoryItemId(lager.id)

        await decrement_for_sale(
            db, bar_a.id, {key: DemandAggregate(inventory_item_id=key, label="Pint of Lager", requested=3)},
            notes="Sale: ORD-1",
        )
        await db.commit()

        [movement] = await list_movements(db, bar_id=bar_a.id)
        assert (movement.movement_type, movement.quantity, movement.new_stock) == ("out", 3, 1)
        assert movement.notes == "Sale: ORD-1"


async def test_ensure_stock_row_keeps_existing_count(db, bars, lager, stock_item):
    bar_a, _ = bars
    await stock_item(bar_a, lager, 8)

    row = await ensure_stock_row(db, bar_a.id, lager.id)
    await db.commit()
    assert row.current_stock == 8
