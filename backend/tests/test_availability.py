from types import SimpleNamespace
from uuid import uuid4

import pytest

from core.exceptions import NotFoundError, StockLimitError
from services.availability import (
    InventoryItemId,
    StockLevel,
    aggregate_demand,
    check_add_to_cart,
    item_status,
    menu_status,
    validate_cart,
)
from services.cart import Cart


def menu_item(name, inventory_item_id=None, track=True, price=5):
    return SimpleNamespace(
        id=uuid4(),
        name=name,
        price=price,
        track_inventory=track,
        inventory_item_id=inventory_item_id,
    )


def line(item, quantity):
    return SimpleNamespace(menu_item_id=item.id, quantity=quantity)


@pytest.fixture
def keg():
    return InventoryItemId(uuid4())


@pytest.fixture
def beers(keg):
    return menu_item("Small Beer", keg), menu_item("Large Beer", keg)


class TestAggregateDemand:
    def test_shared_inventory_item_is_summed_under_first_label(self, keg, beers):
        small, large = beers
        demand = aggregate_demand([line(small, 2), line(large, 3)], [small, large])

        assert list(demand) == [keg]
        assert demand[keg].requested == 5
        assert demand[keg].label == "Small Beer"
        assert demand[keg].menu_item_ids == [small.id, large.id]

    def test_untracked_and_unknown_lines_are_skipped(self, keg):
        nachos = menu_item("Nachos", track=False)
        unlinked = menu_item("Special", inventory_item_id=None)
        stray = SimpleNamespace(menu_item_id=uuid4(), quantity=4)

        assert aggregate_demand([line(nachos, 9), line(unlinked, 1), stray], [nachos, unlinked]) == {}


class TestValidateCart:
    def test_shortfall_is_reported_once_per_shared_item(self, keg, beers):
        """Two menu items on one keg are checked together, not separately"""
        small, large = beers
        result = validate_cart([line(small, 3), line(large, 3)], [small, large], {keg: StockLevel(5)})

        assert result.valid is False
        assert len(result.shortfalls) == 1
        shortfall = result.shortfalls[0]
        assert (shortfall.available, shortfall.requested) == (5, 6)

    def test_untracked_items_never_short(self):
        nachos = menu_item("Nachos", track=False)

        for snapshot in (None, {}, {InventoryItemId(uuid4()): StockLevel(0)}):
            result = validate_cart([line(nachos, 100)], [nachos], snapshot)
            assert result.valid is True
            assert result.shortfalls == []
            assert item_status(nachos, snapshot).has_stock is True

    def test_valid_cart_never_exceeds_stock(self, keg, beers):
        small, large = beers
        snapshot = {keg: StockLevel(6)}
        for a in range(0, 8):
            for b in range(0, 8):
                cart = [line(small, a), line(large, b)]
                if validate_cart(cart, [small, large], snapshot).valid:
                    assert a + b <= 6

    def test_missing_stock_row_counts_as_zero(self, keg):
        pint = menu_item("Pint of Lager", keg)
        result = validate_cart([line(pint, 1)], [pint], {})

        assert result.valid is False
        assert result.shortfalls[0].available == 0

    def test_lager_short_by_one(self, keg):
        pint = menu_item("Pint of Lager", keg)
        result = validate_cart([line(pint, 5)], [pint], {keg: StockLevel(4)})

        assert result.valid is False
        assert [(s.name, s.available, s.requested) for s in result.shortfalls] == [("Pint of Lager", 4, 5)]


class TestItemStatus:
    def test_no_bar_selected_fails_closed(self, keg):
        status = item_status(menu_item("Pint of Lager", keg), None)

        assert status.is_out_of_stock is True
        assert status.available == 0

    def test_low_stock_threshold(self, keg):
        pint = menu_item("Pint of Lager", keg)

        assert item_status(pint, {keg: StockLevel(3, 3)}).is_low_stock is True
        assert item_status(pint, {keg: StockLevel(4, 3)}).is_low_stock is False
        assert item_status(pint, {keg: StockLevel(0, 3)}).is_low_stock is False

    def test_cart_reserves_stock_for_every_menu_item_on_the_keg(self, keg, beers):
        small, large = beers
        statuses = menu_status([small, large], [line(small, 3)], {keg: StockLevel(5)})

        assert statuses[small.id].available == 2
        assert statuses[large.id].available == 2

    def test_available_never_grows_as_the_cart_grows(self, keg):
        pint = menu_item("Pint of Lager", keg)
        snapshot = {keg: StockLevel(5)}
        previous = None
        for quantity in range(0, 8):
            available = menu_status([pint], [line(pint, quantity)] if quantity else [], snapshot)[pint.id].available
            if previous is not None:
                assert available <= previous
            previous = available


class TestCheckAddToCart:
    def test_out_of_stock_message(self, keg):
        pint = menu_item("Pint of Lager", keg)
        assert check_add_to_cart([], pint, [pint], {keg: StockLevel(0)}) == "Pint of Lager is currently out of stock."

    def test_limit_message_once_cart_holds_everything(self, keg):
        pint = menu_item("Pint of Lager", keg)
        message = check_add_to_cart([line(pint, 4)], pint, [pint], {keg: StockLevel(4)})
        assert message == "Only 4 units available."

    def test_allowed_when_stock_remains(self, keg):
        pint = menu_item("Pint of Lager", keg)
        assert check_add_to_cart([line(pint, 3)], pint, [pint], {keg: StockLevel(4)}) is None

    def test_untracked_always_allowed(self):
        nachos = menu_item("Nachos", track=False)
        assert check_add_to_cart([], nachos, [nachos], None) is None


class TestCart:
    def test_add_merges_into_existing_line(self, keg):
        pint = menu_item("Pint of Lager", keg, price=5.5)
        cart = Cart()
        snapshot = {keg: StockLevel(4)}

        cart.add(pint, [pint], snapshot)
        cart.add(pint, [pint], snapshot, quantity=2)

        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 3
        assert str(cart.subtotal) == "16.5"

    def test_add_beyond_stock_raises(self, keg, beers):
        small, large = beers
        cart = Cart()
        snapshot = {keg: StockLevel(2)}
        cart.add(small, [small, large], snapshot, quantity=2)

        with pytest.raises(StockLimitError, match="Only 2 units available."):
            cart.add(large, [small, large], snapshot)

    def test_update_quantity_is_guarded_and_drops_empty_lines(self, keg):
        pint = menu_item("Pint of Lager", keg)
        cart = Cart()
        snapshot = {keg: StockLevel(2)}
        cart_line = cart.add(pint, [pint], snapshot)

        cart.update_quantity(cart_line.id, 1, [pint], snapshot)
        assert cart_line.quantity == 2
        with pytest.raises(StockLimitError):
            cart.update_quantity(cart_line.id, 1, [pint], snapshot)

        cart.update_quantity(cart_line.id, -5, [pint], snapshot)
        assert cart.lines == []

    def test_update_unknown_line(self):
        with pytest.raises(NotFoundError):
            Cart().update_quantity(uuid4(), 1, [], None)
