"""Tests for cart mutations that capture price snapshots."""

from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from order_engine.data.models import CartModel, ProductStatus
from order_engine.domain.errors import (
    CartItemNotFoundError,
    InsufficientStockError,
    InvalidQuantityError,
    ProductNotFoundError,
    ProductUnavailableError,
)
from order_engine.repos.cart_repo import CartRepo
from order_engine.services.cart_service import CartService


class RecordingCartRepo(CartRepo):
    def __init__(self, db):
        super().__init__(db)
        self.calls = []

    def lock_cart(self, buyer_id):
        self.calls.append("lock_cart")
        return super().lock_cart(buyer_id)

    def get_buyer_cart_item(self, buyer_id, item_id):
        self.calls.append("get_buyer_cart_item")
        return super().get_buyer_cart_item(buyer_id, item_id)

    def delete_cart_lines(self, cart_id):
        self.calls.append("delete_cart_lines")
        return super().delete_cart_lines(cart_id)


class LateCartRepo(CartRepo):
    """The first lookup misses a cart that another request has already created."""

    def __init__(self, db):
        super().__init__(db)
        self.missed = False

    def get_cart_with_lines(self, buyer_id, for_update=False):
        if not self.missed:
            self.missed = True
            return None
        return super().get_cart_with_lines(buyer_id, for_update=for_update)


class TestAddItem:
    def test_first_add_creates_cart_and_snapshots_price(self, db, make_product, count_rows, cart_lines):
        product = make_product(price="49.50", stock=50)

        result = CartService(db).add_item(1, product.id, 2)

        assert count_rows(CartModel) == 1
        assert result["item"]["price"] == Decimal("49.50")
        assert result["item"]["quantity"] == 2
        assert result["warnings"] == []
        assert cart_lines(1) == [(product.id, 2, Decimal("49.50"))]

    def test_repeat_add_merges_and_keeps_snapshot(self, db, make_product, cart_lines):
        product = make_product(price="100.00", stock=50)
        svc = CartService(db)
        svc.add_item(1, product.id, 2)
        product.price = Decimal("120.00")
        db.commit()

        result = svc.add_item(1, product.id, 3)

        assert cart_lines(1) == [(product.id, 5, Decimal("100.00"))]
        price_warning = next(w for w in result["warnings"] if w["type"] == "PRICE_CHANGED")
        assert price_warning["original_price"] == Decimal("100.00")
        assert price_warning["current_price"] == Decimal("120.00")

    def test_quantity_is_adjusted_to_stock(self, db, make_product):
        product = make_product(stock=4)

        result = CartService(db).add_item(1, product.id, 6)

        assert result["item"]["quantity"] == 4
        types = [w["type"] for w in result["warnings"]]
        assert types == ["STOCK_ADJUSTED", "LOW_STOCK"]
        assert result["warnings"][0]["adjusted_quantity"] == 4

    def test_nothing_left_to_add(self, db, make_product, cart_lines):
        product = make_product(stock=2)
        svc = CartService(db)
        svc.add_item(1, product.id, 2)

        with pytest.raises(InsufficientStockError):
            svc.add_item(1, product.id, 1)

        assert cart_lines(1) == [(product.id, 2, product.price)]

    def test_low_stock_warning(self, db, make_product):
        product = make_product(stock=10)

        result = CartService(db).add_item(1, product.id, 1)

        assert [w["type"] for w in result["warnings"]] == ["LOW_STOCK"]

    def test_inactive_product(self, db, make_product):
        product = make_product(status=ProductStatus.DRAFT.value)

        with pytest.raises(ProductUnavailableError):
            CartService(db).add_item(1, product.id, 1)

    def test_deleted_or_missing_product(self, db, make_product):
        product = make_product(is_deleted=True)
        svc = CartService(db)

        with pytest.raises(ProductNotFoundError):
            svc.add_item(1, product.id, 1)
        with pytest.raises(ProductNotFoundError):
            svc.add_item(1, 999, 1)

    def test_non_positive_quantity(self, db, make_product):
        product = make_product()

        with pytest.raises(InvalidQuantityError):
            CartService(db).add_item(1, product.id, 0)


class TestUpdateAndRemove:
    def test_update_quantity(self, db, make_product, add_to_cart):
        product = make_product(stock=10)
        line = add_to_cart(1, product, 1)

        result = CartService(db).update_item_quantity(1, line.id, 4)

        assert result["quantity"] == 4

    def test_update_to_zero_removes_line(self, db, make_product, add_to_cart, cart_lines):
        product = make_product()
        line = add_to_cart(1, product, 1)

        assert CartService(db).update_item_quantity(1, line.id, 0) is None
        assert cart_lines(1) == []

    def test_update_above_stock(self, db, make_product, add_to_cart, cart_lines):
        product = make_product(stock=3)
        line = add_to_cart(1, product, 1)

        with pytest.raises(InsufficientStockError):
            CartService(db).update_item_quantity(1, line.id, 4)

        assert cart_lines(1)[0][1] == 1

    def test_update_negative_quantity(self, db, make_product, add_to_cart):
        product = make_product()
        line = add_to_cart(1, product, 1)

        with pytest.raises(InvalidQuantityError):
            CartService(db).update_item_quantity(1, line.id, -1)

    def test_foreign_line_is_not_found(self, db, make_product, add_to_cart):
        product = make_product()
        line = add_to_cart(1, product, 1)
        svc = CartService(db)

        with pytest.raises(CartItemNotFoundError):
            svc.update_item_quantity(2, line.id, 2)
        with pytest.raises(CartItemNotFoundError):
            svc.remove_item(2, line.id)

    def test_remove_line(self, db, make_product, add_to_cart, cart_lines):
        product = make_product()
        line = add_to_cart(1, product, 1)

        CartService(db).remove_item(1, line.id)

        assert cart_lines(1) == []


class TestCartView:
    def test_totals_use_snapshot_price(self, db, make_product, add_to_cart):
        a = make_product(name="A", price="10.00")
        b = make_product(name="B", price="5.00")
        add_to_cart(1, a, 2, price="8.00")
        add_to_cart(1, b, 1)

        cart = CartService(db).get_cart(1)

        assert cart["total_items"] == 3
        assert cart["total_amount"] == Decimal("21.00")
        assert cart["items"][0]["price"] == Decimal("8.00")
        assert cart["items"][0]["current_price"] == Decimal("10.00")

    def test_no_cart(self, db):
        cart = CartService(db).get_cart(1)

        assert cart["cart_id"] is None
        assert cart["items"] == []

    def test_clear_cart(self, db, make_product, add_to_cart, cart_lines, count_rows):
        product = make_product()
        add_to_cart(1, product, 1)
        svc = CartService(db)

        svc.clear_cart(1)
        svc.clear_cart(2)

        assert cart_lines(1) == []
        assert count_rows(CartModel) == 1


class TestCartRowLock:
    @pytest.mark.parametrize(
        "edit",
        [
            lambda svc, line_id: svc.update_item_quantity(1, line_id, 2),
            lambda svc, line_id: svc.update_item_quantity(1, line_id, 0),
            lambda svc, line_id: svc.remove_item(1, line_id),
        ],
        ids=["update", "update_to_zero", "remove"],
    )
    def test_line_edits_lock_cart_first(self, db, make_product, add_to_cart, edit):
        line = add_to_cart(1, make_product(), 1)
        repo = RecordingCartRepo(db)

        edit(CartService(db, carts=repo), line.id)

        assert repo.calls[:2] == ["lock_cart", "get_buyer_cart_item"]

    def test_clear_locks_cart_first(self, db, make_product, add_to_cart):
        add_to_cart(1, make_product(), 1)
        repo = RecordingCartRepo(db)

        CartService(db, carts=repo).clear_cart(1)

        assert repo.calls == ["lock_cart", "delete_cart_lines"]

    def test_lock_statement_is_for_update(self, db):
        statements = []

        class _Spy(CartRepo):
            def __init__(self, session):
                super().__init__(session)
                self.db = self

            def execute(self, stmt):
                statements.append(stmt)
                return db.execute(stmt)

        _Spy(db).lock_cart(1)

        assert "FOR UPDATE" in str(statements[0].compile(dialect=postgresql.dialect()))


class TestConcurrentCartCreation:
    def test_existing_cart_is_reused_after_unique_conflict(self, db, make_product, count_rows, cart_lines):
        product = make_product(stock=50)
        db.add(CartModel(buyer_id=1))
        db.commit()

        result = CartService(db, carts=LateCartRepo(db)).add_item(1, product.id, 2)

        assert result["item"]["quantity"] == 2
        assert count_rows(CartModel) == 1
        assert cart_lines(1) == [(product.id, 2, Decimal("100.00"))]
