from decimal import Decimal

import pytest

from posledger.errors import InvalidDiscount, NotFound, OutOfStock
from posledger.services.cart_service import Cart, ProductSnapshot


def snapshot(product_id=1, *, price_cents=1000, tax_rate_bps=1800, stock=10, cost_cents=600):
    return ProductSnapshot(
        id=product_id,
        name=f"Item {product_id}",
        price_cents=price_cents,
        cost_cents=cost_cents,
        tax_rate_bps=tax_rate_bps,
        stock=stock,
    )


class TestAddItem:
    def test_single_line_totals(self):
        cart = Cart()
        cart.add_item(snapshot(), 2)

        assert cart.subtotal == Decimal(2000)
        assert cart.tax == Decimal(360)
        assert cart.total_with_tax == Decimal(2360)
        assert cart.grand_total == Decimal(2360)

    def test_same_product_merges_into_one_line(self):
        cart = Cart()
        cart.add_item(snapshot(1))
        line = cart.add_item(snapshot(1), 2)

        assert len(cart.lines) == 1
        assert line.quantity == 3
        assert line.subtotal == Decimal(3000)
        assert cart.item_count == 3

    def test_lines_keep_insertion_order(self):
        cart = Cart()
        for pid in (3, 1, 2):
            cart.add_item(snapshot(pid))
        cart.add_item(snapshot(3))

        assert [line.product.id for line in cart.lines] == [3, 1, 2]

    def test_out_of_stock_leaves_cart_unchanged(self):
        cart = Cart()
        cart.add_item(snapshot(1), 1)

        with pytest.raises(OutOfStock):
            cart.add_item(snapshot(2, stock=0))

        assert [line.product.id for line in cart.lines] == [1]
        assert cart.subtotal == Decimal(1000)

    def test_cannot_exceed_stock_at_time_of_addition(self):
        cart = Cart()
        cart.add_item(snapshot(1, stock=3), 2)

        with pytest.raises(OutOfStock) as exc:
            cart.add_item(snapshot(1, stock=3), 2)

        assert exc.value.details["requested_quantity"] == 4
        assert cart.get_line(1).quantity == 2

    def test_readding_keeps_first_snapshot(self):
        cart = Cart()
        cart.add_item(snapshot(1, stock=10, price_cents=1000), 2)
        restocked = snapshot(1, stock=30, price_cents=2000)

        with pytest.raises(OutOfStock):
            cart.add_item(restocked, 15)

        line = cart.add_item(restocked, 8)
        assert line.quantity == 10
        assert line.product.price_cents == 1000
        assert line.product.stock == 10
        assert cart.subtotal == Decimal(10_000)
        assert cart.set_quantity(1, 10).ok

    def test_rejects_non_positive_quantity(self):
        with pytest.raises(ValueError):
            Cart().add_item(snapshot(), 0)

    def test_accepts_catalog_product(self, widget):
        cart = Cart()
        line = cart.add_item(widget)

        assert line.product.id == widget.id
        assert line.product.name == "Widget"
        assert line.product.stock == 10


class TestSetQuantity:
    def test_absent_product_is_a_not_found_result(self):
        cart = Cart()
        cart.add_item(snapshot(1))

        result = cart.set_quantity(99, 4)

        assert not result.ok
        assert isinstance(result.error, NotFound)
        assert cart.item_count == 1

    def test_reprices_line(self):
        cart = Cart()
        cart.add_item(snapshot(1))

        result = cart.set_quantity(1, 5)

        assert result.ok
        assert result.value.quantity == 5
        assert cart.total_with_tax == Decimal(5900)

    @pytest.mark.parametrize("qty", [0, -1])
    def test_non_positive_removes_line(self, qty):
        cart = Cart()
        cart.add_item(snapshot(1))
        cart.add_item(snapshot(2))

        result = cart.set_quantity(1, qty)

        assert result.ok
        assert [line.product.id for line in cart.lines] == [2]

    def test_above_stock_is_an_out_of_stock_result(self):
        cart = Cart()
        cart.add_item(snapshot(1, stock=2))

        result = cart.set_quantity(1, 3)

        assert isinstance(result.error, OutOfStock)
        assert cart.get_line(1).quantity == 1


class TestCartState:
    def test_remove_missing_item(self):
        result = Cart().remove_item(7)
        assert isinstance(result.error, NotFound)

    def test_discount_reduces_grand_total(self):
        cart = Cart()
        cart.add_item(snapshot(), 2)
        cart.set_discount(200)

        assert cart.grand_total == Decimal(2160)
        assert cart.total_with_tax == Decimal(2360)

    def test_grand_total_never_negative(self):
        cart = Cart()
        cart.add_item(snapshot(), 1)
        cart.set_discount(50_000)

        assert cart.grand_total == Decimal(0)

    @pytest.mark.parametrize("bad", [-1, 1.5, "200", None, True])
    def test_invalid_discount(self, bad):
        cart = Cart()
        cart.set_discount(100)

        with pytest.raises(InvalidDiscount):
            cart.set_discount(bad)

        assert cart.discount_cents == 100

    def test_clear_resets_everything(self):
        cart = Cart()
        cart.add_item(snapshot(), 2)
        cart.set_discount(100)
        cart.set_customer(3)

        cart.clear()

        assert cart.is_empty
        assert cart.discount_cents == 0
        assert cart.customer_id is None
        assert cart.grand_total == Decimal(0)

    def test_totals_use_full_precision(self):
        cart = Cart()
        for pid in (1, 2, 3):
            cart.add_item(snapshot(pid, price_cents=5, tax_rate_bps=1000))

        assert cart.tax == Decimal("1.5")
        assert cart.to_dict()["tax_cents"] == 2

    def test_profit(self):
        cart = Cart()
        cart.add_item(snapshot(1, price_cents=1000, cost_cents=600), 2)
        cart.add_item(snapshot(2, price_cents=500, cost_cents=500), 1)

        assert cart.profit_cents == 800

    def test_to_dict(self):
        cart = Cart()
        cart.add_item(snapshot(), 2)
        cart.set_discount(200)

        data = cart.to_dict()

        assert data["grand_total_cents"] == 2160
        assert data["grand_total_display"] == "$21.60"
        assert data["lines"][0]["total_with_tax_cents"] == 2360
        assert data["item_count"] == 2
