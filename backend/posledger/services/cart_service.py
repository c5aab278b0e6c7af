"""
Cart Aggregator

An in-memory cart: ordered lines keyed by product id, a flat discount and an
optional customer reference. Nothing here touches the catalog; stock is only
decremented by the ledger at checkout.

Totals are recomputed once per mutation and cached, at full precision:
- subtotal / tax / total_with_tax: sums of the line values
- grand_total: max(0, total_with_tax - discount); a discount never makes the
  payable amount negative
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ..errors import InvalidDiscount, NotFound, OutOfStock, Result
from .pricing_service import ZERO, LinePricing, format_cents, price_line, round_cents, sum_lines


@dataclass(frozen=True)
class ProductSnapshot:
    """The product fields a cart line needs, copied when the item is added."""
    id: int
    name: str
    price_cents: int
    cost_cents: int
    tax_rate_bps: int
    stock: int
    category: str | None = None
    barcode: str | None = None

    @classmethod
    def of(cls, product) -> "ProductSnapshot":
        if isinstance(product, cls):
            return product
        return cls(
            id=product.id,
            name=product.name,
            price_cents=product.price_cents,
            cost_cents=product.cost_cents or 0,
            tax_rate_bps=product.tax_rate_bps or 0,
            stock=product.stock,
            category=product.category,
            barcode=product.barcode,
        )


@dataclass
class CartLine:
    product: ProductSnapshot
    quantity: int
    pricing: LinePricing = field(init=False)

    def __post_init__(self):
        self.reprice()

    def reprice(self) -> None:
        self.pricing = price_line(self.product.price_cents, self.product.tax_rate_bps, self.quantity)

    @property
    def subtotal(self) -> Decimal:
        return self.pricing.subtotal

    @property
    def tax_amount(self) -> Decimal:
        return self.pricing.tax_amount

    @property
    def total_with_tax(self) -> Decimal:
        return self.pricing.total_with_tax

    def to_dict(self) -> dict:
        return {
            "product_id": self.product.id,
            "name": self.product.name,
            "category": self.product.category,
            "unit_price_cents": self.product.price_cents,
            "tax_rate_bps": self.product.tax_rate_bps,
            "quantity": self.quantity,
            "subtotal": str(self.subtotal),
            "tax_amount": str(self.tax_amount),
            "total_with_tax": str(self.total_with_tax),
            **self.pricing.rounded(),
        }


class Cart:
    def __init__(self):
        self._lines: dict[int, CartLine] = {}
        self.discount_cents = 0
        self.customer_id: int | None = None
        self._totals = sum_lines(())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_item(self, product, quantity: int = 1) -> CartLine:
        """
        Add `quantity` units, merging into the product's existing line.

        Raises OutOfStock when the product has no stock, or when the line
        would hold more units than were on hand when the item was added.
        An existing line keeps its first snapshot: its price, and the stock
        that caps it, do not change when the product is added again.
        """
        if quantity <= 0:
            raise ValueError("quantity must be > 0")

        line = self._lines.get(product.id)
        snapshot = line.product if line else ProductSnapshot.of(product)
        if snapshot.stock <= 0:
            raise OutOfStock(
                f"{snapshot.name} is out of stock",
                details={"product_id": snapshot.id, "on_hand": snapshot.stock},
            )

        requested = quantity + (line.quantity if line else 0)
        if requested > snapshot.stock:
            raise OutOfStock(
                f"Only {snapshot.stock} of {snapshot.name} in stock",
                details={
                    "product_id": snapshot.id,
                    "requested_quantity": requested,
                    "on_hand": snapshot.stock,
                },
            )

        if line:
            line.quantity = requested
            line.reprice()
        else:
            line = CartLine(product=snapshot, quantity=quantity)
            self._lines[snapshot.id] = line

        self._recompute()
        return line

    def set_quantity(self, product_id: int, quantity: int) -> Result:
        """
        Replace a line's quantity; quantity <= 0 removes the line.

        Reports NotFound / OutOfStock in the Result instead of raising.
        """
        line = self._lines.get(product_id)
        if line is None:
            return Result.failure(self._missing(product_id))

        if quantity <= 0:
            return self.remove_item(product_id)

        if quantity > line.product.stock:
            return Result.failure(OutOfStock(
                f"Only {line.product.stock} of {line.product.name} in stock",
                details={
                    "product_id": product_id,
                    "requested_quantity": quantity,
                    "on_hand": line.product.stock,
                },
            ))

        line.quantity = quantity
        line.reprice()
        self._recompute()
        return Result.success(line)

    def remove_item(self, product_id: int) -> Result:
        line = self._lines.pop(product_id, None)
        if line is None:
            return Result.failure(self._missing(product_id))
        self._recompute()
        return Result.success(line)

    def clear(self) -> None:
        """Empty lines, reset discount, drop customer."""
        self._lines.clear()
        self.discount_cents = 0
        self.customer_id = None
        self._recompute()

    def set_discount(self, amount_cents: int) -> None:
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int):
            raise InvalidDiscount("Discount must be a whole number of cents", details={"discount": amount_cents})
        if amount_cents < 0:
            raise InvalidDiscount("Discount cannot be negative", details={"discount_cents": amount_cents})
        self.discount_cents = amount_cents

    def set_customer(self, customer_id: int | None) -> None:
        self.customer_id = customer_id

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def get_line(self, product_id: int) -> CartLine | None:
        return self._lines.get(product_id)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    @property
    def subtotal(self) -> Decimal:
        return self._totals.subtotal

    @property
    def tax(self) -> Decimal:
        return self._totals.tax_amount

    @property
    def total_with_tax(self) -> Decimal:
        return self._totals.total_with_tax

    @property
    def grand_total(self) -> Decimal:
        return max(ZERO, self.total_with_tax - self.discount_cents)

    @property
    def profit_cents(self) -> int:
        return sum(
            (line.product.price_cents - line.product.cost_cents) * line.quantity
            for line in self._lines.values()
        )

    def to_dict(self, currency_symbol: str = "$") -> dict:
        return {
            "lines": [line.to_dict() for line in self._lines.values()],
            "item_count": self.item_count,
            "discount_cents": self.discount_cents,
            "customer_id": self.customer_id,
            "subtotal": str(self.subtotal),
            "tax": str(self.tax),
            "total_with_tax": str(self.total_with_tax),
            "grand_total": str(self.grand_total),
            "subtotal_cents": round_cents(self.subtotal),
            "tax_cents": round_cents(self.tax),
            "total_with_tax_cents": round_cents(self.total_with_tax),
            "grand_total_cents": round_cents(self.grand_total),
            "grand_total_display": format_cents(self.grand_total, currency_symbol),
        }

    def _recompute(self) -> None:
        self._totals = sum_lines(line.pricing for line in self._lines.values())

    @staticmethod
    def _missing(product_id: int) -> NotFound:
        return NotFound(f"Product {product_id} is not in the cart", details={"product_id": product_id})
