"""
Pricing Calculator

Computes the subtotal, tax and tax-inclusive total of one line
(unit price x quantity at a percentage tax rate).

ROUNDING POLICY:
- Inputs are exact: prices in integer cents, tax rates in integer basis points.
- Outputs are exact Decimal cents. A tax of 18% on 999 cents is 179.82 cents,
  not 180. Nothing here rounds.
- Aggregates (cart totals, transaction totals) are summed at full precision
  and rounded once with `round_cents`, half-up. Rounding each line first and
  summing the rounded values drifts by a cent per few lines.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

BPS_PER_PERCENT = Decimal(100)
ZERO = Decimal(0)


@dataclass(frozen=True)
class LinePricing:
    """Full-precision amounts for a single line, in cents."""
    subtotal: Decimal
    tax_amount: Decimal
    total_with_tax: Decimal

    def rounded(self) -> dict:
        return {
            "subtotal_cents": round_cents(self.subtotal),
            "tax_cents": round_cents(self.tax_amount),
            "total_with_tax_cents": round_cents(self.total_with_tax),
        }


def percent_from_bps(tax_rate_bps: int) -> Decimal:
    return Decimal(tax_rate_bps) / BPS_PER_PERCENT


def price_line(unit_price_cents: int, tax_rate_bps: int, quantity: int) -> LinePricing:
    """
    Price `quantity` units.

    subtotal = unit_price * quantity
    tax = subtotal * rate_percent / 100
    total_with_tax = subtotal + tax
    """
    if unit_price_cents < 0:
        raise ValueError("unit price must be >= 0")
    if tax_rate_bps < 0:
        raise ValueError("tax rate must be >= 0")
    if quantity <= 0:
        raise ValueError("quantity must be > 0")

    subtotal = Decimal(unit_price_cents) * quantity
    tax_amount = subtotal * percent_from_bps(tax_rate_bps) / BPS_PER_PERCENT
    return LinePricing(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total_with_tax=subtotal + tax_amount,
    )


def sum_lines(lines: Iterable[LinePricing]) -> LinePricing:
    subtotal = tax_amount = total = ZERO
    for line in lines:
        subtotal += line.subtotal
        tax_amount += line.tax_amount
        total += line.total_with_tax
    return LinePricing(subtotal=subtotal, tax_amount=tax_amount, total_with_tax=total)


def round_cents(amount: Decimal | int) -> int:
    """Round a full-precision cent amount to a whole cent, half-up."""
    return int(Decimal(amount).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_cents(amount: Decimal | int, symbol: str = "$") -> str:
    """Display form of a cent amount, e.g. 2160 -> "$21.60"."""
    cents = round_cents(amount)
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}{symbol}{whole:,}.{frac:02d}"
