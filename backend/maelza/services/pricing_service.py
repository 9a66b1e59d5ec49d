# Overview: Line-item pricing for sales and purchases; pure, no database access.

"""
Line-Item Calculator

Turns requested lines into priced lines and document totals.

RULES:
- Every product_id must be present in the catalog snapshot passed in.
- quantity is a positive integer; unit price is >= 0 (cents).
- A missing unit price defaults to the product's reference price
  (cost for purchases, sale price for sales) as it is right now.
- line total = quantity * unit price
- subtotal = sum(line totals)
- tax = subtotal * 18%, rounded half-up to the cent
- total = subtotal + tax
- quantity <= MAX_QUANTITY; every line total and the document total stay
  within MAX_AMOUNT_CENTS

All amounts are integer cents, so the totals invariant holds exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping, Sequence

from ..errors import ReferenceNotFoundError, ValidationError


TAX_RATE = Decimal("0.18")

# Amount columns are 32-bit INTEGER on most databases.
MAX_QUANTITY = 1_000_000
MAX_AMOUNT_CENTS = 2_000_000_000


@dataclass(frozen=True)
class LineInput:
    """One requested line: product, quantity and an optional unit price in cents."""
    product_id: int
    quantity: int
    unit_price_cents: int | None = None


@dataclass(frozen=True)
class PricedLine:
    position: int
    product_id: int
    quantity: int
    unit_price_cents: int
    total_cents: int


@dataclass(frozen=True)
class Totals:
    lines: tuple[PricedLine, ...]
    subtotal_cents: int
    tax_cents: int
    total_cents: int

    def as_fields(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
        }


def compute_tax_cents(subtotal_cents: int) -> int:
    """18% of the subtotal, rounded half-up to the nearest cent."""
    tax = (Decimal(subtotal_cents) * TAX_RATE).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(tax)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def compute_totals(
    items: Sequence[LineInput],
    catalog: Mapping[int, object],
    *,
    price_attr: str,
) -> Totals:
    """
    Price a set of lines against a catalog snapshot.

    Args:
        items: Requested lines, in document order
        catalog: product_id -> product (anything with the price attribute,
            `name` and `is_active`)
        price_attr: Attribute holding the reference price in cents

    Returns:
        Totals with one PricedLine per input line

    Raises:
        ValidationError: Empty item list, bad quantity or price, inactive product
        ReferenceNotFoundError: A product_id is not in the catalog
    """
    if not items:
        raise ValidationError("At least one item is required")

    lines: list[PricedLine] = []
    for position, item in enumerate(items, start=1):
        product = catalog.get(item.product_id)
        if product is None:
            raise ReferenceNotFoundError(
                "Product not found",
                details={"product_id": item.product_id},
            )
        if not product.is_active:
            raise ValidationError(
                f"Product {product.name} is inactive",
                details={"product_id": item.product_id},
            )

        if not _is_int(item.quantity) or item.quantity <= 0:
            raise ValidationError(
                f"Quantity for product {product.name} must be greater than 0",
                details={"product_id": item.product_id, "quantity": item.quantity},
            )
        if item.quantity > MAX_QUANTITY:
            raise ValidationError(
                f"Quantity for product {product.name} cannot exceed {MAX_QUANTITY}",
                details={"product_id": item.product_id, "quantity": item.quantity},
            )

        unit_price = item.unit_price_cents
        if unit_price is None:
            unit_price = getattr(product, price_attr)
        if not _is_int(unit_price) or unit_price < 0:
            raise ValidationError(
                f"Unit price for product {product.name} must be >= 0",
                details={"product_id": item.product_id, "unit_price_cents": unit_price},
            )

        line_total = item.quantity * unit_price
        if line_total > MAX_AMOUNT_CENTS:
            raise ValidationError(
                f"Line total for product {product.name} is too large",
                details={"product_id": item.product_id, "total_cents": line_total},
            )

        lines.append(PricedLine(
            position=position,
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price_cents=unit_price,
            total_cents=line_total,
        ))

    subtotal = sum(line.total_cents for line in lines)
    tax = compute_tax_cents(subtotal)
    if subtotal + tax > MAX_AMOUNT_CENTS:
        raise ValidationError(
            "Document total is too large",
            details={"total_cents": subtotal + tax, "max_cents": MAX_AMOUNT_CENTS},
        )
    return Totals(
        lines=tuple(lines),
        subtotal_cents=subtotal,
        tax_cents=tax,
        total_cents=subtotal + tax,
    )
