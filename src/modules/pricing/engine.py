"""Checkout pricing engine.

``compute_totals`` is a pure function of its inputs: the same line items,
coupon and policy always yield the same ``TotalsDTO``.  Amounts are rounded
half-up to the integer currency unit at the discount and tax steps, so
repeated computation never drifts by fractional units.

    subtotal     = sum(unit_price * quantity)
    discount     = coupon effect, clamped to [0, subtotal]
    taxable      = subtotal - discount
    tax          = round(taxable * tax_rate)
    delivery_fee = 0 if subtotal >= free_delivery_threshold else base_delivery_fee
    grand_total  = taxable + tax + delivery_fee
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Protocol, Sequence

from django.conf import settings

from modules.pricing.dtos import CouponDTO, TotalsDTO
from modules.pricing.exceptions import EmptyCartError, PricingValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CURRENCY_UNIT = Decimal("1")


class PricedLine(Protocol):
    unit_price: Any
    quantity: Any


@dataclass(frozen=True)
class PricingPolicy:
    tax_rate: Decimal = Decimal("0.18")
    free_delivery_threshold: Decimal = Decimal("4000")
    base_delivery_fee: Decimal = Decimal("79")

    @classmethod
    def from_settings(cls) -> PricingPolicy:
        return cls(
            tax_rate=_to_decimal(settings.PRICING_TAX_RATE, "tax_rate"),
            free_delivery_threshold=_to_decimal(
                settings.PRICING_FREE_DELIVERY_THRESHOLD, "free_delivery_threshold"
            ),
            base_delivery_fee=_to_decimal(
                settings.PRICING_BASE_DELIVERY_FEE, "base_delivery_fee"
            ),
        )


def round_currency(value: Decimal) -> Decimal:
    """Round half-up to the integer currency unit."""
    return value.quantize(CURRENCY_UNIT, rounding=ROUND_HALF_UP)


def compute_totals(
    line_items: Sequence[PricedLine],
    coupon: Optional[CouponDTO] = None,
    *,
    allow_empty: bool = False,
    policy: Optional[PricingPolicy] = None,
) -> TotalsDTO:
    """Compute checkout totals for ``line_items`` with an optional coupon.

    Raises:
        EmptyCartError: no line items and ``allow_empty`` is false.
        PricingValidationError: negative price, quantity below one, or an
            out-of-range coupon amount.
    """
    policy = policy or PricingPolicy.from_settings()

    if not line_items and not allow_empty:
        raise EmptyCartError("Cart has no line items.")

    subtotal = _subtotal(line_items)
    discount = _discount(subtotal, coupon)
    taxable = subtotal - discount
    tax = round_currency(taxable * policy.tax_rate)

    if subtotal >= policy.free_delivery_threshold:
        delivery_fee = ZERO
    elif coupon is not None and coupon.type == "free_shipping":
        delivery_fee = ZERO
    else:
        delivery_fee = policy.base_delivery_fee

    return TotalsDTO(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        delivery_fee=delivery_fee,
        grand_total=taxable + tax + delivery_fee,
    )


def _subtotal(line_items: Sequence[PricedLine]) -> Decimal:
    subtotal = ZERO
    for index, item in enumerate(line_items):
        unit_price = _to_decimal(item.unit_price, f"line {index} unit_price")
        if unit_price < 0:
            raise PricingValidationError(
                f"Line {index}: unit price must not be negative ({unit_price})."
            )
        quantity = item.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise PricingValidationError(
                f"Line {index}: quantity must be an integer ({quantity!r})."
            )
        if quantity < 1:
            raise PricingValidationError(
                f"Line {index}: quantity must be at least 1 ({quantity})."
            )
        subtotal += unit_price * quantity
    return subtotal


def _discount(subtotal: Decimal, coupon: Optional[CouponDTO]) -> Decimal:
    if coupon is None:
        return ZERO

    amount = _to_decimal(coupon.amount, "coupon amount")
    if amount < 0:
        raise PricingValidationError("Coupon amount must not be negative.")

    if coupon.type == "percent":
        if amount > HUNDRED:
            raise PricingValidationError("Percent coupon cannot exceed 100%.")
        discount = round_currency(subtotal * amount / HUNDRED)
    elif coupon.type == "fixed":
        discount = amount
    else:
        discount = ZERO

    return min(max(discount, ZERO), subtotal)


def _to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise PricingValidationError(f"{field} must be numeric.")
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise PricingValidationError(f"{field} must be numeric.") from exc
    if not result.is_finite():
        raise PricingValidationError(f"{field} must be finite.")
    return result
