"""Pricing DTOs.

- ``LineItemDTO``: a priced cart line (the engine only reads ``unit_price``
  and ``quantity``).
- ``CouponDTO``: transient discount specification applied at checkout.
- ``TotalsDTO``: the computed checkout amounts, snapshotted on the order.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

CouponType = Literal["percent", "fixed", "free_shipping"]


class LineItemDTO(BaseModel):
    """Immutable cart line.

    Range checks live in the engine so callers get ``PricingValidationError``
    rather than a serialization error.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str = ""
    title: str = ""
    unit_price: Decimal
    quantity: int


class CouponDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: CouponType
    amount: Decimal = Decimal("0")
    code: Optional[str] = None


class TotalsDTO(BaseModel):
    """Immutable checkout totals."""

    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    delivery_fee: Decimal
    grand_total: Decimal

    @property
    def taxable(self) -> Decimal:
        return self.subtotal - self.discount
