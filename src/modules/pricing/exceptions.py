"""Pricing domain exceptions.

Raised while computing checkout totals.  Checkout rejects the request
before any order is created; values are never silently coerced.
"""

from __future__ import annotations


class PricingValidationError(Exception):
    """Malformed pricing input (negative price, non-positive quantity, bad coupon)."""


class EmptyCartError(PricingValidationError):
    """Totals were requested for a cart without line items."""


class UnknownCoupon(PricingValidationError):
    """The coupon code is not in the configured catalog."""
