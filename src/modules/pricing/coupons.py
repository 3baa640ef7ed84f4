"""Coupon catalog lookup.

Codes are matched case-insensitively against ``settings.STOREFRONT_COUPONS``.
The resolved coupon is only used to compute the discount at checkout; the
order keeps the resulting amounts, never the coupon itself.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import structlog
from django.conf import settings
from pydantic import ValidationError

from modules.pricing.dtos import CouponDTO
from modules.pricing.exceptions import PricingValidationError, UnknownCoupon

logger = structlog.get_logger(__name__)


def coupon_catalog() -> Dict[str, Mapping[str, Any]]:
    return {
        code.upper(): entry
        for code, entry in getattr(settings, "STOREFRONT_COUPONS", {}).items()
    }


def resolve_coupon(
    code: Optional[str],
    catalog: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> Optional[CouponDTO]:
    """Return the coupon for ``code``, ``None`` for a blank code.

    Raises:
        UnknownCoupon: the code is not in the catalog.
        PricingValidationError: the catalog entry is malformed.
    """
    if code is None or not code.strip():
        return None

    normalized = code.strip().upper()
    entries = (
        {key.upper(): value for key, value in catalog.items()}
        if catalog is not None
        else coupon_catalog()
    )
    entry = entries.get(normalized)
    if entry is None:
        logger.info("coupon.unknown", code=normalized)
        raise UnknownCoupon(f"Coupon {normalized} is not valid.")

    try:
        return CouponDTO(code=normalized, **entry)
    except ValidationError as exc:
        raise PricingValidationError(
            f"Coupon {normalized} is misconfigured."
        ) from exc
