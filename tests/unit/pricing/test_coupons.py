from __future__ import annotations

from decimal import Decimal

import pytest

from modules.pricing.coupons import coupon_catalog, resolve_coupon
from modules.pricing.exceptions import PricingValidationError, UnknownCoupon

pytestmark = pytest.mark.unit


def test_default_catalog_has_storefront_codes():
    assert set(coupon_catalog()) >= {"SAVE10", "FLAT500", "FREESHIP"}


@pytest.mark.parametrize("code", [None, "", "   "])
def test_blank_code_means_no_coupon(code):
    assert resolve_coupon(code) is None


def test_code_is_case_insensitive():
    coupon = resolve_coupon(" save10 ")

    assert coupon.code == "SAVE10"
    assert coupon.type == "percent"
    assert coupon.amount == Decimal("10")


def test_unknown_code_rejected():
    with pytest.raises(UnknownCoupon):
        resolve_coupon("NOPE")


def test_unknown_coupon_is_a_pricing_error():
    with pytest.raises(PricingValidationError):
        resolve_coupon("NOPE")


def test_explicit_catalog():
    coupon = resolve_coupon("half", catalog={"HALF": {"type": "percent", "amount": 50}})
    assert coupon.amount == Decimal("50")


def test_misconfigured_entry_rejected():
    with pytest.raises(PricingValidationError, match="misconfigured"):
        resolve_coupon("BAD", catalog={"BAD": {"type": "bogus"}})


def test_catalog_follows_settings(settings):
    settings.STOREFRONT_COUPONS = {"DIWALI": {"type": "fixed", "amount": 250}}

    assert resolve_coupon("diwali").amount == Decimal("250")
    with pytest.raises(UnknownCoupon):
        resolve_coupon("SAVE10")
