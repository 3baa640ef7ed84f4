"""Pricing DRF serializers (cart quote endpoint)."""

from __future__ import annotations

from rest_framework import serializers


class QuoteLineSerializer(serializers.Serializer):
    product_id = serializers.CharField(max_length=64, required=False, default="")
    title = serializers.CharField(max_length=255, required=False, default="")
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    quantity = serializers.IntegerField()


class QuoteRequestSerializer(serializers.Serializer):
    items = QuoteLineSerializer(many=True)
    coupon_code = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, default=None
    )


class TotalsSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    tax = serializers.DecimalField(max_digits=12, decimal_places=2)
    delivery_fee = serializers.DecimalField(max_digits=12, decimal_places=2)
    grand_total = serializers.DecimalField(max_digits=12, decimal_places=2)
