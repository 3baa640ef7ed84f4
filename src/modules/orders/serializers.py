"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStatus, PaymentMethod, parse_status
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single cart line in a checkout request."""

    product_id = serializers.CharField(max_length=64, required=False, default="")
    title = serializers.CharField(max_length=255)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    quantity = serializers.IntegerField()


class ShippingSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=150)
    phone = serializers.CharField(max_length=20)
    address = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    pincode = serializers.CharField(max_length=10)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the checkout payload.

    Range checks on price and quantity are left to the pricing engine so
    the API and the quote endpoint report them the same way.
    """

    items = CreateOrderItemSerializer(many=True, allow_empty=True)
    shipping = ShippingSerializer()
    coupon_code = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, default=None
    )
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices,
        required=False,
        default=PaymentMethod.CASH_ON_DELIVERY,
    )


class StatusUpdateSerializer(serializers.Serializer):
    """Accepts a stored status value or its display label."""

    status = serializers.CharField()

    def validate_status(self, value: str) -> str:
        try:
            return parse_status(value)
        except ValueError as exc:
            raise serializers.ValidationError(str(exc)) from exc


class OrderListQuerySerializer(serializers.Serializer):
    status = serializers.CharField(required=False, allow_blank=True, default="")
    q = serializers.CharField(required=False, allow_blank=True, default="")
    page = serializers.IntegerField(required=False, default=1)

    def validate_status(self, value: str) -> str:
        if not value:
            return value
        try:
            return parse_status(value)
        except ValueError as exc:
            raise serializers.ValidationError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "product_id",
            "title",
            "unit_price",
            "quantity",
            "line_total",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "changed_by",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history."""

    status_label = serializers.SerializerMethodField()
    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "status_label",
            "status_updated_at",
            "payment_method",
            "full_name",
            "phone",
            "address",
            "city",
            "state",
            "pincode",
            "subtotal",
            "discount",
            "tax",
            "delivery_fee",
            "grand_total",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields

    def get_status_label(self, obj: Order) -> str:
        return OrderStatus(obj.status).label


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for the admin list (no nested relations)."""

    status_label = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "status_label",
            "status_updated_at",
            "full_name",
            "phone",
            "city",
            "grand_total",
            "created_at",
        ]
        read_only_fields = fields

    def get_status_label(self, obj: Order) -> str:
        return OrderStatus(obj.status).label
