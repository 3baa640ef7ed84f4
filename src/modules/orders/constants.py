"""Order domain constants.

The delivery status is a fixed total order; legal transitions are one
step forward or one step back (see ``state_machine``).
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PLACED = "PLACED", "Placed"
    PACKED = "PACKED", "Packed"
    SHIPPED = "SHIPPED", "Shipped"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY", "Out for Delivery"
    DELIVERED = "DELIVERED", "Delivered"


STATUS_FLOW: tuple[str, ...] = (
    OrderStatus.PLACED,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

TERMINAL_STATES: set[str] = {OrderStatus.DELIVERED}


class PaymentMethod(models.TextChoices):
    CASH_ON_DELIVERY = "cod", "Cash on delivery"


ORDER_NUMBER_MAX_RETRIES = 5


def parse_status(value: str) -> str:
    """Accept a stored value (``OUT_FOR_DELIVERY``) or a label (``Out for Delivery``).

    Raises ``ValueError`` for anything else.
    """
    candidate = (value or "").strip()
    normalized = candidate.upper().replace(" ", "_").replace("-", "_")
    if normalized in OrderStatus.values:
        return normalized
    for choice in OrderStatus:
        if choice.label.lower() == candidate.lower():
            return choice.value
    raise ValueError(f"Unknown order status: {value!r}")
