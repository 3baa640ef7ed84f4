"""Presentation signals derived from the delivery status.

Neither value is persisted in the order store.
"""

from __future__ import annotations

from typing import Optional

from modules.orders.constants import OrderStatus

ETA_CALCULATING = "Calculating"
ETA_TOMORROW = "Tomorrow"
ETA_TODAY = "Arriving Today"
ETA_DELIVERED = "Delivered"

_ETA_BY_STATUS = {
    OrderStatus.PLACED: ETA_CALCULATING,
    OrderStatus.PACKED: ETA_CALCULATING,
    OrderStatus.SHIPPED: ETA_TOMORROW,
    OrderStatus.OUT_FOR_DELIVERY: ETA_TODAY,
    OrderStatus.DELIVERED: ETA_DELIVERED,
}


def eta_bucket(status: Optional[str]) -> str:
    return _ETA_BY_STATUS.get(status, ETA_CALCULATING)


class StopsAwayCounter:
    """Stops left before the courier reaches the customer.

    Only shown while the order is out for delivery.  Starts at ``start`` on
    the first such observation, drops by one per later observation, stops at
    zero and never goes back up, even if the order is moved back and
    re-enters out-for-delivery.
    """

    def __init__(self, start: int = 5, remaining: Optional[int] = None) -> None:
        if start < 0:
            raise ValueError("start must not be negative.")
        self._start = start
        self._remaining = remaining
        self._visible = False

    @property
    def value(self) -> Optional[int]:
        return self._remaining if self._visible else None

    @property
    def remaining(self) -> Optional[int]:
        """Last counted value, kept while the order is not out for delivery."""
        return self._remaining

    def observe(self, status: Optional[str]) -> Optional[int]:
        if status != OrderStatus.OUT_FOR_DELIVERY:
            self._visible = False
            return None
        if self._remaining is None:
            self._remaining = self._start
        elif self._visible:
            self._remaining = max(self._remaining - 1, 0)
        self._visible = True
        return self._remaining
