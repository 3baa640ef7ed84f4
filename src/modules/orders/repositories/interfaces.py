"""Order repository interface.

Extends ``IRepository[Order]`` with the operations of the authoritative
order store: atomic creation with items, row-locked status updates, the
idempotency-key look-up and the filtered, paginated admin listing.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Dict, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.dtos import OrderListFiltersDTO, OrderPage
    from modules.orders.models import Order


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.  Mutations must be atomic.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` holds the order fields plus ``items`` (list of dicts with
        ``product_id``, ``title``, ``unit_price``, ``quantity``).
        """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched items and status history."""

    @abstractmethod
    def locked(self, id: str) -> AbstractContextManager[Optional[Order]]:
        """Open a transaction holding a row lock on the order.

        Yields ``None`` when the order does not exist.  Writes to the
        yielded order are serialized against any other ``locked`` block on
        the same id.
        """

    @abstractmethod
    def save_status(self, order: Order) -> Order:
        """Persist a status transition and publish its events after commit."""

    @abstractmethod
    def page(self, filters: OrderListFiltersDTO, page_size: int) -> OrderPage[Order]:
        """Return one page of orders matching ``filters``, newest first."""

    @abstractmethod
    def get_by_idempotency_key(
        self, key: str, placed_by: Any = None
    ) -> Optional[Order]:
        """Retrieve the order ``placed_by`` created under ``key``.

        Keys are scoped to the customer; ``None`` matches orders with no
        recorded customer.
        """
