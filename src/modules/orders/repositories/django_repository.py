"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` so the Order
aggregate (Order + OrderItems + history) is persisted atomically.

Status writes are serialized per order: ``locked`` takes an in-process
lock for the order id and a ``select_for_update()`` row lock inside the
transaction.  Collected domain events are handed to the event bus only
after the transaction commits.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import structlog
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db import transaction

from modules.orders.dtos import OrderListFiltersDTO, OrderPage
from modules.orders.filters import OrderFilter
from modules.orders.models import Order, OrderItem
from modules.orders.repositories.interfaces import IOrderRepository
from shared.infrastructure.bus import event_bus
from shared.infrastructure.locks import KeyedLock

logger = structlog.get_logger(__name__)

_order_locks = KeyedLock()


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` keys:
        - shipping fields (``full_name``, ``phone``, ``address``, ``city``,
          ``state``, ``pincode``) and pricing fields (``subtotal``,
          ``discount``, ``tax``, ``delivery_fee``, ``grand_total``)
        - ``items`` (required): list of dicts with ``product_id``,
          ``title``, ``unit_price``, ``quantity``
        - ``placed_by`` / ``payment_method`` / ``idempotency_key`` (optional)
        """
        fields = {key: value for key, value in data.items() if key != "items"}
        order = Order(**fields)
        order.save()

        items = data.get("items", [])
        for position, item_data in enumerate(items):
            OrderItem(
                order=order,
                position=position,
                product_id=item_data.get("product_id", ""),
                title=item_data.get("title", ""),
                unit_price=item_data["unit_price"],
                quantity=item_data["quantity"],
            ).save()

        logger.bind(order_id=str(order.id), item_count=len(items)).info(
            "order.persisted"
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its items and status history prefetched.

        Returns ``None`` for non-existent or malformed IDs.
        """
        try:
            return (
                Order.objects.prefetch_related("items", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_idempotency_key(
        self, key: str, placed_by: Any = None
    ) -> Optional[Order]:
        owner = {"placed_by": placed_by} if placed_by else {"placed_by__isnull": True}
        return (
            Order.objects.prefetch_related("items", "status_history")
            .filter(idempotency_key=key, **owner)
            .first()
        )

    def page(self, filters: OrderListFiltersDTO, page_size: int) -> OrderPage[Order]:
        """Filter, sort newest first and cut one page.

        A page past the end returns the last page; an empty result is a
        single empty page.
        """
        queryset = OrderFilter(
            data={"status": filters.status or "", "q": filters.query},
            queryset=Order.objects.all(),
        ).qs.order_by("-created_at", "-id")

        paginator = Paginator(queryset, page_size)
        page_obj = paginator.get_page(filters.page)
        return OrderPage(
            items=list(page_obj.object_list),
            total_count=paginator.count,
            page=page_obj.number,
            num_pages=paginator.num_pages,
            page_size=page_size,
            filters=filters,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @contextmanager
    def locked(self, id: str) -> Iterator[Optional[Order]]:
        with _order_locks.hold(str(id)), transaction.atomic():
            try:
                order = Order.objects.select_for_update().filter(id=id).first()
            except (ValueError, ValidationError):
                order = None
            yield order

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist (create or update) an order."""
        entity.save()
        self._publish_on_commit(entity)
        return entity

    @transaction.atomic
    def save_status(self, order: Order) -> Order:
        order.save(update_fields=["status", "status_updated_at"])
        self._publish_on_commit(order)
        logger.info(
            "order.status_saved", order_id=str(order.id), new_status=order.status
        )
        return order

    def _publish_on_commit(self, entity: Order) -> None:
        events = entity.domain_events
        entity.clear_domain_events()
        if not events:
            return

        def publish() -> None:
            for event in events:
                event_bus.publish(event)

        transaction.on_commit(publish)
