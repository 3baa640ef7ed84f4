"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import OrderCreated, OrderStatusChanged
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            f"Order {event.aggregate_id} placed",
            order_id=str(event.aggregate_id),
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    """Forwards each committed transition to the customer notification task."""

    def handle(self, event: OrderStatusChanged) -> None:
        from modules.orders.tasks import notify_status_change

        logger.info(
            f"Order {event.aggregate_id} moved {event.old_status} -> {event.new_status}",
            order_id=str(event.aggregate_id),
        )
        notify_status_change.delay(
            str(event.aggregate_id), event.old_status, event.new_status
        )


order_created_handler = OrderCreatedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
