"""Async tasks for the orders module."""

import structlog
from celery import shared_task

from modules.orders.constants import OrderStatus

logger = structlog.get_logger(__name__)


@shared_task(name="orders.notify_status_change")
def notify_status_change(order_id: str, old_status: str, new_status: str) -> dict:
    """Customer notification for a delivery status change.

    Delivery channels (SMS, push) plug in here; the payload is what a
    customer-facing alert shows.
    """
    message = f"Your order is now {OrderStatus(new_status).label}."
    logger.info(
        "order.customer_notified",
        order_id=order_id,
        old_status=old_status,
        new_status=new_status,
    )
    return {"order_id": order_id, "status": new_status, "message": message}
