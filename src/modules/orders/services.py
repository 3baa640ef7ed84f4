"""Order service layer (Use Cases).

Orchestrates checkout, order lookup, the admin listing and status
transitions.  The service defines the unit-of-work boundary; the
repository serializes writes per order.

Business rules enforced:
- Totals are computed server-side by the pricing engine; the client
  never submits prices for the order as a whole.
- Line items, shipping and pricing are frozen once the order exists.
- Only an admin may change a status, one step at a time.
- A retried checkout with the same ``Idempotency-Key`` returns the
  original order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, Tuple

import structlog
from django.conf import settings
from django.db import IntegrityError, transaction

from modules.orders.dtos import OrderListFiltersDTO, OrderPage
from modules.orders.events import OrderCreated
from modules.orders.exceptions import OrderNotFound
from modules.orders.state_machine import StatusStateMachine, state_machine
from modules.pricing.coupons import resolve_coupon
from modules.pricing.engine import PricingPolicy, compute_totals

if TYPE_CHECKING:
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives the repository via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        machine: Optional[StatusStateMachine] = None,
        pricing_policy: Optional[PricingPolicy] = None,
    ) -> None:
        self._order_repo = order_repository
        self._machine = machine or state_machine
        self._pricing_policy = pricing_policy

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_order(
        self, dto: CreateOrderDTO, actor: Any = None
    ) -> Tuple[Order, bool]:
        """Price the cart and persist a new PLACED order.

        Returns ``(order, created)`` like ``get_or_create``: ``created`` is
        false when the idempotency key matched an existing order.

        Raises:
            PricingValidationError: empty cart, bad line, unknown coupon.
        """
        log = logger.bind(item_count=len(dto.items), coupon_code=dto.coupon_code)
        log.info("order.creation_started")

        placed_by = actor if getattr(actor, "is_authenticated", False) else None
        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(
                dto.idempotency_key, placed_by=placed_by
            )
            if existing:
                log.info(
                    "order.idempotency_hit",
                    order_id=str(existing.id),
                    key=dto.idempotency_key,
                )
                return existing, False

        coupon = resolve_coupon(dto.coupon_code)
        policy = self._pricing_policy or PricingPolicy.from_settings()
        totals = compute_totals(dto.items, coupon, policy=policy)

        data = {
            **dto.shipping.model_dump(),
            **totals.model_dump(),
            "payment_method": dto.payment_method,
            "idempotency_key": dto.idempotency_key,
            "placed_by": placed_by,
            "items": [item.model_dump() for item in dto.items],
        }

        try:
            with transaction.atomic():
                order = self._order_repo.create(data)
                order.add_domain_event(OrderCreated(aggregate_id=order.id))
                self._order_repo.save(order)
        except IntegrityError:
            # Concurrent retry with the same key won the insert.
            if dto.idempotency_key:
                existing = self._order_repo.get_by_idempotency_key(
                    dto.idempotency_key, placed_by=placed_by
                )
                if existing:
                    return existing, False
            raise

        log.info(
            "order.created",
            order_id=str(order.id),
            order_number=order.order_number,
            grand_total=str(order.grand_total),
        )
        return self._order_repo.get_by_id(str(order.id)) or order, True

    def update_status(self, order_id: str, new_status: str, actor: Any) -> Order:
        """Move an order to an adjacent ``new_status``.

        Raises:
            PermissionDenied: ``actor`` is not an admin.
            OrderNotFound: order does not exist.
            InvalidTransition: ``new_status`` is not adjacent to the current one.
        """
        self._machine.authorize(actor)
        with self._order_repo.locked(order_id) as order:
            if order is None:
                raise OrderNotFound(f"Order {order_id} not found.")
            self._machine.transition(order, new_status, actor)
            self._order_repo.save_status(order)
            return self._reload(order)

    def advance(self, order_id: str, actor: Any) -> Order:
        """One step forward; a delivered order is returned unchanged."""
        return self._step(order_id, actor, self._machine.advance)

    def retreat(self, order_id: str, actor: Any) -> Order:
        """One step back; a placed order is returned unchanged."""
        return self._step(order_id, actor, self._machine.retreat)

    def _step(self, order_id: str, actor: Any, move) -> Order:
        self._machine.authorize(actor)
        with self._order_repo.locked(order_id) as order:
            if order is None:
                raise OrderNotFound(f"Order {order_id} not found.")
            if move(order, actor):
                self._order_repo.save_status(order)
            return self._reload(order)

    def _reload(self, order: Order) -> Order:
        # Runs inside the locked block so the read sees this transaction.
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(
        self,
        filters: OrderListFiltersDTO,
        actor: Any,
        page_size: Optional[int] = None,
    ) -> OrderPage[Order]:
        """Admin listing: filter, newest first, one page.

        Raises:
            PermissionDenied: ``actor`` is not an admin.
        """
        self._machine.authorize(actor)
        return self._order_repo.page(
            filters, page_size or settings.ADMIN_ORDERS_PAGE_SIZE
        )
