"""Order status state machine.

The five delivery states form a total order::

    PLACED < PACKED < SHIPPED < OUT_FOR_DELIVERY < DELIVERED

An admin may move an order exactly one step forward (``advance``) or one
step back (``retreat``, an administrative correction).  Jumps are rejected
with ``InvalidTransition``.  ``advance`` on DELIVERED and ``retreat`` on
PLACED are silent no-ops: nothing changes and no event is raised.

The machine mutates the in-memory aggregate only; the repository persists
it and publishes the collected ``OrderStatusChanged`` event after commit.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

import structlog
from django.utils import timezone

from modules.orders.constants import STATUS_FLOW, TERMINAL_STATES
from modules.orders.events import OrderStatusChanged
from modules.orders.exceptions import InvalidTransition, PermissionDenied

logger = structlog.get_logger(__name__)


class StatusAware(Protocol):
    id: Any
    status: str
    status_updated_at: Any

    def add_domain_event(self, event: Any) -> None: ...


def status_index(status: str) -> int:
    try:
        return STATUS_FLOW.index(status)
    except ValueError:
        raise InvalidTransition(f"Unknown order status: {status!r}.") from None


def next_status(status: str) -> Optional[str]:
    """Return the status one step forward, ``None`` when terminal."""
    index = status_index(status)
    if index + 1 >= len(STATUS_FLOW):
        return None
    return STATUS_FLOW[index + 1]


def previous_status(status: str) -> Optional[str]:
    """Return the status one step back, ``None`` at the initial state."""
    index = status_index(status)
    if index == 0:
        return None
    return STATUS_FLOW[index - 1]


def is_adjacent(current: str, target: str) -> bool:
    if current not in STATUS_FLOW or target not in STATUS_FLOW:
        return False
    return abs(STATUS_FLOW.index(current) - STATUS_FLOW.index(target)) == 1


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATES


def is_admin(actor: Any) -> bool:
    return bool(
        actor is not None
        and getattr(actor, "is_authenticated", False)
        and getattr(actor, "is_active", True)
        and getattr(actor, "is_staff", False)
    )


class StatusStateMachine:
    """Governs who may move an order and where it may move."""

    def authorize(self, actor: Any) -> None:
        """Raises ``PermissionDenied`` unless ``actor`` is an active staff user."""
        if not is_admin(actor):
            logger.warning(
                "order.transition_denied",
                actor=str(getattr(actor, "pk", None) or "anonymous"),
            )
            raise PermissionDenied("Only an admin may change an order status.")

    def advance(self, order: StatusAware, actor: Any) -> bool:
        """Move one step forward.  Returns ``False`` (no-op) when terminal."""
        self.authorize(actor)
        target = next_status(order.status)
        if target is None:
            logger.info("order.advance_noop", order_id=str(order.id))
            return False
        self._apply(order, target, actor)
        return True

    def retreat(self, order: StatusAware, actor: Any) -> bool:
        """Move one step back.  Returns ``False`` (no-op) at PLACED."""
        self.authorize(actor)
        target = previous_status(order.status)
        if target is None:
            logger.info("order.retreat_noop", order_id=str(order.id))
            return False
        self._apply(order, target, actor)
        return True

    def transition(self, order: StatusAware, target: str, actor: Any) -> None:
        """Move to an explicit ``target``, which must be adjacent.

        Raises:
            PermissionDenied: ``actor`` is not an admin.
            InvalidTransition: ``target`` is the current status or not adjacent.
        """
        self.authorize(actor)
        if not is_adjacent(order.status, target):
            logger.warning(
                "order.invalid_transition",
                order_id=str(order.id),
                current_status=order.status,
                new_status=target,
            )
            raise InvalidTransition(
                f"Cannot transition from {order.status} to {target}."
            )
        self._apply(order, target, actor)

    def _apply(self, order: StatusAware, target: str, actor: Any) -> None:
        old_status = order.status
        order.status = target
        order.status_updated_at = timezone.now()
        # Read by the history signal when the order is saved.
        setattr(order, "_status_changed_by", actor)
        order.add_domain_event(
            OrderStatusChanged(
                aggregate_id=order.id,
                old_status=old_status,
                new_status=target,
                status_updated_at=order.status_updated_at,
            )
        )


state_machine = StatusStateMachine()
