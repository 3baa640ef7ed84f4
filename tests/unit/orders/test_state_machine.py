"""Unit tests for the order status state machine.

Covers:
- Adjacency helpers over the five delivery states.
- advance / retreat, including the silent no-ops at both ends.
- Explicit transitions: adjacent targets only.
- Admin-only authorization.
- Status-changed events collected on the aggregate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

from modules.orders.constants import STATUS_FLOW, OrderStatus, parse_status
from modules.orders.events import OrderStatusChanged
from modules.orders.exceptions import InvalidTransition, PermissionDenied
from modules.orders.state_machine import (
    StatusStateMachine,
    is_adjacent,
    is_admin,
    is_terminal,
    next_status,
    previous_status,
)
from shared.domain.events import DomainEventMixin

pytestmark = pytest.mark.unit

ADMIN = SimpleNamespace(pk=1, is_authenticated=True, is_active=True, is_staff=True)
CUSTOMER = SimpleNamespace(pk=2, is_authenticated=True, is_active=True, is_staff=False)
INACTIVE_ADMIN = SimpleNamespace(
    pk=3, is_authenticated=True, is_active=False, is_staff=True
)
EARLIER = datetime(2026, 1, 1, tzinfo=timezone.utc)


@dataclass
class StubOrder(DomainEventMixin):
    status: str = OrderStatus.PLACED
    id: UUID = field(default_factory=uuid4)
    status_updated_at: datetime = EARLIER


@pytest.fixture()
def machine():
    return StatusStateMachine()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestAdjacency:
    def test_flow_order(self):
        assert STATUS_FLOW == (
            "PLACED",
            "PACKED",
            "SHIPPED",
            "OUT_FOR_DELIVERY",
            "DELIVERED",
        )

    def test_next_and_previous(self):
        assert next_status(OrderStatus.SHIPPED) == OrderStatus.OUT_FOR_DELIVERY
        assert previous_status(OrderStatus.SHIPPED) == OrderStatus.PACKED
        assert next_status(OrderStatus.DELIVERED) is None
        assert previous_status(OrderStatus.PLACED) is None

    @pytest.mark.parametrize(
        "current,target,expected",
        [
            ("PLACED", "PACKED", True),
            ("PACKED", "PLACED", True),
            ("PLACED", "SHIPPED", False),
            ("DELIVERED", "PLACED", False),
            ("SHIPPED", "SHIPPED", False),
            ("SHIPPED", "LOST", False),
        ],
    )
    def test_is_adjacent(self, current, target, expected):
        assert is_adjacent(current, target) is expected

    def test_only_delivered_is_terminal(self):
        assert [s for s in STATUS_FLOW if is_terminal(s)] == ["DELIVERED"]

    def test_unknown_status_raises(self):
        with pytest.raises(InvalidTransition):
            next_status("LOST")

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("OUT_FOR_DELIVERY", "OUT_FOR_DELIVERY"),
            ("Out for Delivery", "OUT_FOR_DELIVERY"),
            ("out-for-delivery", "OUT_FOR_DELIVERY"),
            (" packed ", "PACKED"),
        ],
    )
    def test_parse_status_accepts_values_and_labels(self, raw, expected):
        assert parse_status(raw) == expected

    def test_parse_status_rejects_unknown(self):
        with pytest.raises(ValueError):
            parse_status("Cancelled")


class TestAuthorization:
    def test_admin_check(self):
        assert is_admin(ADMIN)
        assert not is_admin(CUSTOMER)
        assert not is_admin(INACTIVE_ADMIN)
        assert not is_admin(None)

    @pytest.mark.parametrize("actor", [CUSTOMER, INACTIVE_ADMIN, None])
    def test_non_admin_cannot_move_an_order(self, machine, actor):
        order = StubOrder(status=OrderStatus.PACKED)

        with pytest.raises(PermissionDenied):
            machine.advance(order, actor)
        with pytest.raises(PermissionDenied):
            machine.retreat(order, actor)
        with pytest.raises(PermissionDenied):
            machine.transition(order, OrderStatus.SHIPPED, actor)

        assert order.status == OrderStatus.PACKED
        assert order.domain_events == []


# ---------------------------------------------------------------------------
# advance / retreat
# ---------------------------------------------------------------------------


class TestAdvanceRetreat:
    def test_advance_walks_the_whole_flow(self, machine):
        order = StubOrder()
        seen = [order.status]
        while machine.advance(order, ADMIN):
            seen.append(order.status)

        assert tuple(seen) == STATUS_FLOW
        assert len(order.domain_events) == 4

    def test_retreat_moves_one_step_back(self, machine):
        order = StubOrder(status=OrderStatus.OUT_FOR_DELIVERY)

        assert machine.retreat(order, ADMIN) is True
        assert order.status == OrderStatus.SHIPPED

    def test_advance_on_delivered_is_a_silent_noop(self, machine):
        order = StubOrder(status=OrderStatus.DELIVERED)

        assert machine.advance(order, ADMIN) is False
        assert order.status == OrderStatus.DELIVERED
        assert order.status_updated_at == EARLIER
        assert order.domain_events == []

    def test_retreat_on_placed_is_a_silent_noop(self, machine):
        order = StubOrder(status=OrderStatus.PLACED)

        assert machine.retreat(order, ADMIN) is False
        assert order.status == OrderStatus.PLACED
        assert order.status_updated_at == EARLIER
        assert order.domain_events == []

    def test_transition_updates_timestamp_and_records_event(self, machine):
        order = StubOrder(status=OrderStatus.SHIPPED)

        machine.advance(order, ADMIN)

        assert order.status_updated_at > EARLIER
        (event,) = order.domain_events
        assert isinstance(event, OrderStatusChanged)
        assert event.aggregate_id == order.id
        assert event.old_status == OrderStatus.SHIPPED
        assert event.new_status == OrderStatus.OUT_FOR_DELIVERY
        assert event.status_updated_at == order.status_updated_at

    def test_actor_is_remembered_for_history(self, machine):
        order = StubOrder()
        machine.advance(order, ADMIN)
        assert order._status_changed_by is ADMIN


# ---------------------------------------------------------------------------
# Explicit transitions
# ---------------------------------------------------------------------------


class TestTransition:
    def test_adjacent_forward_and_back(self, machine):
        order = StubOrder(status=OrderStatus.PACKED)

        machine.transition(order, OrderStatus.SHIPPED, ADMIN)
        assert order.status == OrderStatus.SHIPPED

        machine.transition(order, OrderStatus.PACKED, ADMIN)
        assert order.status == OrderStatus.PACKED

    @pytest.mark.parametrize(
        "current,target",
        [
            ("PLACED", "SHIPPED"),
            ("PLACED", "DELIVERED"),
            ("DELIVERED", "PACKED"),
            ("SHIPPED", "SHIPPED"),
        ],
    )
    def test_non_adjacent_rejected_and_state_kept(self, machine, current, target):
        order = StubOrder(status=current)

        with pytest.raises(InvalidTransition):
            machine.transition(order, target, ADMIN)

        assert order.status == current
        assert order.status_updated_at == EARLIER
        assert order.domain_events == []
