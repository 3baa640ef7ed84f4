"""Unit tests for TrackingSynchronizer with a scripted gateway."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from modules.orders.dtos import OrderSnapshotDTO
from modules.orders.exceptions import OrderNotFound, PermissionDenied
from modules.tracking.cache import SnapshotCache
from modules.tracking.eta import ETA_TODAY, ETA_TOMORROW
from modules.tracking.exceptions import NetworkFailure, UnexpectedResponse
from modules.tracking.synchronizer import (
    LIVE,
    LOADING,
    NOT_FOUND,
    STALE,
    UNAVAILABLE,
    TrackingSynchronizer,
)

pytestmark = pytest.mark.unit

ORDER_ID = str(uuid4())
NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
NEVER = 3600.0


def order(status):
    return OrderSnapshotDTO(
        id=ORDER_ID,
        order_number="ORD-20260601-C0FFEE",
        status=status,
        status_updated_at=NOW,
        created_at=NOW,
        full_name="Ananya Bose",
        phone="9830012345",
        grand_total="2203.00",
    )


class ScriptedGateway:
    """Answers ``fetch_order`` from a script; the last answer repeats.

    A dict answer is parsed the way the HTTP gateway parses a response body.
    """

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = 0

    def fetch_order(self, order_id):
        self.calls += 1
        answer = self.answers[0] if len(self.answers) == 1 else self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, dict):
            return OrderSnapshotDTO.model_validate(answer)
        return answer


def offline():
    return NetworkFailure("connection refused")


@pytest.fixture()
def snapshots():
    return SnapshotCache()


def make_sync(gateway, snapshots, **kwargs):
    return TrackingSynchronizer(
        ORDER_ID, gateway, cache=snapshots, interval=NEVER, **kwargs
    )


class TestPolling:
    def test_initial_state_is_loading(self, snapshots):
        sync = make_sync(ScriptedGateway(order("PLACED")), snapshots)

        assert sync.state == LOADING
        assert sync.view.order is None

    def test_first_observation_does_not_notify(self, snapshots):
        sync = make_sync(ScriptedGateway(order("PACKED")), snapshots)
        changes = []
        sync.add_listener(changes.append)

        view = sync.poll_once()

        assert view.state == LIVE
        assert view.status == "PACKED"
        assert changes == []

    def test_outage_then_change_notifies_once(self, snapshots):
        gateway = ScriptedGateway(
            order("SHIPPED"),
            offline(),
            offline(),
            order("OUT_FOR_DELIVERY"),
            order("OUT_FOR_DELIVERY"),
        )
        sync = make_sync(gateway, snapshots)
        changes = []
        sync.add_listener(changes.append)

        views = [sync.poll_once() for _ in range(5)]

        assert [v.state for v in views] == [LIVE, STALE, STALE, LIVE, LIVE]
        assert [v.status for v in views[1:3]] == ["SHIPPED", "SHIPPED"]
        assert [(c.old_status, c.new_status) for c in changes] == [
            ("SHIPPED", "OUT_FOR_DELIVERY")
        ]

    def test_stale_view_keeps_last_snapshot(self, snapshots):
        sync = make_sync(ScriptedGateway(order("SHIPPED"), offline()), snapshots)
        sync.poll_once()
        synced = sync.view.last_synced_at

        view = sync.poll_once()

        assert view.is_stale
        assert view.status == "SHIPPED"
        assert view.eta == ETA_TOMORROW
        assert view.last_synced_at == synced

    def test_unavailable_without_cache(self, snapshots):
        sync = make_sync(ScriptedGateway(offline()), snapshots)

        view = sync.poll_once()

        assert view.state == UNAVAILABLE
        assert view.order is None
        assert view.eta is None

    def test_removed_listener_not_called(self, snapshots):
        sync = make_sync(
            ScriptedGateway(order("PLACED"), order("PACKED")), snapshots
        )
        changes = []
        sync.add_listener(changes.append)
        sync.remove_listener(changes.append)

        sync.poll_once()
        sync.poll_once()

        assert changes == []


class TestFetchFailures:
    @pytest.mark.parametrize(
        "failure",
        [
            UnexpectedResponse(429, "Request was throttled."),
            PermissionDenied("Given token not valid for any token type"),
            {"id": ORDER_ID, "status": "SHIPPED"},
        ],
        ids=["throttled", "expired-token", "malformed-body"],
    )
    def test_start_falls_back_to_cache(self, snapshots, failure):
        snapshots.store(order("SHIPPED"), synced_at=NOW)
        sync = make_sync(ScriptedGateway(failure), snapshots)
        changes = []
        sync.add_listener(changes.append)

        view = sync.start()
        try:
            assert view.state == STALE
            assert view.status == "SHIPPED"
            assert view.last_synced_at == NOW
            assert sync.is_polling
        finally:
            sync.stop()
        assert changes == []

    def test_throttled_poll_goes_stale_then_recovers(self, snapshots):
        gateway = ScriptedGateway(
            order("SHIPPED"),
            UnexpectedResponse(429, "Request was throttled."),
            order("OUT_FOR_DELIVERY"),
        )
        sync = make_sync(gateway, snapshots)
        changes = []
        sync.add_listener(changes.append)

        views = [sync.poll_once() for _ in range(3)]

        assert [v.state for v in views] == [LIVE, STALE, LIVE]
        assert views[1].status == "SHIPPED"
        assert [(c.old_status, c.new_status) for c in changes] == [
            ("SHIPPED", "OUT_FOR_DELIVERY")
        ]

    def test_malformed_body_without_cache_is_unavailable(self, snapshots):
        sync = make_sync(ScriptedGateway({"unexpected": "shape"}), snapshots)

        view = sync.poll_once()

        assert view.state == UNAVAILABLE
        assert view.order is None
        assert snapshots.load(ORDER_ID) is None


class TestCache:
    def test_successful_poll_writes_cache(self, snapshots):
        make_sync(ScriptedGateway(order("SHIPPED")), snapshots).poll_once()

        assert snapshots.load(ORDER_ID).order.status == "SHIPPED"

    def test_restart_offline_shows_cached_snapshot(self, snapshots):
        snapshots.store(order("OUT_FOR_DELIVERY"), stops_away=3, synced_at=NOW)
        sync = make_sync(ScriptedGateway(offline()), snapshots)

        view = sync.start()
        try:
            assert view.state == STALE
            assert view.status == "OUT_FOR_DELIVERY"
            assert view.eta == ETA_TODAY
            assert view.stops_away == 3
            assert view.last_synced_at == NOW
        finally:
            sync.stop()

    def test_restart_does_not_replay_change(self, snapshots):
        snapshots.store(order("SHIPPED"), synced_at=NOW)
        sync = make_sync(ScriptedGateway(order("SHIPPED")), snapshots)
        changes = []
        sync.add_listener(changes.append)

        sync.start()
        sync.stop()

        assert changes == []


class TestLifecycle:
    def test_start_polls_and_stop_halts(self, snapshots):
        sync = make_sync(ScriptedGateway(order("PLACED")), snapshots)

        with sync:
            assert sync.is_polling
            assert sync.state == LIVE

        assert not sync.is_polling

    def test_no_callbacks_after_stop(self, snapshots):
        gateway = ScriptedGateway(order("PLACED"), order("PACKED"))
        sync = make_sync(gateway, snapshots)
        changes = []
        sync.add_listener(changes.append)
        sync.start()

        sync.stop()
        sync.poll_once()

        assert changes == []

    def test_not_found_stops_polling_and_clears_cache(self, snapshots):
        snapshots.store(order("PACKED"), synced_at=NOW)
        sync = make_sync(ScriptedGateway(OrderNotFound("gone")), snapshots)

        view = sync.start()

        assert view.state == NOT_FOUND
        assert view.order is None
        assert not sync.is_polling
        assert snapshots.load(ORDER_ID) is None


class TestStopsAway:
    def test_counts_down_while_out_for_delivery(self, snapshots):
        gateway = ScriptedGateway(
            order("SHIPPED"),
            order("OUT_FOR_DELIVERY"),
            order("OUT_FOR_DELIVERY"),
            order("DELIVERED"),
        )
        sync = make_sync(gateway, snapshots, stops_away_start=4)

        seen = [sync.poll_once().stops_away for _ in range(4)]

        assert seen == [None, 4, 3, None]

    def test_stale_poll_does_not_count(self, snapshots):
        gateway = ScriptedGateway(
            order("OUT_FOR_DELIVERY"), offline(), order("OUT_FOR_DELIVERY")
        )
        sync = make_sync(gateway, snapshots, stops_away_start=4)

        seen = [sync.poll_once().stops_away for _ in range(3)]

        assert seen == [4, 4, 3]
