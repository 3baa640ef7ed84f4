"""Customer-facing order tracking.

A ``TrackingSynchronizer`` keeps one order page in step with the order
store.  It fetches the order once on ``start()`` and then polls on a fixed
interval until ``stop()``.  Every successful fetch is written to the
snapshot cache; a failed fetch (network error, throttling, rejected
credentials or a malformed body) falls back to the last snapshot without
raising.  A status that differs from the last observed one is reported to
listeners exactly once.

States seen by the page (``TrackingView.state``):

    loading      nothing fetched or cached yet
    live         last fetch succeeded
    stale        last fetch failed, showing the cached snapshot
    unavailable  last fetch failed and nothing is cached
    not_found    the store does not know the order; polling has stopped
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import structlog
from django.conf import settings
from pydantic import ValidationError

from modules.orders.dtos import OrderSnapshotDTO
from modules.orders.exceptions import OrderNotFound, PermissionDenied
from modules.tracking.cache import SnapshotCache
from modules.tracking.eta import StopsAwayCounter, eta_bucket
from modules.tracking.exceptions import NetworkFailure, UnexpectedResponse
from modules.tracking.gateway import OrderGateway
from shared.infrastructure.polling import PeriodicPoller

logger = structlog.get_logger(__name__)

LOADING = "loading"
LIVE = "live"
STALE = "stale"
UNAVAILABLE = "unavailable"
NOT_FOUND = "not_found"

# Failed fetches that fall back to the cached snapshot.
FETCH_FAILURES = (
    NetworkFailure,
    UnexpectedResponse,
    PermissionDenied,
    ValidationError,
)


@dataclass(frozen=True)
class StatusChange:
    order_id: str
    old_status: str
    new_status: str


@dataclass(frozen=True)
class TrackingView:
    order: Optional[OrderSnapshotDTO]
    state: str
    eta: Optional[str] = None
    stops_away: Optional[int] = None
    last_synced_at: Optional[datetime] = None

    @property
    def is_stale(self) -> bool:
        return self.state == STALE

    @property
    def status(self) -> Optional[str]:
        return self.order.status if self.order else None


StatusListener = Callable[[StatusChange], None]


class TrackingSynchronizer:
    def __init__(
        self,
        order_id: str,
        gateway: OrderGateway,
        cache: Optional[SnapshotCache] = None,
        interval: Optional[float] = None,
        stops_away_start: Optional[int] = None,
    ) -> None:
        self.order_id = str(order_id)
        self._gateway = gateway
        self._cache = cache or SnapshotCache()
        self._stops_start = (
            stops_away_start
            if stops_away_start is not None
            else settings.TRACKING_STOPS_AWAY_START
        )
        self._stops = StopsAwayCounter(start=self._stops_start)
        self._poller = PeriodicPoller(
            self.poll_once,
            interval if interval is not None else settings.TRACKING_POLL_INTERVAL,
            name=f"tracking-{self.order_id}",
        )
        self._lock = threading.RLock()
        self._listeners: List[StatusListener] = []
        self._order: Optional[OrderSnapshotDTO] = None
        self._observed_status: Optional[str] = None
        self._state = LOADING
        self._last_synced_at: Optional[datetime] = None
        self._stopped = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> TrackingView:
        """Show the cached snapshot, fetch once, then poll in the background."""
        with self._lock:
            self._stopped = False
            cached = self._cache.load(self.order_id)
            if cached is not None and self._order is None:
                self._order = cached.order
                self._last_synced_at = cached.synced_at
                self._stops = StopsAwayCounter(
                    start=self._stops_start, remaining=cached.stops_away
                )
                self._stops.observe(cached.order.status)
        self.poll_once()
        if self.state != NOT_FOUND:
            self._poller.start()
        return self.view

    def stop(self) -> None:
        """Stop polling.  No listener is called once this returns."""
        with self._lock:
            self._stopped = True
        self._poller.stop()
        logger.info("tracking.stopped", order_id=self.order_id)

    def __enter__(self) -> TrackingSynchronizer:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    @property
    def is_polling(self) -> bool:
        return self._poller.is_running

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def add_listener(self, listener: StatusListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def poll_once(self) -> TrackingView:
        log = logger.bind(order_id=self.order_id)
        try:
            fetched = self._gateway.fetch_order(self.order_id)
        except FETCH_FAILURES as exc:
            with self._lock:
                self._state = STALE if self._order is not None else UNAVAILABLE
            log.warning(
                "tracking.fetch_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                state=self._state,
            )
            return self.view
        except OrderNotFound:
            with self._lock:
                self._state = NOT_FOUND
                self._order = None
            self._cache.clear(self.order_id)
            log.info("tracking.order_not_found")
            # May run on the poller thread itself: signal only, no join.
            self._poller.stop(timeout=0)
            return self.view

        with self._lock:
            if self._stopped:
                return self.view
            change = None
            if (
                self._observed_status is not None
                and fetched.status != self._observed_status
            ):
                change = StatusChange(
                    order_id=self.order_id,
                    old_status=self._observed_status,
                    new_status=fetched.status,
                )
            self._observed_status = fetched.status
            self._order = fetched
            self._state = LIVE
            stops_away = self._stops.observe(fetched.status)
            entry = self._cache.store(fetched, stops_away=self._stops.remaining)
            self._last_synced_at = entry.synced_at

            if change is not None:
                log.info(
                    "tracking.status_changed",
                    old_status=change.old_status,
                    new_status=change.new_status,
                    stops_away=stops_away,
                )
                for listener in list(self._listeners):
                    listener(change)

        return self.view

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        with self._lock:
            return self._state

    @property
    def view(self) -> TrackingView:
        with self._lock:
            order = self._order
            return TrackingView(
                order=order,
                state=self._state,
                eta=eta_bucket(order.status) if order else None,
                stops_away=self._stops.value if order else None,
                last_synced_at=self._last_synced_at,
            )
