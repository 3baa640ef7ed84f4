"""Admin order board.

A paginated, filterable list of all orders with one-click advance and
retreat.  Status changes are optimistic: the row moves immediately and
the store is asked for that exact status.  The store's answer either
confirms it or the row is rolled back and the rejection is kept in
``last_error``.  ``refresh()`` replaces every row with what the store
currently holds, so optimistic state never outlives the next refresh.

The board's auto-refresh loop runs on its own ``PeriodicPoller`` and is
independent of any customer tracking poller.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

import structlog
from django.conf import settings

from modules.admin_console.optimistic import OptimisticLedger
from modules.orders.dtos import OrderListFiltersDTO, OrderPage, OrderSnapshotDTO
from modules.orders.exceptions import InvalidTransition, OrderNotFound, PermissionDenied
from modules.orders.state_machine import next_status, previous_status
from modules.tracking.exceptions import NetworkFailure, UnexpectedResponse
from modules.tracking.gateway import OrderGateway
from shared.infrastructure.polling import PeriodicPoller

logger = structlog.get_logger(__name__)

REJECTIONS = (
    InvalidTransition,
    OrderNotFound,
    PermissionDenied,
    NetworkFailure,
    UnexpectedResponse,
)


@dataclass(frozen=True)
class MutationResult:
    order_id: str
    ok: bool
    order: Optional[OrderSnapshotDTO] = None
    request_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def noop(self) -> bool:
        return self.ok and self.request_id is None


class AdminOrderBoard:
    def __init__(
        self,
        gateway: OrderGateway,
        page_size: Optional[int] = None,
        refresh_interval: Optional[float] = None,
        auto_refresh: Optional[bool] = None,
    ) -> None:
        self._gateway = gateway
        self.page_size = page_size or settings.ADMIN_ORDERS_PAGE_SIZE
        self._auto_refresh = (
            settings.ADMIN_AUTO_REFRESH if auto_refresh is None else auto_refresh
        )
        self._poller = PeriodicPoller(
            self._refresh_tick,
            refresh_interval or settings.ADMIN_REFRESH_INTERVAL,
            name="admin-board",
        )
        self._ledger = OptimisticLedger()
        self._lock = threading.RLock()
        self._filters = OrderListFiltersDTO()
        self._rows: List[OrderSnapshotDTO] = []
        self._total_count = 0
        self._num_pages = 1
        self._started = False
        self.last_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    @property
    def rows(self) -> List[OrderSnapshotDTO]:
        with self._lock:
            return list(self._rows)

    @property
    def filters(self) -> OrderListFiltersDTO:
        return self._filters

    @property
    def page(self) -> int:
        return self._filters.page

    @property
    def total_count(self) -> int:
        return self._total_count

    @property
    def num_pages(self) -> int:
        return self._num_pages

    @property
    def pending(self) -> int:
        return len(self._ledger)

    def row(self, order_id: str) -> Optional[OrderSnapshotDTO]:
        with self._lock:
            return self._find(str(order_id))

    # ------------------------------------------------------------------
    # Filtering / paging
    # ------------------------------------------------------------------

    def set_filter(
        self, status: Optional[str] = None, query: str = ""
    ) -> Optional[OrderPage[OrderSnapshotDTO]]:
        """Change the filter and go back to page 1."""
        self._filters = OrderListFiltersDTO(status=status, query=query, page=1)
        return self.refresh()

    def set_page(self, page: int) -> Optional[OrderPage[OrderSnapshotDTO]]:
        self._filters = self._filters.model_copy(update={"page": max(page, 1)})
        return self.refresh()

    def refresh(self) -> Optional[OrderPage[OrderSnapshotDTO]]:
        """Re-fetch the current page.

        On a network failure the current rows stay and ``None`` is returned.
        """
        filters = self._filters
        try:
            result = self._gateway.list_orders(filters)
        except NetworkFailure as exc:
            self.last_error = str(exc)
            logger.warning("admin_board.refresh_failed", error=str(exc))
            return None

        with self._lock:
            superseded = self._ledger.clear()
            self._rows = list(result.items)
            self._total_count = result.total_count
            self._num_pages = result.num_pages
            if result.page != filters.page:
                self._filters = filters.model_copy(update={"page": result.page})
        logger.debug(
            "admin_board.refreshed",
            page=result.page,
            row_count=len(result.items),
            total_count=result.total_count,
            superseded=len(superseded),
        )
        return result

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def advance(self, order_id: str) -> MutationResult:
        return self._mutate(str(order_id), next_status)

    def retreat(self, order_id: str) -> MutationResult:
        return self._mutate(str(order_id), previous_status)

    def _mutate(
        self, order_id: str, step: Callable[[str], Optional[str]]
    ) -> MutationResult:
        """Move the row to the step's target and ask the store for exactly it.

        The store checks the target against its own current status, so a row
        that went stale since the last refresh is rejected and rolled back.
        """
        log = logger.bind(order_id=order_id)

        with self._lock:
            current = self._find(order_id)
            if current is None:
                self.last_error = f"Order {order_id} is not on this page."
                return MutationResult(order_id=order_id, ok=False, error=self.last_error)
            target = step(current.status)
            if target is None:
                return MutationResult(order_id=order_id, ok=True, order=current)
            pending = self._ledger.apply(current, current.with_status(target))
            self._replace(pending.optimistic)

        log = log.bind(request_id=pending.request_id, new_status=target)
        try:
            confirmed = self._gateway.update_status(order_id, target)
        except REJECTIONS as exc:
            with self._lock:
                if self._ledger.revert(pending.request_id) is not None:
                    self._replace(pending.previous)
                self.last_error = str(exc)
            log.warning("admin_board.rollback", error=str(exc))
            return MutationResult(
                order_id=order_id,
                ok=False,
                order=pending.previous,
                request_id=pending.request_id,
                error=str(exc),
            )

        with self._lock:
            if self._ledger.commit(pending.request_id) is not None:
                self._replace(confirmed)
            self.last_error = None
        log.info("admin_board.committed", status=confirmed.status)
        return MutationResult(
            order_id=order_id,
            ok=True,
            order=confirmed,
            request_id=pending.request_id,
        )

    # ------------------------------------------------------------------
    # Auto-refresh
    # ------------------------------------------------------------------

    @property
    def auto_refresh(self) -> bool:
        return self._auto_refresh

    def start(self) -> None:
        """Load the first page and start auto-refresh if enabled."""
        self._started = True
        self.refresh()
        if self._auto_refresh:
            self._poller.start()

    def stop(self) -> None:
        self._started = False
        self._poller.stop()

    def toggle_auto_refresh(self) -> bool:
        self._auto_refresh = not self._auto_refresh
        if self._started and self._auto_refresh:
            self._poller.start()
        elif not self._auto_refresh:
            self._poller.stop()
        logger.info("admin_board.auto_refresh", enabled=self._auto_refresh)
        return self._auto_refresh

    def __enter__(self) -> AdminOrderBoard:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def _refresh_tick(self) -> None:
        self.refresh()

    # ------------------------------------------------------------------
    # Helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _find(self, order_id: str) -> Optional[OrderSnapshotDTO]:
        for row in self._rows:
            if str(row.id) == order_id:
                return row
        return None

    def _replace(self, order: OrderSnapshotDTO) -> None:
        for index, row in enumerate(self._rows):
            if row.id == order.id:
                self._rows[index] = order
                return
