"""Pending local edits on the admin board.

Each status change the admin triggers is applied to the board before the
store confirms it.  The ledger remembers the row as it was, keyed by a
request id, so the edit can be committed with the store's answer or
rolled back if the store rejects it.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional

from modules.orders.dtos import OrderSnapshotDTO


@dataclass(frozen=True)
class PendingMutation:
    request_id: str
    order_id: str
    previous: OrderSnapshotDTO
    optimistic: OrderSnapshotDTO


class OptimisticLedger:
    def __init__(self) -> None:
        self._pending: Dict[str, PendingMutation] = {}
        self._lock = threading.Lock()

    def apply(
        self, previous: OrderSnapshotDTO, optimistic: OrderSnapshotDTO
    ) -> PendingMutation:
        mutation = PendingMutation(
            request_id=uuid.uuid4().hex,
            order_id=str(previous.id),
            previous=previous,
            optimistic=optimistic,
        )
        with self._lock:
            self._pending[mutation.request_id] = mutation
        return mutation

    def commit(self, request_id: str) -> Optional[PendingMutation]:
        """Forget a confirmed edit.  ``None`` if it was already superseded."""
        with self._lock:
            return self._pending.pop(request_id, None)

    def revert(self, request_id: str) -> Optional[PendingMutation]:
        """Forget a rejected edit and return it so the caller can restore
        ``previous``.  ``None`` if it was already superseded."""
        with self._lock:
            return self._pending.pop(request_id, None)

    def pending_for(self, order_id: str) -> List[PendingMutation]:
        with self._lock:
            return [m for m in self._pending.values() if m.order_id == str(order_id)]

    def clear(self) -> List[PendingMutation]:
        """Drop every pending edit, e.g. after a full refresh from the store."""
        with self._lock:
            superseded = list(self._pending.values())
            self._pending.clear()
        return superseded

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
