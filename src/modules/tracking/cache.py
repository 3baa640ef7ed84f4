"""Last-known-good order snapshots.

Cache-aside over the Django cache (``TRACKING_CACHE_ALIAS``).  An entry is
written only after a successful fetch and read only to fill in for a
failed one or to redisplay an order before the first fetch finishes.  It is
never authoritative and never used for a write.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import structlog
from django.conf import settings
from django.core.cache import caches
from django.utils import timezone
from pydantic import ValidationError

from modules.orders.dtos import OrderSnapshotDTO

logger = structlog.get_logger(__name__)

KEY_PREFIX = "tracking:order:"


@dataclass(frozen=True)
class CachedSnapshot:
    order: OrderSnapshotDTO
    synced_at: datetime
    stops_away: Optional[int] = None


class SnapshotCache:
    def __init__(self, alias: Optional[str] = None) -> None:
        self._cache = caches[alias or settings.TRACKING_CACHE_ALIAS]

    @staticmethod
    def key(order_id: str) -> str:
        return f"{KEY_PREFIX}{order_id}"

    def load(self, order_id: str) -> Optional[CachedSnapshot]:
        raw = self._cache.get(self.key(order_id))
        if not raw:
            return None
        try:
            return CachedSnapshot(
                order=OrderSnapshotDTO.model_validate_json(raw["order"]),
                synced_at=datetime.fromisoformat(raw["synced_at"]),
                stops_away=raw.get("stops_away"),
            )
        except (KeyError, TypeError, ValueError, ValidationError):
            logger.warning("tracking.cache_corrupt", order_id=str(order_id))
            self.clear(order_id)
            return None

    def store(
        self,
        order: OrderSnapshotDTO,
        stops_away: Optional[int] = None,
        synced_at: Optional[datetime] = None,
    ) -> CachedSnapshot:
        entry = CachedSnapshot(
            order=order,
            synced_at=synced_at or timezone.now(),
            stops_away=stops_away,
        )
        self._cache.set(
            self.key(str(order.id)),
            {
                "order": order.model_dump_json(),
                "synced_at": entry.synced_at.isoformat(),
                "stops_away": stops_away,
            },
            timeout=None,
        )
        return entry

    def clear(self, order_id: str) -> None:
        self._cache.delete(self.key(order_id))
