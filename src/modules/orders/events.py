"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is placed at checkout."""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised after a status transition commits."""

    old_status: str = ""
    new_status: str = ""
    status_updated_at: Optional[datetime] = None
