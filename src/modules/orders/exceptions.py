"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.  None of them is retried automatically.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The requested order does not exist."""


class InvalidTransition(Exception):
    """A non-adjacent (or same-state) status change was requested."""


class PermissionDenied(Exception):
    """A non-admin actor attempted to change an order status."""


class ImmutableOrderField(Exception):
    """A write tried to change a field frozen at order creation."""
