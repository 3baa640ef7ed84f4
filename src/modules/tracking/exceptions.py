"""Client-side errors raised while talking to the order store.

``OrderNotFound``, ``InvalidTransition`` and ``PermissionDenied`` are the
store's own rejections (``modules.orders.exceptions``); the gateway maps
HTTP responses back onto them.
"""

from __future__ import annotations


class NetworkFailure(Exception):
    """Timeout, connection error or 5xx.  Transient: retried on the next poll."""


class UnexpectedResponse(Exception):
    """The store answered with a status the client does not understand."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        super().__init__(f"Unexpected response {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
