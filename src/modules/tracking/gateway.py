"""Order store client.

``OrderGateway`` is what the tracking synchronizer and the admin board
depend on.  ``HttpOrderGateway`` talks to ``/api/v1/orders/`` with a
bearer token and a bounded timeout; a request that does not answer in
time is a ``NetworkFailure``, never a hang.
"""

from __future__ import annotations

import uuid
from typing import Any, Dict, Optional, Protocol

import requests
import structlog
from django.conf import settings

from modules.orders.dtos import OrderListFiltersDTO, OrderPage, OrderSnapshotDTO
from modules.orders.exceptions import InvalidTransition, OrderNotFound, PermissionDenied
from modules.tracking.exceptions import NetworkFailure, UnexpectedResponse

logger = structlog.get_logger(__name__)


class OrderGateway(Protocol):
    def fetch_order(self, order_id: str) -> OrderSnapshotDTO: ...

    def list_orders(
        self, filters: OrderListFiltersDTO
    ) -> OrderPage[OrderSnapshotDTO]: ...

    def update_status(self, order_id: str, status: str) -> OrderSnapshotDTO: ...

    def advance(self, order_id: str) -> OrderSnapshotDTO: ...

    def retreat(self, order_id: str) -> OrderSnapshotDTO: ...


class HttpOrderGateway:
    """``OrderGateway`` over the orders HTTP API."""

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout if timeout is not None else settings.TRACKING_FETCH_TIMEOUT
        self._session = session or requests.Session()
        self._session.headers.setdefault("Accept", "application/json")
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    def fetch_order(self, order_id: str) -> OrderSnapshotDTO:
        body = self._request("GET", f"/orders/{order_id}/")
        return OrderSnapshotDTO.model_validate(body)

    def list_orders(self, filters: OrderListFiltersDTO) -> OrderPage[OrderSnapshotDTO]:
        params: Dict[str, Any] = {"page": filters.page}
        if filters.status:
            params["status"] = filters.status
        if filters.query:
            params["q"] = filters.query
        body = self._request("GET", "/orders/", params=params)
        return OrderPage(
            items=[OrderSnapshotDTO.model_validate(row) for row in body["results"]],
            total_count=body["count"],
            page=body["page"],
            num_pages=body["num_pages"],
            page_size=body["page_size"],
            filters=filters,
        )

    def update_status(self, order_id: str, status: str) -> OrderSnapshotDTO:
        body = self._request("PATCH", f"/orders/{order_id}/", json={"status": status})
        return OrderSnapshotDTO.model_validate(body)

    def advance(self, order_id: str) -> OrderSnapshotDTO:
        body = self._request("POST", f"/orders/{order_id}/advance/")
        return OrderSnapshotDTO.model_validate(body)

    def retreat(self, order_id: str) -> OrderSnapshotDTO:
        body = self._request("POST", f"/orders/{order_id}/retreat/")
        return OrderSnapshotDTO.model_validate(body)

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                timeout=self._timeout,
                headers={"X-Request-ID": uuid.uuid4().hex},
                **kwargs,
            )
        except requests.Timeout as exc:
            logger.warning("gateway.timeout", method=method, url=url)
            raise NetworkFailure(f"{method} {url} timed out.") from exc
        except requests.RequestException as exc:
            logger.warning("gateway.request_failed", method=method, url=url, error=str(exc))
            raise NetworkFailure(f"{method} {url} failed: {exc}") from exc

        if response.status_code >= 500:
            raise NetworkFailure(f"{method} {url} returned {response.status_code}.")

        detail = _detail(response)
        if response.status_code == 404:
            raise OrderNotFound(detail or "Order not found.")
        if response.status_code in (401, 403):
            raise PermissionDenied(detail or "Not allowed.")
        if response.status_code == 409:
            raise InvalidTransition(detail or "Transition rejected.")
        if response.status_code >= 400:
            raise UnexpectedResponse(response.status_code, detail)

        try:
            return response.json()
        except ValueError as exc:
            raise NetworkFailure(f"{method} {url} returned a malformed body.") from exc


def _detail(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        return str(body.get("detail", ""))
    return ""
