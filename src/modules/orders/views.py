"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.orders.dtos import (
    CreateOrderDTO,
    CreateOrderItemDTO,
    OrderListFiltersDTO,
    ShippingDTO,
)
from modules.orders.exceptions import InvalidTransition, OrderNotFound, PermissionDenied
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CreateOrderSerializer,
    OrderListQuerySerializer,
    OrderListSerializer,
    OrderSerializer,
    StatusUpdateSerializer,
)
from modules.orders.services import OrderService
from modules.pricing.exceptions import PricingValidationError


def _error(detail: str, code: int) -> Response:
    return Response({"detail": detail}, status=code)


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with an injected repository (DIP).
    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    serializer_class = OrderSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(order_repository=OrderDjangoRepository())

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttle scopes per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action == "retrieve":
            throttle_scope = "order_tracking"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 if the key was already used, 201 for new orders.
        """
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        data = create_serializer.validated_data
        idempotency_key = request.headers.get("Idempotency-Key") or None
        dto = CreateOrderDTO(
            items=[CreateOrderItemDTO(**item) for item in data["items"]],
            shipping=ShippingDTO(**data["shipping"]),
            coupon_code=data.get("coupon_code"),
            payment_method=data["payment_method"],
            idempotency_key=idempotency_key,
        )

        try:
            order, created = self._service.create_order(dto, actor=request.user)
        except PricingValidationError as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST)

        out = OrderSerializer(order)
        return Response(
            out.data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/?status=&q=&page=

        Admin only.  Newest first, fixed page size, out-of-range pages
        return the last page.
        """
        query = OrderListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        filters = OrderListFiltersDTO(
            status=query.validated_data["status"] or None,
            query=query.validated_data["q"],
            page=query.validated_data["page"],
        )

        try:
            page = self._service.list_orders(
                filters, actor=request.user, page_size=settings.ADMIN_ORDERS_PAGE_SIZE
            )
        except PermissionDenied as exc:
            return _error(str(exc), status.HTTP_403_FORBIDDEN)

        return Response(
            {
                "count": page.total_count,
                "page": page.page,
                "num_pages": page.num_pages,
                "page_size": page.page_size,
                "results": OrderListSerializer(page.items, many=True).data,
            }
        )

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk or "")
        except OrderNotFound:
            return _error("Order not found.", status.HTTP_404_NOT_FOUND)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Status changes (admin)
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/  ``{"status": "PACKED"}``

        Only the status may change; the target must be adjacent.
        """
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._status_response(
            self._service.update_status,
            pk or "",
            serializer.validated_data["status"],
            request.user,
        )

    @action(detail=True, methods=["post"])
    def advance(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/advance/"""
        return self._status_response(self._service.advance, pk or "", request.user)

    @action(detail=True, methods=["post"])
    def retreat(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/retreat/"""
        return self._status_response(self._service.retreat, pk or "", request.user)

    def _status_response(self, command, *args) -> Response:
        try:
            order = command(*args)
        except PermissionDenied as exc:
            return _error(str(exc), status.HTTP_403_FORBIDDEN)
        except OrderNotFound:
            return _error("Order not found.", status.HTTP_404_NOT_FOUND)
        except InvalidTransition as exc:
            return _error(str(exc), status.HTTP_409_CONFLICT)
        return Response(OrderSerializer(order).data)
