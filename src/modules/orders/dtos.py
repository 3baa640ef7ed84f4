"""Order DTOs for the Service Layer and the API clients.

Framework-agnostic data transfer objects using Pydantic v2.  DTOs are
immutable (``frozen=True``).

- ``CreateOrderItemDTO`` / ``ShippingDTO`` / ``CreateOrderDTO``: checkout input.
- ``OrderListFiltersDTO``: admin list filter + page.
- ``OrderItemSnapshotDTO`` / ``OrderSnapshotDTO``: an order as seen by a
  client (tracking view, admin board); built from the model on the server
  and from the JSON body on the client.
- ``OrderPage``: one page of results with the total match count.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from modules.orders.constants import OrderStatus, PaymentMethod, parse_status

if TYPE_CHECKING:
    from modules.orders.models import Order

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """Immutable cart line submitted at checkout.

    Price and quantity ranges are checked by the pricing engine.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    title: str
    unit_price: Decimal
    quantity: int


class ShippingDTO(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    full_name: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str

    @field_validator("full_name", "phone", "address", "city", "state", "pincode")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v:
            raise ValueError("Shipping fields are required.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests."""

    model_config = ConfigDict(frozen=True)

    items: List[CreateOrderItemDTO]
    shipping: ShippingDTO
    coupon_code: Optional[str] = None
    payment_method: str = PaymentMethod.CASH_ON_DELIVERY
    idempotency_key: Optional[str] = None


class OrderListFiltersDTO(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    status: Optional[str] = None
    query: str = ""
    page: int = 1

    @field_validator("status")
    @classmethod
    def normalize_status(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        return parse_status(v)

    @field_validator("page")
    @classmethod
    def page_must_be_positive(cls, v: int) -> int:
        return max(v, 1)


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class OrderItemSnapshotDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    title: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class OrderSnapshotDTO(BaseModel):
    """Immutable view of one order at a point in time."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    order_number: str
    status: str
    status_updated_at: datetime
    created_at: datetime
    full_name: str
    phone: str
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    payment_method: str = PaymentMethod.CASH_ON_DELIVERY
    subtotal: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    delivery_fee: Decimal = Decimal("0")
    grand_total: Decimal
    items: List[OrderItemSnapshotDTO] = []

    @field_validator("status")
    @classmethod
    def normalize_status(cls, v: str) -> str:
        return parse_status(v)

    @property
    def status_label(self) -> str:
        return OrderStatus(self.status).label

    def with_status(self, status: str) -> OrderSnapshotDTO:
        return self.model_copy(update={"status": status})

    @classmethod
    def from_entity(cls, order: Order) -> OrderSnapshotDTO:
        items = [
            OrderItemSnapshotDTO(
                product_id=item.product_id,
                title=item.title,
                unit_price=item.unit_price,
                quantity=item.quantity,
                line_total=item.line_total,
            )
            for item in order.items.all()
        ]
        return cls(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            status_updated_at=order.status_updated_at,
            created_at=order.created_at,
            full_name=order.full_name,
            phone=order.phone,
            address=order.address,
            city=order.city,
            state=order.state,
            pincode=order.pincode,
            payment_method=order.payment_method,
            subtotal=order.subtotal,
            discount=order.discount,
            tax=order.tax,
            delivery_fee=order.delivery_fee,
            grand_total=order.grand_total,
            items=items,
        )


@dataclass(frozen=True)
class OrderPage(Generic[T]):
    """One page of orders plus the number of orders matching the filter."""

    items: List[T]
    total_count: int
    page: int = 1
    num_pages: int = 1
    page_size: int = 10
    filters: Optional[OrderListFiltersDTO] = field(default=None, compare=False)
