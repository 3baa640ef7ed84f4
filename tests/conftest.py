from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, ShippingDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService

User = get_user_model()

SHIPPING = {
    "full_name": "Aarav Sharma",
    "phone": "9876543210",
    "address": "12 MG Road",
    "city": "Pune",
    "state": "Maharashtra",
    "pincode": "411001",
}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters and tracking snapshots live in the default cache."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def admin_user():
    return User.objects.create_user(
        username="storeadmin", password="testpass123", is_staff=True
    )


@pytest.fixture()
def customer_user():
    return User.objects.create_user(username="shopper", password="testpass123")


@pytest.fixture()
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture()
def customer_client(customer_user):
    client = APIClient()
    client.force_authenticate(user=customer_user)
    return client


@pytest.fixture()
def order_service():
    return OrderService(order_repository=OrderDjangoRepository())


@pytest.fixture()
def checkout_payload():
    return {
        "items": [
            {
                "product_id": "SKU-101",
                "title": "Cotton Kurta",
                "unit_price": "1000.00",
                "quantity": 2,
            }
        ],
        "shipping": dict(SHIPPING),
    }


@pytest.fixture()
def make_order(order_service):
    """Place an order through the service layer.

    ``make_order(full_name="...", lines=[("SKU", "Title", "99", 1)])``
    """

    def _make(lines=None, coupon_code=None, **shipping):
        lines = lines or [("SKU-101", "Cotton Kurta", "1000", 2)]
        dto = CreateOrderDTO(
            items=[
                CreateOrderItemDTO(
                    product_id=sku,
                    title=title,
                    unit_price=Decimal(price),
                    quantity=quantity,
                )
                for sku, title, price, quantity in lines
            ],
            shipping=ShippingDTO(**{**SHIPPING, **shipping}),
            coupon_code=coupon_code,
        )
        order, _ = order_service.create_order(dto)
        return order

    return _make
