"""API tests for checkout and order lookup."""

from __future__ import annotations

import uuid

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.orders.models import Order

pytestmark = pytest.mark.integration

User = get_user_model()

URL = "/api/v1/orders/"


class TestCreateOrder:
    def test_places_order_with_server_side_totals(self, customer_client, checkout_payload):
        response = customer_client.post(URL, checkout_payload, format="json")

        assert response.status_code == 201
        body = response.data
        assert body["status"] == "PLACED"
        assert body["status_label"] == "Placed"
        assert body["order_number"].startswith("ORD-")
        assert body["subtotal"] == "2000.00"
        assert body["tax"] == "360.00"
        assert body["delivery_fee"] == "79.00"
        assert body["grand_total"] == "2439.00"
        assert body["payment_method"] == "cod"
        assert body["items"][0]["line_total"] == "2000.00"
        assert [h["new_status"] for h in body["status_history"]] == ["PLACED"]

    def test_coupon_applied(self, customer_client, checkout_payload):
        checkout_payload["coupon_code"] = "save10"

        response = customer_client.post(URL, checkout_payload, format="json")

        assert response.status_code == 201
        assert response.data["discount"] == "200.00"
        assert response.data["tax"] == "324.00"
        assert response.data["grand_total"] == "2203.00"

    def test_free_delivery_at_threshold(self, customer_client, checkout_payload):
        checkout_payload["items"][0]["quantity"] = 4

        response = customer_client.post(URL, checkout_payload, format="json")

        assert response.data["delivery_fee"] == "0.00"
        assert response.data["grand_total"] == "4720.00"

    def test_records_customer(self, customer_client, customer_user, checkout_payload):
        response = customer_client.post(URL, checkout_payload, format="json")

        order = Order.objects.get(pk=response.data["id"])
        assert order.placed_by == customer_user

    @pytest.mark.parametrize(
        "mutate",
        [
            pytest.param(lambda p: p.update(items=[]), id="empty-cart"),
            pytest.param(lambda p: p["items"][0].update(quantity=0), id="zero-qty"),
            pytest.param(
                lambda p: p["items"][0].update(unit_price="-1.00"), id="negative-price"
            ),
            pytest.param(lambda p: p.update(coupon_code="BOGUS"), id="unknown-coupon"),
        ],
    )
    def test_pricing_errors_rejected(self, customer_client, checkout_payload, mutate):
        mutate(checkout_payload)

        response = customer_client.post(URL, checkout_payload, format="json")

        assert response.status_code == 400
        assert "detail" in response.data
        assert Order.objects.count() == 0

    def test_blank_shipping_field_rejected(self, customer_client, checkout_payload):
        checkout_payload["shipping"]["pincode"] = ""

        response = customer_client.post(URL, checkout_payload, format="json")

        assert response.status_code == 400
        assert "shipping" in response.data

    def test_requires_authentication(self, api_client, checkout_payload):
        response = api_client.post(URL, checkout_payload, format="json")
        assert response.status_code == 401

    def test_idempotency_key_returns_original(self, customer_client, checkout_payload):
        headers = {"HTTP_IDEMPOTENCY_KEY": "checkout-7f3a"}

        first = customer_client.post(URL, checkout_payload, format="json", **headers)
        second = customer_client.post(URL, checkout_payload, format="json", **headers)

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.data["id"] == first.data["id"]
        assert Order.objects.count() == 1

    def test_idempotency_key_is_per_customer(self, customer_client, checkout_payload):
        other = APIClient()
        other.force_authenticate(
            user=User.objects.create_user(username="neighbour", password="testpass123")
        )
        headers = {"HTTP_IDEMPOTENCY_KEY": "checkout-shared"}

        mine = customer_client.post(URL, checkout_payload, format="json", **headers)
        theirs = other.post(URL, checkout_payload, format="json", **headers)

        assert (mine.status_code, theirs.status_code) == (201, 201)
        assert theirs.data["id"] != mine.data["id"]
        assert theirs.data["order_number"] != mine.data["order_number"]
        assert Order.objects.count() == 2

    def test_client_totals_are_ignored(self, customer_client, checkout_payload):
        checkout_payload["grand_total"] = "1.00"

        response = customer_client.post(URL, checkout_payload, format="json")

        assert response.data["grand_total"] == "2439.00"


class TestRetrieveOrder:
    def test_customer_can_track(self, customer_client, make_order):
        order = make_order()

        response = customer_client.get(f"{URL}{order.id}/")

        assert response.status_code == 200
        assert response.data["id"] == str(order.id)
        assert response.data["full_name"] == "Aarav Sharma"

    @pytest.mark.parametrize("pk", [str(uuid.uuid4()), "not-a-uuid"])
    def test_unknown_order(self, customer_client, pk):
        response = customer_client.get(f"{URL}{pk}/")
        assert response.status_code == 404
