import logging
import uuid

import pytest

pytestmark = pytest.mark.integration


class TestCorrelationIdMiddleware:
    def test_returns_provided_request_id(self, client):
        custom_id = "my-custom-request-id-123"
        response = client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        assert response["X-Request-ID"] == custom_id

    def test_generates_uuid_when_no_request_id(self, client):
        response = client.get("/health")
        request_id = response["X-Request-ID"]
        parsed = uuid.UUID(request_id, version=4)
        assert str(parsed) == request_id

    def test_api_responses_carry_request_id(self, api_client_with_correlation):
        api_client, cid = api_client_with_correlation
        response = api_client.get("/api/v1/orders/")
        assert response.status_code == 401
        assert response["X-Request-ID"] == cid

    def test_correlation_id_in_logs(self, client, caplog):
        custom_id = "log-test-correlation-456"
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        found = any(custom_id in record.getMessage() for record in caplog.records)
        assert found, (
            f"correlation_id '{custom_id}' not found in log records: "
            f"{[r.getMessage() for r in caplog.records]}"
        )


class TestSensitiveDataMasking:
    def test_mobile_number_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "phone": "9876543210"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "9876543210" not in result["phone"]
        assert "***MASKED***" in result["phone"]

    def test_mobile_number_with_country_code_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "Calling +91 9876543210 for delivery"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "9876543210" not in result["event"]

    def test_password_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]

    def test_pincode_and_order_number_unchanged(self):
        from config.settings import mask_sensitive_data

        event_dict = {
            "event": "order.created",
            "pincode": "411001",
            "order_number": "ORD-20260101-A1B2C3",
        }
        result = mask_sensitive_data(None, None, event_dict)
        assert result["pincode"] == "411001"
        assert result["order_number"] == "ORD-20260101-A1B2C3"
        assert result["event"] == "order.created"
