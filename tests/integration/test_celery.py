"""Integration tests for the Celery setup and the notification task."""

import pytest

from modules.orders.tasks import notify_status_change

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def _celery_eager(settings):
    """Run tasks synchronously in the test process."""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True


class TestCeleryConfig:
    def test_celery_app_is_importable(self):
        from config.celery import app

        assert app.main == "storefront"

    def test_celery_app_exported_from_init(self):
        from config import celery_app

        assert celery_app.main == "storefront"

    def test_celery_serializer_is_json(self, settings):
        assert settings.CELERY_TASK_SERIALIZER == "json"
        assert settings.CELERY_RESULT_SERIALIZER == "json"
        assert settings.CELERY_ACCEPT_CONTENT == ["json"]

    def test_celery_timezone_matches_django(self, settings):
        assert settings.CELERY_TIMEZONE == settings.TIME_ZONE


class TestNotifyStatusChange:
    def test_delay_returns_customer_message(self):
        result = notify_status_change.delay("order-1", "SHIPPED", "OUT_FOR_DELIVERY")

        assert result.successful()
        assert result.result == {
            "order_id": "order-1",
            "status": "OUT_FOR_DELIVERY",
            "message": "Your order is now Out for Delivery.",
        }

    def test_direct_call(self):
        output = notify_status_change("order-2", "PLACED", "PACKED")

        assert output["message"] == "Your order is now Packed."
