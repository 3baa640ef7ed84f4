"""Pricing URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.pricing.views import QuoteView

urlpatterns = [
    path("pricing/quote/", QuoteView.as_view(), name="pricing-quote"),
]
