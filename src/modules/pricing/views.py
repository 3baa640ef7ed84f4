"""Cart quote endpoint.

Runs the same computation checkout uses, so the cart preview and the
amount charged can never disagree.
"""

from __future__ import annotations

import structlog
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.pricing.coupons import resolve_coupon
from modules.pricing.dtos import LineItemDTO
from modules.pricing.engine import compute_totals
from modules.pricing.exceptions import PricingValidationError
from modules.pricing.serializers import QuoteRequestSerializer, TotalsSerializer

logger = structlog.get_logger(__name__)


class QuoteView(APIView):
    """POST /api/v1/pricing/quote/"""

    def post(self, request: Request) -> Response:
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            coupon = resolve_coupon(data.get("coupon_code"))
            totals = compute_totals(
                [LineItemDTO(**item) for item in data["items"]],
                coupon,
                allow_empty=True,
            )
        except PricingValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info("pricing.quoted", grand_total=str(totals.grand_total))
        return Response(TotalsSerializer(totals).data)
