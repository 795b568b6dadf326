"""Gateway adapter registry."""
from __future__ import annotations

from django.conf import settings

from billing.models import PaymentGateway
from billing.services.gateways.base import GatewayAdapter
from billing.services.gateways.razorpay_gateway import RazorpayGatewayAdapter
from billing.services.gateways.stripe_gateway import StripeGatewayAdapter
from billing.services.gateways.upi import UPIGatewayAdapter

__all__ = [
    "GatewayAdapter",
    "RazorpayGatewayAdapter",
    "StripeGatewayAdapter",
    "UPIGatewayAdapter",
    "build_adapter",
]


def build_adapter(gateway: str):
    """Build the adapter for ``gateway`` from the current settings."""
    if gateway == PaymentGateway.STRIPE:
        return StripeGatewayAdapter(
            webhook_secret=getattr(settings, "STRIPE_WEBHOOK_SECRET", ""),
            tolerance=getattr(settings, "STRIPE_WEBHOOK_TOLERANCE", 300),
        )
    if gateway == PaymentGateway.RAZORPAY:
        return RazorpayGatewayAdapter(
            key_id=getattr(settings, "RAZORPAY_KEY_ID", ""),
            key_secret=getattr(settings, "RAZORPAY_KEY_SECRET", ""),
            webhook_secret=getattr(settings, "RAZORPAY_WEBHOOK_SECRET", ""),
            api_base_url=getattr(settings, "RAZORPAY_API_BASE_URL", "https://api.razorpay.com/v1"),
            timeout=getattr(settings, "RAZORPAY_API_TIMEOUT_SECONDS", 10),
        )
    if gateway == PaymentGateway.UPI:
        return UPIGatewayAdapter()
    raise ValueError(f"Unknown payment gateway: {gateway}")
