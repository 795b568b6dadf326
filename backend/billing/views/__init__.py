"""Billing API views."""
from .payments import (
    PaymentHistoryViewSet,
    RazorpayPaymentVerifyView,
    UPIPaymentCreateView,
    UPIPaymentVerifyView,
)
from .subscriptions import SubscriptionChangePlanView, SubscriptionDetailView, SubscriptionPlanListView

__all__ = [
    "PaymentHistoryViewSet",
    "RazorpayPaymentVerifyView",
    "SubscriptionChangePlanView",
    "SubscriptionDetailView",
    "SubscriptionPlanListView",
    "UPIPaymentCreateView",
    "UPIPaymentVerifyView",
]
