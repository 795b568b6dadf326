"""URL routes for billing endpoints."""
from django.urls import path

from .views import (
    PaymentHistoryViewSet,
    RazorpayPaymentVerifyView,
    SubscriptionChangePlanView,
    SubscriptionDetailView,
    SubscriptionPlanListView,
    UPIPaymentCreateView,
    UPIPaymentVerifyView,
)
from .views_webhook import RazorpayWebhookView, StripeWebhookView

app_name = "billing"

urlpatterns = [
    path("payments/stripe/webhook/", StripeWebhookView.as_view(), name="stripe-webhook"),
    path("payments/razorpay/webhook/", RazorpayWebhookView.as_view(), name="razorpay-webhook"),
    path("payments/razorpay/verify/", RazorpayPaymentVerifyView.as_view(), name="razorpay-verify"),
    path("payments/upi/create/", UPIPaymentCreateView.as_view(), name="upi-create"),
    path("payments/upi/verify/", UPIPaymentVerifyView.as_view(), name="upi-verify"),
    path(
        "payments/history/",
        PaymentHistoryViewSet.as_view({"get": "list"}),
        name="payment-history",
    ),
    path("subscription-plans/", SubscriptionPlanListView.as_view(), name="subscription-plans"),
    path(
        "subscriptions/<uuid:subscription_id>/",
        SubscriptionDetailView.as_view(),
        name="subscription-detail",
    ),
    path(
        "subscriptions/<uuid:subscription_id>/change-plan/",
        SubscriptionChangePlanView.as_view(),
        name="subscription-change-plan",
    ),
]
