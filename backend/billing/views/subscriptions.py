"""Plan catalog, subscription detail and plan change endpoints."""
from __future__ import annotations

from rest_framework.generics import ListAPIView, RetrieveAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from billing.exceptions import BillingError
from billing.models import Subscription, SubscriptionPlan
from billing.observability.metrics import BILLING_REQUEST_LATENCY
from billing.permissions import CanViewSubscription
from billing.serializers import (
    ChangePlanRequestSerializer,
    SubscriptionPlanSerializer,
    SubscriptionSerializer,
)
from billing.services.orchestrator import build_orchestrator
from billing.views.payments import BillingMetricsMixin, request_id_for


class SubscriptionPlanListView(ListAPIView):
    """Active plans ordered by price."""

    serializer_class = SubscriptionPlanSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = None
    filter_backends = []

    def get_queryset(self):
        return SubscriptionPlan.objects.filter(is_active=True).order_by("price", "name")


class SubscriptionDetailView(RetrieveAPIView):
    serializer_class = SubscriptionSerializer
    permission_classes = [IsAuthenticated, CanViewSubscription]
    queryset = Subscription.objects.select_related("plan")
    lookup_url_kwarg = "subscription_id"
    filter_backends = []


class SubscriptionChangePlanView(BillingMetricsMixin, APIView):
    """
    Upgrade or downgrade a subscription.

    Upgrades apply immediately with credit for unused days; downgrades are
    scheduled for the end of the paid period.
    """

    permission_classes = [IsAuthenticated]
    endpoint_label = "subscriptions.change_plan"

    def post(self, request, subscription_id):
        request_id = request_id_for(request)
        with BILLING_REQUEST_LATENCY.labels(endpoint=self.endpoint_label, method=self.method).time():
            serializer = ChangePlanRequestSerializer(data=request.data)
            if not serializer.is_valid():
                return self._invalid_request_response(serializer, request_id=request_id)

            orchestrator = build_orchestrator(request_id=request_id)
            try:
                outcome = orchestrator.change_plan(
                    subscription_id,
                    serializer.validated_data["new_plan_id"],
                    request.user,
                )
            except BillingError as exc:
                return self._billing_error_response(exc, request_id=request_id)

            payload = {
                "subscription": SubscriptionSerializer(outcome.subscription).data,
                "message": outcome.message,
                "effectiveDate": outcome.effective_date,
                "isUpgrade": outcome.transition.is_upgrade,
                "creditDays": outcome.transition.credit_days,
            }
            return self._success_response(
                payload,
                status=200,
                message="subscription_plan_changed",
                request_id=request_id,
                actor=request.user.get_username(),
            )
