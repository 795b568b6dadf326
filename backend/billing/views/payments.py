"""Payment endpoints: UPI deep links, Razorpay checkout callbacks and payment history."""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from django.db.models import Count, Q, Sum
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import ReadOnlyModelViewSet

from billing.exceptions import BillingError, PersistenceFailure
from billing.filters import PaymentHistoryFilter, brand_payments_q
from billing.models import Payment, PaymentGateway
from billing.observability.logging import log_billing_event
from billing.observability.metrics import BILLING_REQUEST_COUNT, BILLING_REQUEST_LATENCY
from billing.pagination import BoundedPageNumberPagination
from billing.permissions import owned_brand_ids
from billing.serializers import (
    PaymentHistorySerializer,
    RazorpayVerifyRequestSerializer,
    SubscriptionSerializer,
    UPICreateRequestSerializer,
    UPIVerifyRequestSerializer,
)
from billing.services.gateways import build_adapter
from billing.services.metadata import PaymentMetadataRecord
from billing.services.orchestrator import OutcomeStatus, build_orchestrator

logger = logging.getLogger(__name__)


def request_id_for(request) -> str:
    return request.headers.get("X-Request-ID") or uuid.uuid4().hex


class BillingMetricsMixin:
    endpoint_label: str = "billing"
    method: str = "POST"

    def _record_request(self, status: int) -> None:
        BILLING_REQUEST_COUNT.labels(
            endpoint=self.endpoint_label,
            method=self.method,
            status=str(status),
        ).inc()

    def _success_response(
        self,
        payload,
        *,
        status: int,
        message: str,
        brand_id: str | None = None,
        request_id: str | None = None,
        actor: str | None = None,
    ):
        self._record_request(status)
        log_billing_event(message=message, brand_id=brand_id, request_id=request_id, actor=actor)
        return Response(payload, status=status)

    def _error_response(
        self,
        *,
        status: int,
        code: str,
        message: str,
        details: dict | None = None,
        brand_id: str | None = None,
        request_id: str | None = None,
    ):
        self._record_request(status)
        log_billing_event(
            message=message,
            brand_id=brand_id,
            request_id=request_id,
            extra={"code": code, "details": details or {}},
            level=logging.ERROR if status >= 500 else logging.INFO,
        )
        payload = {"code": code, "message": message, "details": details or {}}
        return Response(payload, status=status)

    def _billing_error_response(self, exc: BillingError, *, brand_id=None, request_id=None):
        if isinstance(exc, PersistenceFailure):
            logger.error("Billing persistence failure (request_id=%s): %s", request_id, exc.details)
        return self._error_response(
            status=exc.http_status,
            code=exc.code,
            message=exc.message,
            details=exc.details,
            brand_id=brand_id,
            request_id=request_id,
        )

    def _invalid_request_response(self, serializer, *, request_id=None):
        return self._error_response(
            status=400,
            code="invalid_request",
            message="Invalid request data.",
            details=serializer.errors,
            request_id=request_id,
        )


class PaymentHistoryViewSet(ReadOnlyModelViewSet):
    """
    Payment history for the authenticated user.

    Super admins see every payment and may narrow by ``brand_id``; other users
    see payments belonging to the brands they own.
    """

    serializer_class = PaymentHistorySerializer
    permission_classes = [IsAuthenticated]
    pagination_class = BoundedPageNumberPagination
    filterset_class = PaymentHistoryFilter
    ordering_fields = ("created_at", "amount", "status")
    ordering = ("-created_at",)

    def get_queryset(self):
        user = self.request.user
        queryset = Payment.objects.select_related(
            "subscription",
            "subscription__plan",
            "subscription__brand",
            "invoice",
        )
        if not user.is_super_admin:
            queryset = queryset.filter(brand_payments_q(owned_brand_ids(user)))
        return queryset.order_by("-created_at")

    def list(self, request, *args, **kwargs):
        response = super().list(request, *args, **kwargs)
        queryset = self.filter_queryset(self.get_queryset())
        totals = queryset.aggregate(
            total_paid=Sum("amount", filter=Q(status=Payment.Status.COMPLETED)),
            total_transactions=Count("id", filter=Q(status=Payment.Status.COMPLETED)),
        )
        response.data["summary"] = {
            "totalPaid": str((totals["total_paid"] or Decimal("0")).quantize(Decimal("0.01"))),
            "totalTransactions": totals["total_transactions"],
        }
        return response


class UPIPaymentCreateView(BillingMetricsMixin, APIView):
    permission_classes = [IsAuthenticated]
    endpoint_label = "payments.upi.create"

    def post(self, request):
        request_id = request_id_for(request)
        with BILLING_REQUEST_LATENCY.labels(endpoint=self.endpoint_label, method=self.method).time():
            serializer = UPICreateRequestSerializer(data=request.data)
            if not serializer.is_valid():
                return self._invalid_request_response(serializer, request_id=request_id)
            data = serializer.validated_data

            orchestrator = build_orchestrator(request_id=request_id)
            try:
                intent = orchestrator.initiate_upi_payment(
                    data["plan_id"],
                    data["brand_id"],
                    data["upi_id"],
                    request.user,
                )
            except BillingError as exc:
                return self._billing_error_response(exc, brand_id=str(data["brand_id"]), request_id=request_id)

            payload = {
                "success": True,
                "transactionId": intent.transaction_id,
                "upiLink": intent.upi_link,
                "qrData": intent.upi_link,
                "amount": str(intent.amount),
                "currency": intent.currency,
                "paymentId": str(intent.payment.pk),
                "subscriptionId": str(intent.subscription.pk),
                "message": "Complete payment using your UPI app",
            }
            return self._success_response(
                payload,
                status=201,
                message="upi_payment_created",
                brand_id=str(data["brand_id"]),
                request_id=request_id,
                actor=request.user.get_username(),
            )


class UPIPaymentVerifyView(BillingMetricsMixin, APIView):
    """Record the payer's UTR for a UPI payment, or report its status when none is given."""

    permission_classes = [IsAuthenticated]
    endpoint_label = "payments.upi.verify"

    def post(self, request):
        request_id = request_id_for(request)
        with BILLING_REQUEST_LATENCY.labels(endpoint=self.endpoint_label, method=self.method).time():
            serializer = UPIVerifyRequestSerializer(data=request.data)
            if not serializer.is_valid():
                return self._invalid_request_response(serializer, request_id=request_id)
            data = serializer.validated_data

            orchestrator = build_orchestrator(request_id=request_id)
            try:
                if not data.get("utr"):
                    payment = orchestrator.get_upi_status(data["transaction_id"], request.user)
                    return self._success_response(
                        {
                            "success": True,
                            "status": payment.status,
                            "message": _status_message(payment),
                        },
                        status=200,
                        message="upi_payment_status",
                        request_id=request_id,
                    )

                event = build_adapter(PaymentGateway.UPI).user_confirmation(
                    transaction_id=data["transaction_id"],
                    utr=data["utr"],
                    user_id=request.user.pk,
                )
                outcome = orchestrator.handle_payment_event(event, actor=request.user)
            except BillingError as exc:
                return self._billing_error_response(exc, request_id=request_id)

            payment = outcome.payment
            payment.refresh_from_db()
            subscription = payment.subscription
            subscription.refresh_from_db()
            messages = {
                OutcomeStatus.PROCESSED: "Payment verified successfully",
                OutcomeStatus.ALREADY_PROCESSED: "Payment was already verified",
                OutcomeStatus.PENDING_RECONCILIATION: "Payment reference received and awaiting verification",
                OutcomeStatus.IGNORED: outcome.detail or "Payment cannot be verified",
            }
            payload = {
                "success": outcome.status is not OutcomeStatus.IGNORED,
                "status": payment.status,
                "message": messages[outcome.status],
                "subscription": {
                    "id": str(subscription.pk),
                    "plan": subscription.plan.name,
                    "status": subscription.status,
                    "endDate": subscription.end_date,
                    "licenseKey": subscription.license_key,
                },
            }
            return self._success_response(
                payload,
                status=200,
                message="upi_payment_verified",
                request_id=request_id,
                actor=request.user.get_username(),
            )


def _status_message(payment: Payment) -> str:
    details = PaymentMetadataRecord.from_json(payment.metadata).details
    if payment.status == Payment.Status.PENDING and getattr(details, "awaiting_reconciliation", False):
        return "Payment reference received and awaiting verification"
    if payment.status == Payment.Status.PENDING:
        return "Payment is pending verification"
    return f"Payment is {payment.status.lower()}"


class RazorpayPaymentVerifyView(BillingMetricsMixin, APIView):
    """Razorpay Checkout success handler callback."""

    permission_classes = [IsAuthenticated]
    endpoint_label = "payments.razorpay.verify"

    def post(self, request):
        request_id = request_id_for(request)
        with BILLING_REQUEST_LATENCY.labels(endpoint=self.endpoint_label, method=self.method).time():
            serializer = RazorpayVerifyRequestSerializer(data=request.data)
            if not serializer.is_valid():
                return self._invalid_request_response(serializer, request_id=request_id)
            data = serializer.validated_data

            try:
                event = build_adapter(PaymentGateway.RAZORPAY).verify_checkout(
                    data["order_id"],
                    data["payment_id"],
                    data["signature"],
                )
                outcome = build_orchestrator(request_id=request_id).handle_payment_event(event, actor=request.user)
            except BillingError as exc:
                return self._billing_error_response(exc, request_id=request_id)

            if outcome.status is OutcomeStatus.IGNORED:
                return self._error_response(
                    status=400,
                    code="invalid_order_metadata",
                    message="Order is not linked to a plan and brand.",
                    details={"reason": outcome.detail},
                    request_id=request_id,
                )

            payment = outcome.payment
            payment.refresh_from_db()
            subscription = outcome.subscription
            subscription.refresh_from_db()
            invoice = getattr(payment, "invoice", None)
            payload = {
                "success": True,
                "subscription": SubscriptionSerializer(subscription).data,
                "invoice": {"id": str(invoice.pk), "invoiceNumber": invoice.invoice_number} if invoice else None,
            }
            return self._success_response(
                payload,
                status=200,
                message="razorpay_payment_verified",
                request_id=request_id,
                actor=request.user.get_username(),
            )
