"""DRF serializers for billing flows (plans, subscriptions, payments, plan changes)."""
from __future__ import annotations

from typing import Any, Dict

from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from billing.constants import UPI_ID_PATTERN, UTR_PATTERN
from billing.models import Invoice, Payment, Subscription, SubscriptionPlan


class SubscriptionPlanSerializer(serializers.ModelSerializer):
    billingPeriod = serializers.CharField(source="billing_period", read_only=True)
    periodDays = serializers.IntegerField(source="period_days", read_only=True)
    featureFlags = serializers.JSONField(source="feature_flags", read_only=True)
    isActive = serializers.BooleanField(source="is_active", read_only=True)

    class Meta:
        model = SubscriptionPlan
        fields = ["id", "code", "name", "price", "billingPeriod", "periodDays", "featureFlags", "isActive"]
        read_only_fields = fields


class SubscriptionSerializer(serializers.ModelSerializer):
    plan = SubscriptionPlanSerializer(read_only=True)
    startDate = serializers.DateTimeField(source="start_date", read_only=True)
    endDate = serializers.DateTimeField(source="end_date", read_only=True)
    planEffectiveDate = serializers.DateTimeField(source="plan_effective_date", read_only=True)
    autoRenew = serializers.BooleanField(source="auto_renew", read_only=True)
    licenseKey = serializers.CharField(source="license_key", read_only=True)
    paymentGateway = serializers.CharField(source="payment_gateway", read_only=True)
    externalSubscriptionId = serializers.CharField(source="external_subscription_id", read_only=True)
    cancelledAt = serializers.DateTimeField(source="cancelled_at", read_only=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Subscription
        fields = [
            "id",
            "plan",
            "status",
            "startDate",
            "endDate",
            "planEffectiveDate",
            "autoRenew",
            "licenseKey",
            "paymentGateway",
            "externalSubscriptionId",
            "version",
            "cancelledAt",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields


class InvoiceSummarySerializer(serializers.ModelSerializer):
    invoiceNumber = serializers.CharField(source="invoice_number", read_only=True)
    paidAt = serializers.DateTimeField(source="paid_at", read_only=True)
    cancelledAt = serializers.DateTimeField(source="cancelled_at", read_only=True)

    class Meta:
        model = Invoice
        fields = ["id", "invoiceNumber", "amount", "currency", "status", "paidAt", "cancelledAt"]
        read_only_fields = fields


class PaymentHistorySerializer(serializers.ModelSerializer):
    paymentGateway = serializers.CharField(source="payment_gateway", read_only=True)
    externalPaymentId = serializers.CharField(source="external_payment_id", read_only=True)
    subscriptionId = serializers.UUIDField(source="subscription_id", read_only=True)
    plan = serializers.CharField(source="subscription.plan.name", read_only=True)
    billingPeriod = serializers.CharField(source="subscription.plan.billing_period", read_only=True)
    brand = serializers.SerializerMethodField()
    invoice = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Payment
        fields = [
            "id",
            "amount",
            "currency",
            "status",
            "paymentGateway",
            "externalPaymentId",
            "subscriptionId",
            "plan",
            "billingPeriod",
            "brand",
            "invoice",
            "createdAt",
        ]
        read_only_fields = fields

    def get_brand(self, obj: Payment):
        brand = getattr(obj.subscription, "brand", None)
        if brand is None:
            return None
        return {"id": str(brand.pk), "name": brand.name}

    def get_invoice(self, obj: Payment):
        invoice = getattr(obj, "invoice", None)
        if invoice is None:
            return None
        return InvoiceSummarySerializer(invoice).data


class ChangePlanRequestSerializer(serializers.Serializer):
    newPlanId = serializers.UUIDField(source="new_plan_id")


class UPICreateRequestSerializer(serializers.Serializer):
    planId = serializers.UUIDField(source="plan_id")
    brandId = serializers.UUIDField(source="brand_id")
    upiId = serializers.CharField(source="upi_id", max_length=320)

    def validate_upiId(self, value: str) -> str:
        value = value.strip()
        if not UPI_ID_PATTERN.match(value):
            raise serializers.ValidationError(_("Enter a valid UPI ID, for example name@bank."))
        return value


class UPIVerifyRequestSerializer(serializers.Serializer):
    transactionId = serializers.CharField(source="transaction_id", max_length=64)
    upiTransactionId = serializers.CharField(source="utr", required=False, allow_null=True, allow_blank=True)

    def validate_upiTransactionId(self, value):
        if value in (None, ""):
            return None
        value = value.strip()
        if not UTR_PATTERN.match(value):
            raise serializers.ValidationError(_("UPI transaction reference must be 6-35 letters or digits."))
        return value


class RazorpayVerifyRequestSerializer(serializers.Serializer):
    orderId = serializers.CharField(source="order_id", max_length=64)
    paymentId = serializers.CharField(source="payment_id", max_length=64)
    signature = serializers.CharField(max_length=128)

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        attrs = super().validate(attrs)
        return {key: value.strip() for key, value in attrs.items()}
