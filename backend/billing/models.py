"""Billing models for the plan catalog, subscriptions, payments, invoices and audit trails."""
import uuid
from datetime import timedelta

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q

from billing.constants import PERIOD_DAYS


def _default_currency() -> str:
    """Resolve default billing currency from settings."""
    return getattr(settings, "BILLING_CURRENCY", "INR").upper()


class BillingPeriod(models.TextChoices):
    MONTHLY = "MONTHLY", "Monthly"
    YEARLY = "YEARLY", "Yearly"


class PaymentGateway(models.TextChoices):
    STRIPE = "STRIPE", "Stripe"
    RAZORPAY = "RAZORPAY", "Razorpay"
    UPI = "UPI", "UPI"


class SubscriptionPlan(models.Model):
    """Catalog entry describing a purchasable plan and its feature flags."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.SlugField(max_length=50, unique=True, help_text="Stable key used when seeding plans")
    name = models.CharField(max_length=100)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text="Price per billing period in the billing currency",
    )
    billing_period = models.CharField(
        max_length=10,
        choices=BillingPeriod.choices,
        default=BillingPeriod.MONTHLY,
    )
    feature_flags = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive plans cannot be newly subscribed to",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "billing_subscription_plan"
        verbose_name = "Subscription plan"
        verbose_name_plural = "Subscription plans"
        ordering = ["price", "name"]
        constraints = [
            models.CheckConstraint(condition=Q(price__gt=0), name="billing_plan_price_positive"),
        ]

    @property
    def period_days(self) -> int:
        return PERIOD_DAYS[self.billing_period]

    @property
    def period(self) -> timedelta:
        return timedelta(days=self.period_days)

    def __str__(self):
        return f"SubscriptionPlan<{self.name}>"


class Subscription(models.Model):
    """
    A brand's entitlement to a plan for a bounded period.

    ``end_date`` is exclusive. ``version`` is bumped on every mutation and
    guards plan changes against concurrent writers.
    """

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        ACTIVE = "ACTIVE", "Active"
        CANCELLED = "CANCELLED", "Cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    plan = models.ForeignKey(
        SubscriptionPlan,
        on_delete=models.PROTECT,
        related_name="subscriptions",
    )
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    plan_effective_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the current plan takes effect; later than now for scheduled downgrades.",
    )
    auto_renew = models.BooleanField(default=True)
    license_key = models.CharField(max_length=19, unique=True, null=True, blank=True)
    payment_gateway = models.CharField(max_length=16, choices=PaymentGateway.choices)
    external_subscription_id = models.CharField(
        max_length=255,
        blank=True,
        db_index=True,
        help_text="Gateway order / intent / transaction reference",
    )
    version = models.PositiveIntegerField(default=1)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "billing_subscription"
        verbose_name = "Subscription"
        verbose_name_plural = "Subscriptions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "end_date"], name="billing_sub_status_end_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__gt=F("start_date")),
                name="billing_subscription_end_after_start",
            ),
        ]

    def __str__(self):
        return f"Subscription<{self.id}:{self.status}>"


class Payment(models.Model):
    """A single charge attempt against a subscription."""

    class Status(models.TextChoices):
        PENDING = "PENDING", "Pending"
        COMPLETED = "COMPLETED", "Completed"
        FAILED = "FAILED", "Failed"
        REFUNDED = "REFUNDED", "Refunded"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default=_default_currency)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    payment_gateway = models.CharField(max_length=16, choices=PaymentGateway.choices)
    external_payment_id = models.CharField(max_length=255)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "billing_payment"
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["subscription", "status"], name="billing_payment_sub_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["payment_gateway", "external_payment_id"],
                name="billing_payment_gateway_external_uniq",
            ),
        ]

    def __str__(self):
        return f"Payment<{self.payment_gateway}:{self.external_payment_id}:{self.status}>"


class Invoice(models.Model):
    class Status(models.TextChoices):
        PAID = "PAID", "Paid"
        CANCELLED = "CANCELLED", "Cancelled"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.PROTECT,
        related_name="invoices",
    )
    payment = models.OneToOneField(
        Payment,
        on_delete=models.PROTECT,
        related_name="invoice",
    )
    invoice_number = models.CharField(max_length=32, unique=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default=_default_currency)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PAID)
    due_date = models.DateTimeField()
    paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "billing_invoice"
        verbose_name = "Invoice"
        verbose_name_plural = "Invoices"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Invoice<{self.invoice_number}:{self.status}>"


class PlanChange(models.Model):
    """History of applied plan upgrades and scheduled downgrades."""

    class ChangeType(models.TextChoices):
        UPGRADE = "UPGRADE", "Upgrade"
        DOWNGRADE = "DOWNGRADE", "Downgrade"

    id = models.BigAutoField(primary_key=True)
    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.CASCADE,
        related_name="plan_changes",
    )
    from_plan = models.ForeignKey(
        SubscriptionPlan,
        on_delete=models.PROTECT,
        related_name="+",
    )
    to_plan = models.ForeignKey(
        SubscriptionPlan,
        on_delete=models.PROTECT,
        related_name="+",
    )
    change_type = models.CharField(max_length=16, choices=ChangeType.choices)
    effective_date = models.DateTimeField()
    previous_end_date = models.DateTimeField()
    new_end_date = models.DateTimeField()
    credit_days = models.PositiveIntegerField(default=0)
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="plan_changes",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "billing_plan_change"
        verbose_name = "Plan change"
        verbose_name_plural = "Plan changes"
        ordering = ["-created_at"]

    def __str__(self):
        return f"PlanChange<{self.subscription_id}:{self.change_type}>"


class WebhookEventLog(models.Model):
    """Keeps track of received gateway deliveries to guarantee idempotency."""

    class Status(models.TextChoices):
        RECEIVED = "received", "Received"
        PROCESSED = "processed", "Processed"
        IGNORED = "ignored", "Ignored"
        FAILED = "failed", "Failed"

    id = models.BigAutoField(primary_key=True)
    gateway = models.CharField(max_length=16, choices=PaymentGateway.choices)
    event_id = models.CharField(max_length=255)
    payload_hash = models.CharField(
        max_length=64,
        blank=True,
        help_text="SHA256 of the raw payload for drift detection.",
    )
    event_type = models.CharField(max_length=255, blank=True)
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.RECEIVED,
    )
    last_error = models.TextField(blank=True)
    handled = models.BooleanField(
        default=False,
        help_text="True once the event has been fully processed.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "billing_webhook_event_log"
        verbose_name = "Webhook event log"
        verbose_name_plural = "Webhook event logs"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="webhook_event_status_idx"),
            models.Index(fields=["event_type"], name="webhook_event_type_idx"),
        ]
        constraints = [
            models.UniqueConstraint(fields=["gateway", "event_id"], name="webhook_event_gateway_uniq"),
        ]

    def __str__(self):
        return f"WebhookEventLog<{self.gateway}:{self.event_id}:{self.status}>"


class BillingAuditLog(models.Model):
    """Structured audit log for key billing lifecycle events."""

    id = models.BigAutoField(primary_key=True)
    brand = models.ForeignKey(
        "brands.Brand",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="billing_audit_logs",
        help_text="Brand associated with the event, when known.",
    )
    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
    )
    event_type = models.CharField(max_length=100, help_text="Classification of the billing event.")
    gateway_reference = models.CharField(
        max_length=255,
        blank=True,
        help_text="Gateway object identifier tied to the event.",
    )
    actor = models.CharField(
        max_length=255,
        blank=True,
        help_text="Auth user or system actor responsible.",
    )
    request_id = models.CharField(
        max_length=255,
        blank=True,
        help_text="Correlation or request identifier for tracing.",
    )
    details = models.JSONField(
        blank=True,
        null=True,
        help_text="Structured data describing the event.",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "billing_audit_log"
        verbose_name = "Billing audit log"
        verbose_name_plural = "Billing audit logs"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["event_type"], name="billing_audit_event_idx"),
            models.Index(fields=["gateway_reference"], name="billing_audit_gateway_ref_idx"),
        ]

    def __str__(self):
        return f"BillingAuditLog<{self.event_type}:{self.gateway_reference}>"


class BillingIdempotencyKey(models.Model):
    """Stores processed idempotency keys for write endpoints."""

    class LastResult(models.TextChoices):
        SUCCESS = "success", "Success"
        FAILURE = "failure", "Failure"
        PENDING = "pending", "Pending"

    id = models.BigAutoField(primary_key=True)
    key = models.CharField(max_length=255, unique=True)
    request_hash = models.CharField(
        max_length=64,
        help_text="Hash of method, path, and payload.",
    )
    last_result = models.CharField(
        max_length=20,
        choices=LastResult.choices,
        default=LastResult.PENDING,
    )
    response_code = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    last_seen_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "billing_idempotency_key"
        verbose_name = "Billing idempotency key"
        verbose_name_plural = "Billing idempotency keys"
        ordering = ["-last_seen_at"]

    def __str__(self):
        return f"BillingIdempotencyKey<{self.key}>"
