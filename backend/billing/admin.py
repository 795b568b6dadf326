from django.contrib import admin, messages
from django.urls import reverse
from django.utils.html import format_html

from .exceptions import BillingError
from .models import (
    BillingAuditLog,
    BillingIdempotencyKey,
    Invoice,
    Payment,
    PaymentGateway,
    PlanChange,
    Subscription,
    SubscriptionPlan,
    WebhookEventLog,
)
from .services.orchestrator import OutcomeStatus, build_orchestrator


@admin.register(SubscriptionPlan)
class SubscriptionPlanAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "price", "billing_period", "is_active", "updated_at")
    search_fields = ("name", "code")
    list_filter = ("billing_period", "is_active")
    readonly_fields = ("id", "created_at", "updated_at")
    ordering = ("price", "name")

    fieldsets = (
        ("Plan", {"fields": ("id", "code", "name", "is_active")}),
        ("Pricing", {"fields": ("price", "billing_period")}),
        ("Features", {"fields": ("feature_flags",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    can_delete = False
    fields = ("external_payment_id", "payment_gateway", "amount", "currency", "status", "created_at")
    readonly_fields = fields
    show_change_link = True


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    """Subscription lifecycle overview; state changes go through payments and plan changes."""

    list_display = (
        "id",
        "plan",
        "status",
        "payment_gateway",
        "start_date",
        "end_date",
        "auto_renew",
        "brand_display",
    )
    search_fields = ("id", "license_key", "external_subscription_id", "brand__name")
    list_filter = ("status", "payment_gateway", "auto_renew", "plan")
    readonly_fields = (
        "id",
        "license_key",
        "version",
        "plan_effective_date",
        "cancelled_at",
        "created_at",
        "updated_at",
    )
    ordering = ("-created_at",)
    list_select_related = ("plan", "brand")
    inlines = (PaymentInline,)

    fieldsets = (
        ("Subscription", {"fields": ("id", "plan", "status", "auto_renew", "license_key")}),
        ("Period", {"fields": ("start_date", "end_date", "plan_effective_date", "cancelled_at")}),
        ("Gateway", {"fields": ("payment_gateway", "external_subscription_id")}),
        ("Concurrency", {"fields": ("version",)}),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    @admin.display(description="Brand")
    def brand_display(self, obj):
        brand = getattr(obj, "brand", None)
        if brand is None:
            return "-"
        url = reverse("admin:brands_brand_change", args=[brand.pk])
        return format_html('<a href="{}">{}</a>', url, brand.name)


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        "external_payment_id",
        "payment_gateway",
        "amount",
        "currency",
        "status",
        "subscription_link",
        "created_at",
    )
    search_fields = ("id", "external_payment_id", "subscription__id")
    list_filter = ("status", "payment_gateway", "currency", "created_at")
    readonly_fields = (
        "id",
        "subscription",
        "amount",
        "currency",
        "payment_gateway",
        "external_payment_id",
        "status",
        "metadata",
        "created_at",
        "updated_at",
    )
    ordering = ("-created_at",)
    list_select_related = ("subscription",)
    actions = ("reconcile_upi_payments",)

    @admin.display(description="Subscription")
    def subscription_link(self, obj):
        url = reverse("admin:billing_subscription_change", args=[obj.subscription_id])
        return format_html('<a href="{}">{}</a>', url, obj.subscription_id)

    @admin.action(description="Mark selected UPI payments as verified")
    def reconcile_upi_payments(self, request, queryset):
        orchestrator = build_orchestrator(request_id=f"admin:{request.user.pk}")
        completed = 0
        pending = queryset.filter(payment_gateway=PaymentGateway.UPI, status=Payment.Status.PENDING)
        for payment in pending:
            try:
                outcome = orchestrator.reconcile_upi_payment(payment, request.user)
            except BillingError as exc:
                self.message_user(
                    request,
                    f"{payment.external_payment_id}: {exc.message}",
                    level=messages.ERROR,
                )
                continue
            if outcome.status is OutcomeStatus.PROCESSED:
                completed += 1

        skipped = queryset.count() - completed
        self.message_user(request, f"Verified {completed} UPI payment(s).", level=messages.SUCCESS)
        if skipped:
            self.message_user(
                request,
                f"Skipped {skipped} payment(s) that were not pending UPI payments.",
                level=messages.WARNING,
            )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "amount", "currency", "status", "paid_at", "cancelled_at")
    search_fields = ("invoice_number", "payment__external_payment_id", "subscription__id")
    list_filter = ("status", "currency", "paid_at")
    readonly_fields = (
        "id",
        "invoice_number",
        "subscription",
        "payment",
        "amount",
        "currency",
        "status",
        "due_date",
        "paid_at",
        "cancelled_at",
        "created_at",
    )
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(PlanChange)
class PlanChangeAdmin(admin.ModelAdmin):
    list_display = (
        "subscription",
        "change_type",
        "from_plan",
        "to_plan",
        "effective_date",
        "credit_days",
        "requested_by",
        "created_at",
    )
    list_filter = ("change_type", "created_at")
    search_fields = ("subscription__id", "requested_by__username")
    list_select_related = ("from_plan", "to_plan", "requested_by")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(WebhookEventLog)
class WebhookEventLogAdmin(admin.ModelAdmin):
    list_display = (
        "event_id",
        "gateway",
        "event_type",
        "status",
        "handled",
        "created_at",
        "processed_at",
        "last_error_short",
    )
    search_fields = ("event_id", "event_type")
    list_filter = ("gateway", "status", "handled", "created_at", "processed_at")
    readonly_fields = (
        "gateway",
        "event_id",
        "event_type",
        "status",
        "payload_hash",
        "created_at",
        "processed_at",
        "last_error",
    )
    ordering = ("-created_at",)

    fieldsets = (
        (
            "Event",
            {"fields": ("gateway", "event_id", "event_type", "status", "handled")},
        ),
        (
            "Payload",
            {"fields": ("payload_hash",)},
        ),
        (
            "Processing",
            {"fields": ("last_error", "created_at", "processed_at")},
        ),
    )

    @admin.display(description="Last Error")
    def last_error_short(self, obj):
        if not obj.last_error:
            return "-"
        snippet = obj.last_error.strip().splitlines()[0]
        if len(snippet) > 120:
            snippet = f"{snippet[:117]}..."
        return snippet


@admin.register(BillingAuditLog)
class BillingAuditLogAdmin(admin.ModelAdmin):
    """Audit log explorer for billing lifecycle events."""

    list_display = (
        "event_type",
        "brand",
        "subscription",
        "gateway_reference",
        "actor",
        "request_id",
        "created_at",
    )
    search_fields = ("event_type", "gateway_reference", "actor", "request_id", "brand__name")
    list_filter = ("event_type", "created_at")
    readonly_fields = (
        "brand",
        "subscription",
        "event_type",
        "gateway_reference",
        "actor",
        "request_id",
        "details",
        "created_at",
    )
    list_select_related = ("brand", "subscription")
    ordering = ("-created_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(BillingIdempotencyKey)
class BillingIdempotencyKeyAdmin(admin.ModelAdmin):
    list_display = ("key", "last_result", "response_code", "created_at", "last_seen_at")
    search_fields = ("key", "request_hash")
    list_filter = ("last_result", "created_at")
    readonly_fields = ("key", "request_hash", "last_result", "response_code", "created_at", "last_seen_at")
    ordering = ("-last_seen_at",)
