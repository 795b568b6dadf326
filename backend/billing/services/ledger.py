"""Persistence port used by the billing orchestrator.

All reads that precede a mutation take row locks, and every write made while
handling a single event or request happens inside :meth:`BillingLedger.atomic`.
Database errors leave this module as domain exceptions.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterator, Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, connection, transaction

from billing.exceptions import DuplicateEvent, PersistenceFailure
from billing.models import (
    BillingAuditLog,
    Invoice,
    Payment,
    PlanChange,
    Subscription,
    SubscriptionPlan,
)
from billing.services.identifiers import generate_invoice_number, generate_license_key
from brands.models import Brand

logger = logging.getLogger(__name__)


class BillingLedger:
    def __init__(self, *, statement_timeout_ms: Optional[int] = None):
        self.statement_timeout_ms = statement_timeout_ms

    @contextmanager
    def atomic(self) -> Iterator[None]:
        try:
            with transaction.atomic():
                self._apply_statement_timeout()
                yield
        except IntegrityError as exc:
            logger.warning("Billing write rejected by a database constraint: %s", exc)
            raise PersistenceFailure(details={"error": str(exc)}) from exc
        except DatabaseError as exc:
            logger.error("Billing transaction failed: %s", exc)
            raise PersistenceFailure(details={"error": str(exc)}) from exc

    def _apply_statement_timeout(self) -> None:
        if not self.statement_timeout_ms or connection.vendor != "postgresql":
            return
        with connection.cursor() as cursor:
            cursor.execute(f"SET LOCAL statement_timeout = {int(self.statement_timeout_ms)}")

    # Plans and brands

    def get_plan(self, plan_id, *, active_only: bool = True) -> Optional[SubscriptionPlan]:
        queryset = SubscriptionPlan.objects.all()
        if active_only:
            queryset = queryset.filter(is_active=True)
        try:
            return queryset.filter(pk=plan_id).first()
        except (ValueError, TypeError, ValidationError):
            return None

    def get_brand(self, brand_id) -> Optional[Brand]:
        try:
            return Brand.objects.select_related("owner").filter(pk=brand_id).first()
        except (ValueError, TypeError, ValidationError):
            return None

    def brand_for_subscription(self, subscription: Subscription) -> Optional[Brand]:
        return Brand.objects.filter(subscription=subscription).first()

    def user_owns_subscription(self, user, subscription: Subscription) -> bool:
        return Brand.objects.filter(subscription=subscription, owner=user).exists()

    def link_brand(self, brand_id, subscription: Subscription) -> Optional[Brand]:
        brand = self.get_brand(brand_id) if brand_id else None
        if brand is None:
            return None
        if brand.subscription_id != subscription.pk:
            # A brand has one current subscription; detach it from any other brand first.
            Brand.objects.filter(subscription=subscription).exclude(pk=brand.pk).update(subscription=None)
            brand.subscription = subscription
            brand.save(update_fields=["subscription", "updated_at"])
        return brand

    # Subscriptions

    def get_subscription(self, subscription_id) -> Optional[Subscription]:
        try:
            return Subscription.objects.select_related("plan").filter(pk=subscription_id).first()
        except (ValueError, TypeError, ValidationError):
            return None

    def lock_subscription(self, subscription_id) -> Optional[Subscription]:
        return (
            Subscription.objects.select_for_update()
            .select_related("plan")
            .filter(pk=subscription_id)
            .first()
        )

    def lock_subscription_by_reference(self, gateway: str, reference: Optional[str]) -> Optional[Subscription]:
        if not reference:
            return None
        return (
            Subscription.objects.select_for_update()
            .select_related("plan")
            .filter(payment_gateway=gateway, external_subscription_id=reference)
            .order_by("-created_at")
            .first()
        )

    def create_subscription(self, *, plan: SubscriptionPlan, gateway: str, reference: str, start: datetime,
                            auto_renew: bool = True,
                            status: str = Subscription.Status.PENDING) -> Subscription:
        return Subscription.objects.create(
            plan=plan,
            status=status,
            start_date=start,
            end_date=start + plan.period,
            auto_renew=auto_renew,
            payment_gateway=gateway,
            external_subscription_id=reference or "",
        )

    def activate_subscription(self, subscription: Subscription, now: datetime) -> Subscription:
        subscription.status = Subscription.Status.ACTIVE
        subscription.start_date = now
        subscription.end_date = now + subscription.plan.period
        subscription.plan_effective_date = now
        if not subscription.license_key:
            subscription.license_key = self.issue_license_key()
        subscription.version += 1
        subscription.save(update_fields=[
            "status", "start_date", "end_date", "plan_effective_date", "license_key", "version", "updated_at",
        ])
        return subscription

    def cancel_subscription(self, subscription: Subscription, now: datetime) -> Subscription:
        subscription.status = Subscription.Status.CANCELLED
        subscription.cancelled_at = now
        subscription.auto_renew = False
        subscription.version += 1
        subscription.save(update_fields=["status", "cancelled_at", "auto_renew", "version", "updated_at"])
        return subscription

    def update_subscription_if_version(self, subscription: Subscription, *, expected_version: int,
                                       **fields: Any) -> bool:
        """Conditional update keyed on ``version``; False when another writer got there first."""
        updated = Subscription.objects.filter(pk=subscription.pk, version=expected_version).update(
            version=expected_version + 1,
            **fields,
        )
        return updated == 1

    def issue_license_key(self) -> str:
        key = generate_license_key()
        while Subscription.objects.filter(license_key=key).exists():
            key = generate_license_key()
        return key

    # Payments

    def lock_payment(self, gateway: str, external_payment_id: str) -> Optional[Payment]:
        return (
            Payment.objects.select_for_update()
            .filter(payment_gateway=gateway, external_payment_id=external_payment_id)
            .first()
        )

    def get_payment(self, gateway: str, external_payment_id: str) -> Optional[Payment]:
        return (
            Payment.objects.select_related("subscription", "subscription__plan")
            .filter(payment_gateway=gateway, external_payment_id=external_payment_id)
            .first()
        )

    def create_payment(self, *, subscription: Subscription, amount: Decimal, currency: str, status: str,
                       gateway: str, external_payment_id: str, metadata: Dict[str, Any]) -> Payment:
        try:
            with transaction.atomic():
                return Payment.objects.create(
                    subscription=subscription,
                    amount=amount,
                    currency=currency,
                    status=status,
                    payment_gateway=gateway,
                    external_payment_id=external_payment_id,
                    metadata=metadata,
                )
        except IntegrityError as exc:
            raise DuplicateEvent(
                f"Payment {gateway}:{external_payment_id} was recorded concurrently.",
                details={"external_payment_id": external_payment_id},
            ) from exc

    def save_payment(self, payment: Payment, *, status: Optional[str] = None,
                     metadata: Optional[Dict[str, Any]] = None) -> Payment:
        fields = ["updated_at"]
        if status is not None:
            payment.status = status
            fields.append("status")
        if metadata is not None:
            payment.metadata = metadata
            fields.append("metadata")
        payment.save(update_fields=fields)
        return payment

    # Invoices

    def invoice_for_payment(self, payment: Payment) -> Optional[Invoice]:
        return Invoice.objects.select_for_update().filter(payment=payment).first()

    def create_invoice(self, *, payment: Payment, subscription: Subscription, now: datetime) -> Invoice:
        number = generate_invoice_number(now)
        while Invoice.objects.filter(invoice_number=number).exists():
            number = generate_invoice_number(now)
        return Invoice.objects.create(
            subscription=subscription,
            payment=payment,
            invoice_number=number,
            amount=payment.amount,
            currency=payment.currency,
            status=Invoice.Status.PAID,
            due_date=now,
            paid_at=now,
        )

    def cancel_invoice(self, invoice: Invoice, now: datetime) -> Invoice:
        invoice.status = Invoice.Status.CANCELLED
        invoice.cancelled_at = now
        invoice.save(update_fields=["status", "cancelled_at"])
        return invoice

    # History

    def record_plan_change(self, **fields: Any) -> PlanChange:
        return PlanChange.objects.create(**fields)

    def record_audit(self, *, event_type: str, gateway_reference: str = "", brand: Optional[Brand] = None,
                     subscription: Optional[Subscription] = None, actor: str = "", request_id: str = "",
                     details: Optional[Dict[str, Any]] = None) -> BillingAuditLog:
        return BillingAuditLog.objects.create(
            event_type=event_type,
            gateway_reference=gateway_reference or "",
            brand=brand,
            subscription=subscription,
            actor=actor or "",
            request_id=request_id or "",
            details=details or {},
        )
