"""Billing orchestrator.

The only code path that mutates subscriptions, payments and invoices. Gateway
adapters hand it normalised :class:`PaymentEvent` objects; API views hand it
plan changes and UPI requests. Every entry point runs inside one ledger
transaction, so an error part way leaves nothing half applied.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Optional

from django.conf import settings
from django.utils import timezone

from billing.constants import (
    NOTIFICATION_PAYMENT,
    NOTIFICATION_SUBSCRIPTION,
    NOTIFICATION_SYSTEM_ALERT,
    UPI_ID_PATTERN,
)
from billing.exceptions import (
    BrandNotFound,
    ConcurrentModification,
    DuplicateEvent,
    Forbidden,
    InvalidTransition,
    MalformedPayload,
    NoOpTransition,
    PaymentNotFound,
    PlanNotFound,
    SubscriptionNotFound,
)
from billing.models import Payment, PaymentGateway, PlanChange, Subscription, SubscriptionPlan
from billing.observability.logging import log_billing_event
from billing.observability.metrics import (
    CONCURRENCY_CONFLICT_COUNT,
    PAYMENT_FAILURE_COUNT,
    PAYMENT_SUCCESS_COUNT,
    PLAN_CHANGE_COUNT,
    WEBHOOK_EVENT_COUNT,
)
from billing.services.events import EventKind, PaymentEvent, TrustLevel
from billing.services.gateways.upi import UPIGatewayAdapter
from billing.services.identifiers import build_upi_link, generate_transaction_id
from billing.services.ledger import BillingLedger
from billing.services.metadata import PaymentMetadataRecord, UPIPaymentMetadata
from billing.services.notifications import CeleryNotifier
from billing.services.proration import PlanTerms, Transition, compute_transition

logger = logging.getLogger(__name__)

PLAN_CHANGE_ATTEMPTS = 2


class OutcomeStatus(str, Enum):
    PROCESSED = "PROCESSED"
    ALREADY_PROCESSED = "ALREADY_PROCESSED"
    IGNORED = "IGNORED"
    PENDING_RECONCILIATION = "PENDING_RECONCILIATION"


@dataclass(frozen=True)
class EventOutcome:
    status: OutcomeStatus
    payment: Optional[Payment] = None
    subscription: Optional[Subscription] = None
    detail: str = ""


@dataclass(frozen=True)
class PlanChangeOutcome:
    subscription: Subscription
    previous_plan: SubscriptionPlan
    transition: Transition
    message: str

    @property
    def effective_date(self) -> datetime:
        return self.transition.effective_date


@dataclass(frozen=True)
class UPIPaymentIntent:
    transaction_id: str
    upi_link: str
    amount: Decimal
    currency: str
    payment: Payment
    subscription: Subscription


class BillingOrchestrator:
    def __init__(self, ledger: BillingLedger, notifier, *, clock: Callable[[], datetime] = timezone.now,
                 auto_complete_upi: bool = True, merchant_vpa: str = "", merchant_name: str = "",
                 currency: str = "INR", request_id: Optional[str] = None):
        self.ledger = ledger
        self.notifier = notifier
        self.clock = clock
        self.auto_complete_upi = auto_complete_upi
        self.merchant_vpa = merchant_vpa
        self.merchant_name = merchant_name
        self.currency = currency
        self.request_id = request_id

    # Payment events

    def handle_payment_event(self, event: PaymentEvent, *, actor=None,
                             now: Optional[datetime] = None) -> EventOutcome:
        now = now or self.clock()
        try:
            outcome = self._apply_event(event, actor, now)
        except DuplicateEvent:
            # A concurrent delivery inserted the payment first; the retry sees its result.
            logger.info("Concurrent delivery detected for %s; re-applying against stored state.", event.reference)
            outcome = self._apply_event(event, actor, now)

        WEBHOOK_EVENT_COUNT.labels(gateway=event.gateway, kind=event.kind.value, outcome=outcome.status.value).inc()
        log_billing_event(
            message="payment_event_handled",
            request_id=self.request_id,
            actor=self._actor_label(actor, event),
            extra={
                "gateway": str(event.gateway),
                "kind": event.kind.value,
                "external_payment_id": event.external_payment_id,
                "delivery_id": event.delivery_id,
                "outcome": outcome.status.value,
            },
        )
        return outcome

    def _apply_event(self, event: PaymentEvent, actor, now: datetime) -> EventOutcome:
        with self.ledger.atomic():
            payment = self.ledger.lock_payment(event.gateway, event.external_payment_id)
            if event.trust_level is TrustLevel.USER_ASSERTED:
                return self._apply_user_assertion(event, payment, actor, now)
            if event.kind is EventKind.CAPTURED:
                return self._apply_capture(event, payment, actor, now)
            if event.kind is EventKind.FAILED:
                return self._apply_failure(event, payment, actor)
            return self._apply_refund(event, payment, actor, now)

    def _apply_user_assertion(self, event: PaymentEvent, payment: Optional[Payment], actor,
                              now: datetime) -> EventOutcome:
        if event.kind is not EventKind.CAPTURED:
            raise Forbidden("Only payment confirmations can be submitted by users.")
        if actor is None or str(actor.pk) != event.asserted_by:
            raise Forbidden("Payment confirmations must come from an authenticated user.")
        if payment is None:
            raise PaymentNotFound()

        record = PaymentMetadataRecord.from_json(payment.metadata)
        details = record.details
        if not isinstance(details, UPIPaymentMetadata):
            raise Forbidden("This payment cannot be confirmed by its payer.")
        if not actor.is_super_admin and details.user_id != str(actor.pk):
            raise Forbidden("You do not own this payment.")

        if payment.status == Payment.Status.COMPLETED:
            return EventOutcome(OutcomeStatus.ALREADY_PROCESSED, payment, payment.subscription)
        if payment.status != Payment.Status.PENDING:
            return EventOutcome(OutcomeStatus.IGNORED, payment, payment.subscription,
                                detail=f"Payment is {payment.status}.")

        details = replace(details, utr=event.confirmation_reference, confirmed_at=now.isoformat())

        if not self.auto_complete_upi:
            details = replace(details, awaiting_reconciliation=True)
            self.ledger.save_payment(payment, metadata=record.with_details(details).to_json())
            self.ledger.record_audit(
                event_type="upi.awaiting_reconciliation",
                gateway_reference=event.reference,
                subscription=payment.subscription,
                actor=self._actor_label(actor, event),
                request_id=self.request_id,
                details={"utr": details.utr},
            )
            return EventOutcome(OutcomeStatus.PENDING_RECONCILIATION, payment, payment.subscription,
                                detail="Payment reference recorded and awaiting verification.")

        self.ledger.save_payment(payment, status=Payment.Status.COMPLETED,
                                 metadata=record.with_details(details).to_json())
        subscription = self.ledger.lock_subscription(payment.subscription_id)
        return self._complete_capture(event, payment, subscription, details.brand_id, details.user_id, actor, now)

    def _apply_capture(self, event: PaymentEvent, payment: Optional[Payment], actor,
                       now: datetime) -> EventOutcome:
        if payment is not None:
            if payment.status == Payment.Status.COMPLETED:
                return EventOutcome(OutcomeStatus.ALREADY_PROCESSED, payment, payment.subscription)
            if payment.status == Payment.Status.REFUNDED:
                logger.info("Ignoring capture for refunded payment %s.", event.reference)
                return EventOutcome(OutcomeStatus.IGNORED, payment, payment.subscription,
                                    detail="Payment was already refunded.")

            record = PaymentMetadataRecord.from_json(payment.metadata)
            details = record.details
            if isinstance(details, UPIPaymentMetadata):
                details = replace(
                    details,
                    utr=event.confirmation_reference or details.utr,
                    confirmed_at=details.confirmed_at or now.isoformat(),
                    awaiting_reconciliation=False,
                )
                record = record.with_details(details)
            self.ledger.save_payment(payment, status=Payment.Status.COMPLETED, metadata=record.to_json())
            subscription = self.ledger.lock_subscription(payment.subscription_id)
        else:
            subscription = self._resolve_subscription(event, now, create=True)
            if subscription is None:
                return self._ignore_unattributed(event, actor)
            details = event.metadata
            payment = self.ledger.create_payment(
                subscription=subscription,
                amount=event.amount,
                currency=event.currency,
                status=Payment.Status.COMPLETED,
                gateway=event.gateway,
                external_payment_id=event.external_payment_id,
                metadata=PaymentMetadataRecord(details=details).to_json(),
            )

        brand_id = getattr(details, "brand_id", None)
        user_id = getattr(details, "user_id", None)
        return self._complete_capture(event, payment, subscription, brand_id, user_id, actor, now)

    def _complete_capture(self, event: PaymentEvent, payment: Payment, subscription: Subscription,
                          brand_id: Optional[str], user_id: Optional[str], actor, now: datetime) -> EventOutcome:
        invoice = self.ledger.invoice_for_payment(payment)
        if invoice is None:
            invoice = self.ledger.create_invoice(payment=payment, subscription=subscription, now=now)

        activated = False
        if subscription.status == Subscription.Status.PENDING:
            self.ledger.activate_subscription(subscription, now)
            activated = True

        brand = None
        if subscription.status == Subscription.Status.ACTIVE:
            brand = self.ledger.link_brand(brand_id, subscription)

        self.ledger.record_audit(
            event_type="payment.captured",
            gateway_reference=event.reference,
            brand=brand,
            subscription=subscription,
            actor=self._actor_label(actor, event),
            request_id=self.request_id,
            details={
                "amount": str(payment.amount),
                "currency": payment.currency,
                "invoice_number": invoice.invoice_number,
                "activated": activated,
            },
        )
        PAYMENT_SUCCESS_COUNT.labels(gateway=event.gateway).inc()

        recipient = user_id or (brand.owner_id if brand else None)
        if activated:
            self._notify(
                recipient,
                NOTIFICATION_SUBSCRIPTION,
                "Subscription Activated",
                f"Your {subscription.plan.name} subscription is active until {subscription.end_date:%d %b %Y}.",
                {
                    "subscriptionId": str(subscription.pk),
                    "planId": str(subscription.plan_id),
                    "licenseKey": subscription.license_key,
                    "invoiceNumber": invoice.invoice_number,
                },
            )
        return EventOutcome(OutcomeStatus.PROCESSED, payment, subscription)

    def _apply_failure(self, event: PaymentEvent, payment: Optional[Payment], actor) -> EventOutcome:
        if payment is None:
            subscription = self._resolve_subscription(event, None, create=False)
            if subscription is None:
                return self._ignore_unattributed(event, actor)
            record = PaymentMetadataRecord(details=event.metadata).with_failure(event.failure)
            payment = self.ledger.create_payment(
                subscription=subscription,
                amount=event.amount,
                currency=event.currency,
                status=Payment.Status.FAILED,
                gateway=event.gateway,
                external_payment_id=event.external_payment_id,
                metadata=record.to_json(),
            )
        elif payment.status == Payment.Status.FAILED:
            return EventOutcome(OutcomeStatus.ALREADY_PROCESSED, payment, payment.subscription)
        elif payment.status != Payment.Status.PENDING:
            logger.info("Ignoring failure for %s payment %s.", payment.status, event.reference)
            return EventOutcome(OutcomeStatus.IGNORED, payment, payment.subscription,
                                detail=f"Payment is {payment.status}.")
        else:
            record = PaymentMetadataRecord.from_json(payment.metadata).with_failure(event.failure)
            self.ledger.save_payment(payment, status=Payment.Status.FAILED, metadata=record.to_json())

        reason = (event.failure.code if event.failure else None) or "unknown"
        self.ledger.record_audit(
            event_type="payment.failed",
            gateway_reference=event.reference,
            subscription=payment.subscription,
            actor=self._actor_label(actor, event),
            request_id=self.request_id,
            details={"reason": reason, "message": event.failure.message if event.failure else None},
        )
        PAYMENT_FAILURE_COUNT.labels(gateway=event.gateway, reason=reason).inc()
        return EventOutcome(OutcomeStatus.PROCESSED, payment, payment.subscription)

    def _apply_refund(self, event: PaymentEvent, payment: Optional[Payment], actor,
                      now: datetime) -> EventOutcome:
        if payment is None:
            return self._ignore_unattributed(event, actor)
        if payment.status == Payment.Status.REFUNDED:
            return EventOutcome(OutcomeStatus.ALREADY_PROCESSED, payment, payment.subscription)

        record = PaymentMetadataRecord.from_json(payment.metadata).with_refund(event.refund)
        self.ledger.save_payment(payment, status=Payment.Status.REFUNDED, metadata=record.to_json())

        subscription = self.ledger.lock_subscription(payment.subscription_id)
        if subscription.status != Subscription.Status.CANCELLED:
            self.ledger.cancel_subscription(subscription, now)

        invoice = self.ledger.invoice_for_payment(payment)
        if invoice is not None and invoice.status != invoice.Status.CANCELLED:
            self.ledger.cancel_invoice(invoice, now)

        brand = self.ledger.brand_for_subscription(subscription)
        self.ledger.record_audit(
            event_type="payment.refunded",
            gateway_reference=event.reference,
            brand=brand,
            subscription=subscription,
            actor=self._actor_label(actor, event),
            request_id=self.request_id,
            details={
                "refund_id": event.refund.refund_id if event.refund else None,
                "amount_minor_units": event.amount_minor_units,
                "invoice_number": invoice.invoice_number if invoice else None,
            },
        )

        recipient = getattr(record.details, "user_id", None) or (brand.owner_id if brand else None)
        self._notify(
            recipient,
            NOTIFICATION_PAYMENT,
            "Payment Refunded",
            f"Your payment of {payment.currency} {payment.amount} was refunded and the "
            f"{subscription.plan.name} subscription has been cancelled.",
            {"subscriptionId": str(subscription.pk), "paymentId": str(payment.pk)},
        )
        return EventOutcome(OutcomeStatus.PROCESSED, payment, subscription)

    def _resolve_subscription(self, event: PaymentEvent, now: Optional[datetime], *,
                              create: bool) -> Optional[Subscription]:
        subscription = self.ledger.lock_subscription_by_reference(event.gateway, event.external_order_id)
        if subscription is not None or not create:
            return subscription

        metadata = event.metadata
        if metadata is None or not metadata.plan_id or not metadata.brand_id:
            return None
        # The money has moved, so a plan retired after checkout is still honoured.
        plan = self.ledger.get_plan(metadata.plan_id, active_only=False)
        brand = self.ledger.get_brand(metadata.brand_id)
        if plan is None or brand is None:
            return None
        return self.ledger.create_subscription(
            plan=plan,
            gateway=event.gateway,
            reference=event.external_order_id or event.external_payment_id,
            start=now,
        )

    def _ignore_unattributed(self, event: PaymentEvent, actor) -> EventOutcome:
        logger.warning("No subscription matches %s (%s); recorded for reconciliation.",
                       event.reference, event.event_type)
        self.ledger.record_audit(
            event_type="payment.unattributed",
            gateway_reference=event.reference,
            actor=self._actor_label(actor, event),
            request_id=self.request_id,
            details={
                "kind": event.kind.value,
                "event_type": event.event_type,
                "external_order_id": event.external_order_id,
                "amount_minor_units": event.amount_minor_units,
                "currency": event.currency,
                "metadata": PaymentMetadataRecord(details=event.metadata).to_json(),
            },
        )
        return EventOutcome(OutcomeStatus.IGNORED, detail="No matching subscription.")

    def reconcile_upi_payment(self, payment: Payment, operator, *, now: Optional[datetime] = None) -> EventOutcome:
        """Complete a UPI payment after an operator matched its reference."""
        details = PaymentMetadataRecord.from_json(payment.metadata).details
        event = UPIGatewayAdapter().operator_confirmation(
            transaction_id=payment.external_payment_id,
            utr=getattr(details, "utr", None),
            amount=payment.amount,
            currency=payment.currency,
            operator=operator.get_username(),
        )
        return self.handle_payment_event(event, actor=operator, now=now)

    # Plan changes

    def change_plan(self, subscription_id, target_plan_id, user, *,
                    now: Optional[datetime] = None) -> PlanChangeOutcome:
        now = now or self.clock()

        subscription = self.ledger.get_subscription(subscription_id)
        if subscription is None:
            raise SubscriptionNotFound()
        if not (user.is_super_admin or self.ledger.user_owns_subscription(user, subscription)):
            raise Forbidden("You do not have permission to change this subscription.")
        if str(subscription.plan_id) == str(target_plan_id):
            raise NoOpTransition()
        target = self.ledger.get_plan(target_plan_id)
        if target is None:
            raise PlanNotFound()
        if subscription.status != Subscription.Status.ACTIVE:
            raise InvalidTransition("Only active subscriptions can change plan.")

        for attempt in range(1, PLAN_CHANGE_ATTEMPTS + 1):
            try:
                outcome = self._apply_plan_change(subscription.pk, target, user, now)
            except ConcurrentModification:
                CONCURRENCY_CONFLICT_COUNT.labels(operation="change_plan").inc()
                if attempt == PLAN_CHANGE_ATTEMPTS:
                    PLAN_CHANGE_COUNT.labels(direction="unknown", outcome="conflict").inc()
                    raise
                logger.info("Subscription %s changed concurrently; retrying plan change.", subscription.pk)
                continue

            direction = "upgrade" if outcome.transition.is_upgrade else "downgrade"
            PLAN_CHANGE_COUNT.labels(direction=direction, outcome="applied").inc()
            return outcome

    def _apply_plan_change(self, subscription_id, target: SubscriptionPlan, user,
                           now: datetime) -> PlanChangeOutcome:
        with self.ledger.atomic():
            subscription = self.ledger.get_subscription(subscription_id)
            if subscription.status != Subscription.Status.ACTIVE:
                raise InvalidTransition("Only active subscriptions can change plan.")
            current_plan = subscription.plan
            if current_plan.pk == target.pk:
                raise NoOpTransition()

            transition = compute_transition(
                PlanTerms(
                    price=current_plan.price,
                    period_days=current_plan.period_days,
                    end_date=subscription.end_date,
                    plan_id=str(current_plan.pk),
                ),
                PlanTerms(price=target.price, period_days=target.period_days, plan_id=str(target.pk)),
                now,
            )

            applied = self.ledger.update_subscription_if_version(
                subscription,
                expected_version=subscription.version,
                plan=target,
                end_date=transition.new_end_date,
                plan_effective_date=transition.effective_date,
                updated_at=now,
            )
            if not applied:
                raise ConcurrentModification()

            change_type = PlanChange.ChangeType.UPGRADE if transition.is_upgrade else PlanChange.ChangeType.DOWNGRADE
            self.ledger.record_plan_change(
                subscription_id=subscription.pk,
                from_plan=current_plan,
                to_plan=target,
                change_type=change_type,
                effective_date=transition.effective_date,
                previous_end_date=subscription.end_date,
                new_end_date=transition.new_end_date,
                credit_days=transition.credit_days,
                requested_by=user,
            )

            updated = self.ledger.get_subscription(subscription.pk)
            brand = self.ledger.brand_for_subscription(updated)
            self.ledger.record_audit(
                event_type=f"subscription.{change_type.lower()}",
                brand=brand,
                subscription=updated,
                actor=user.get_username(),
                request_id=self.request_id,
                details={
                    "from_plan": str(current_plan.pk),
                    "to_plan": str(target.pk),
                    "effective_date": transition.effective_date.isoformat(),
                    "new_end_date": transition.new_end_date.isoformat(),
                    "credit_days": transition.credit_days,
                },
            )

            message = self._plan_change_message(current_plan, target, transition)
            self._notify(
                user.pk,
                NOTIFICATION_SYSTEM_ALERT,
                "Subscription Upgraded" if transition.is_upgrade else "Subscription Downgrade Scheduled",
                message,
                {
                    "subscriptionId": str(updated.pk),
                    "oldPlanId": str(current_plan.pk),
                    "newPlanId": str(target.pk),
                    "effectiveDate": transition.effective_date.isoformat(),
                },
            )

        log_billing_event(
            message="plan_changed",
            request_id=self.request_id,
            brand_id=brand.pk if brand else None,
            actor=user.get_username(),
            extra={"subscription_id": str(updated.pk), "change_type": change_type.value},
        )
        return PlanChangeOutcome(
            subscription=updated,
            previous_plan=current_plan,
            transition=transition,
            message=message,
        )

    @staticmethod
    def _plan_change_message(current: SubscriptionPlan, target: SubscriptionPlan, transition: Transition) -> str:
        if transition.is_upgrade:
            message = f"Upgraded from {current.name} to {target.name}. The change was applied immediately"
            if transition.credit_days:
                message += f" with {transition.credit_days} bonus day(s) credited from your current plan"
            return message + "."
        return (
            f"Downgrade from {current.name} to {target.name} scheduled for "
            f"{transition.effective_date:%Y-%m-%d}, the end of your current billing period."
        )

    # UPI deep links

    def initiate_upi_payment(self, plan_id, brand_id, upi_id: str, user, *,
                             now: Optional[datetime] = None) -> UPIPaymentIntent:
        now = now or self.clock()
        if not UPI_ID_PATTERN.match(upi_id or ""):
            raise MalformedPayload("UPI ID must look like name@bank.")

        brand = self.ledger.get_brand(brand_id)
        if brand is None:
            raise BrandNotFound()
        if not (user.is_super_admin or brand.owner_id == user.pk):
            raise Forbidden("You do not have permission to purchase for this brand.")
        plan = self.ledger.get_plan(plan_id)
        if plan is None:
            raise PlanNotFound()

        transaction_id = generate_transaction_id(now)
        upi_link = build_upi_link(
            merchant_vpa=self.merchant_vpa,
            merchant_name=self.merchant_name,
            amount=plan.price,
            transaction_id=transaction_id,
            note=f"{plan.name} Subscription",
            currency=self.currency,
        )

        with self.ledger.atomic():
            subscription = self.ledger.create_subscription(
                plan=plan,
                gateway=PaymentGateway.UPI,
                reference=transaction_id,
                start=now,
                auto_renew=False,
            )
            details = UPIPaymentMetadata(
                plan_id=str(plan.pk),
                brand_id=str(brand.pk),
                user_id=str(user.pk),
                upi_id=upi_id,
                transaction_id=transaction_id,
                upi_link=upi_link,
            )
            payment = self.ledger.create_payment(
                subscription=subscription,
                amount=plan.price,
                currency=self.currency,
                status=Payment.Status.PENDING,
                gateway=PaymentGateway.UPI,
                external_payment_id=transaction_id,
                metadata=PaymentMetadataRecord(details=details).to_json(),
            )
            self.ledger.record_audit(
                event_type="upi.initiated",
                gateway_reference=f"{PaymentGateway.UPI}:{transaction_id}",
                brand=brand,
                subscription=subscription,
                actor=user.get_username(),
                request_id=self.request_id,
                details={"plan_id": str(plan.pk), "amount": str(plan.price)},
            )

        log_billing_event(
            message="upi_payment_initiated",
            request_id=self.request_id,
            brand_id=brand.pk,
            actor=user.get_username(),
            extra={"transaction_id": transaction_id},
        )
        return UPIPaymentIntent(
            transaction_id=transaction_id,
            upi_link=upi_link,
            amount=plan.price,
            currency=self.currency,
            payment=payment,
            subscription=subscription,
        )

    def get_upi_status(self, transaction_id: str, user) -> Payment:
        payment = self.ledger.get_payment(PaymentGateway.UPI, transaction_id)
        if payment is None:
            raise PaymentNotFound()
        details = PaymentMetadataRecord.from_json(payment.metadata).details
        if not user.is_super_admin and getattr(details, "user_id", None) != str(user.pk):
            raise Forbidden("You do not own this payment.")
        return payment

    # Helpers

    def _notify(self, user_id, type: str, title: str, message: str, metadata: Dict[str, Any]) -> None:
        if not user_id:
            return
        try:
            self.notifier.notify(user_id, type, title, message, metadata)
        except Exception:  # notifications are best effort
            logger.exception("Failed to queue billing notification '%s' for user %s.", title, user_id)

    @staticmethod
    def _actor_label(actor, event: PaymentEvent) -> str:
        if actor is not None:
            return actor.get_username()
        return f"gateway:{str(event.gateway).lower()}"


def build_orchestrator(*, request_id: Optional[str] = None, webhook: bool = False) -> BillingOrchestrator:
    """Wire an orchestrator from settings; one per request."""
    timeout = getattr(settings, "BILLING_WEBHOOK_STATEMENT_TIMEOUT_MS", 5000) if webhook else None
    return BillingOrchestrator(
        BillingLedger(statement_timeout_ms=timeout),
        CeleryNotifier(),
        auto_complete_upi=getattr(settings, "BILLING_UPI_AUTO_COMPLETE", True),
        merchant_vpa=getattr(settings, "MERCHANT_UPI_ID", ""),
        merchant_name=getattr(settings, "MERCHANT_NAME", ""),
        currency=getattr(settings, "BILLING_CURRENCY", "INR"),
        request_id=request_id,
    )
