"""Stripe webhook adapter."""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import stripe

from billing.exceptions import InvalidSignature, UnsupportedEventType
from billing.models import PaymentGateway
from billing.services.events import EventKind, PaymentEvent
from billing.services.gateways.base import (
    GatewayAdapter,
    coerce_amount,
    load_json_object,
    require,
)
from billing.services.metadata import FailureMetadata, RefundMetadata, checkout_metadata_from_notes

logger = logging.getLogger(__name__)

EVENT_KINDS = {
    "payment_intent.succeeded": EventKind.CAPTURED,
    "payment_intent.payment_failed": EventKind.FAILED,
    "charge.refunded": EventKind.REFUNDED,
}


class StripeGatewayAdapter(GatewayAdapter):
    gateway = PaymentGateway.STRIPE
    signature_header = "Stripe-Signature"

    def __init__(self, *, webhook_secret: Optional[str], tolerance: int = 300):
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance

    def verify(self, body: bytes, signature: Optional[str]) -> None:
        if not self.webhook_secret:
            raise InvalidSignature("STRIPE_WEBHOOK_SECRET is not configured.")
        if not signature:
            raise InvalidSignature("Stripe-Signature header is missing.")
        try:
            payload = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidSignature("Payload is not valid UTF-8.") from exc
        try:
            stripe.WebhookSignature.verify_header(payload, signature, self.webhook_secret, self.tolerance)
        except stripe.SignatureVerificationError as exc:
            logger.warning("Stripe webhook signature verification failed: %s", exc)
            raise InvalidSignature() from exc

    def parse_webhook(self, body: bytes, headers: Mapping[str, str]) -> PaymentEvent:
        self.verify(body, headers.get(self.signature_header))
        envelope = load_json_object(body)

        event_type = require(envelope, "type", context="event")
        kind = EVENT_KINDS.get(event_type)
        if kind is None:
            raise UnsupportedEventType(f"Stripe event type {event_type!r} is not handled.")

        data = require(envelope, "data", context="event")
        obj = require(data, "object", context="event.data")

        if kind is EventKind.REFUNDED:
            return self._refund_event(envelope, obj, event_type)
        return self._intent_event(envelope, obj, event_type, kind)

    def _intent_event(self, envelope: Dict[str, Any], intent: Dict[str, Any], event_type: str,
                      kind: EventKind) -> PaymentEvent:
        intent_id = require(intent, "id", context="payment_intent")
        amount_field = "amount_received" if kind is EventKind.CAPTURED and intent.get("amount_received") else "amount"
        amount = coerce_amount(require(intent, amount_field, context="payment_intent"),
                               context=f"payment_intent.{amount_field}")
        currency = str(require(intent, "currency", context="payment_intent")).upper()

        failure = None
        if kind is EventKind.FAILED:
            error = intent.get("last_payment_error") or {}
            failure = FailureMetadata(code=error.get("code") or error.get("decline_code"),
                                      message=error.get("message"))

        return PaymentEvent(
            kind=kind,
            gateway=self.gateway,
            external_payment_id=intent_id,
            external_order_id=intent_id,
            amount_minor_units=amount,
            currency=currency,
            metadata=checkout_metadata_from_notes(intent.get("metadata")),
            event_type=event_type,
            delivery_id=envelope.get("id"),
            failure=failure,
        )

    def _refund_event(self, envelope: Dict[str, Any], charge: Dict[str, Any], event_type: str) -> PaymentEvent:
        intent_id = require(charge, "payment_intent", context="charge")
        amount = coerce_amount(require(charge, "amount_refunded", context="charge"),
                               context="charge.amount_refunded")
        currency = str(require(charge, "currency", context="charge")).upper()

        refunds = (charge.get("refunds") or {}).get("data") or []
        latest = refunds[0] if refunds and isinstance(refunds[0], dict) else {}

        return PaymentEvent(
            kind=EventKind.REFUNDED,
            gateway=self.gateway,
            external_payment_id=intent_id,
            external_order_id=intent_id,
            amount_minor_units=amount,
            currency=currency,
            metadata=checkout_metadata_from_notes(charge.get("metadata")),
            event_type=event_type,
            delivery_id=envelope.get("id"),
            refund=RefundMetadata(
                refund_id=latest.get("id"),
                amount_minor_units=amount,
                reason=latest.get("reason"),
            ),
        )
